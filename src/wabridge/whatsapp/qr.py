"""Render login QR tokens as scannable PNG images."""

import base64
import io

import qrcode
from qrcode.constants import ERROR_CORRECT_M

# Pixel width of /qr.png
PNG_WIDTH = 512


def render_png(token: str, width: int = PNG_WIDTH) -> bytes:
    """Render a QR token to PNG bytes, scaled to roughly ``width`` pixels.

    Raises:
        ValueError: If the token is empty.
    """
    if not token:
        raise ValueError("empty QR token")

    qr = qrcode.QRCode(border=2, error_correction=ERROR_CORRECT_M)
    qr.add_data(token)
    qr.make(fit=True)

    modules = qr.modules_count + 2 * qr.border
    qr.box_size = max(1, width // modules)

    image = qr.make_image(fill_color="black", back_color="white")
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def png_data_url(png: bytes) -> str:
    """Inline data URL for embedding the PNG in the operator page."""
    return "data:image/png;base64," + base64.b64encode(png).decode("ascii")
