"""Tests for QR rendering."""

import base64

import pytest

from wabridge.whatsapp.qr import png_data_url, render_png

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


class TestRenderPng:
    def test_renders_png(self):
        png = render_png("2@Zx9k1Q,abcDEF==,XyZ")
        assert png.startswith(PNG_SIGNATURE)

    def test_empty_token_rejected(self):
        with pytest.raises(ValueError):
            render_png("")


class TestDataUrl:
    def test_embeds_png(self):
        url = png_data_url(b"\x89PNGdata")
        prefix = "data:image/png;base64,"
        assert url.startswith(prefix)
        assert base64.b64decode(url[len(prefix):]) == b"\x89PNGdata"
