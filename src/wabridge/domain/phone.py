"""Phone number normalization into WhatsApp addresses.

Canonical rule: keep digits only, require 10-15 of them, and prefix the
default country code when the number does not already start with it. The
prefixed number must still fit E.164 (max 15 digits). No mobile infix is
inserted.

A 14-15 digit input without the country code is rejected rather than
addressed. Prefixing would yield a 16-17 digit address that fails a second
normalization pass, so "every 10-15 digit input gets an address" and
idempotence cannot both hold for those inputs; idempotence wins.
"""

import re

from .errors import InvalidAddress

MIN_DIGITS = 10
MAX_DIGITS = 15

_NON_DIGITS = re.compile(r"\D")


def canonical_digits(raw: str, country_code: str = "52") -> str:
    """Return the canonical digit string for a raw phone input.

    Raises:
        InvalidAddress: If the input does not carry 10-15 digits, or the
            country-prefixed form would be longer than 15 digits.
    """
    digits = _NON_DIGITS.sub("", raw or "")
    if not MIN_DIGITS <= len(digits) <= MAX_DIGITS:
        raise InvalidAddress(f"phone must have {MIN_DIGITS}-{MAX_DIGITS} digits, got {len(digits)}")

    if country_code and not digits.startswith(country_code):
        digits = country_code + digits
        if len(digits) > MAX_DIGITS:
            raise InvalidAddress("phone too long once the country code is added")

    return digits


def normalize_address(raw: str, *, country_code: str = "52", jid_suffix: str = "@c.us") -> str:
    """Normalize raw user input into a messaging address (``<digits><suffix>``).

    Idempotent: an address produced here normalizes to itself.
    """
    return f"{canonical_digits(raw, country_code)}{jid_suffix}"


def address_to_phone(address: str) -> str:
    """Strip the JID suffix from a messaging address."""
    return address.split("@", 1)[0]
