"""Case reference generation."""

import re
import secrets

REFERENCE_LENGTH = 10
REFERENCE_PATTERN = re.compile(r"^[A-Z0-9]{10}$")

_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"
# Deterministic filler used when the encoded value is shorter than REFERENCE_LENGTH
_FILLER_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ0123456789"
_NON_ALNUM = re.compile(r"[^A-Z0-9]")


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def generate_reference() -> str:
    """
    Generate a 10-character uppercase alphanumeric case reference.

    8 random bytes are read as an unsigned big-endian integer, rendered in
    base-36 and right-padded from the filler alphabet when too short.
    Uniqueness is not checked here; the unique constraint on cases.reference
    is the arbiter (see case_service.create_case).
    """
    value = int.from_bytes(secrets.token_bytes(8), "big", signed=False)
    encoded = _NON_ALNUM.sub("", _to_base36(value).upper())
    if len(encoded) < REFERENCE_LENGTH:
        encoded += _FILLER_ALPHABET
    return encoded[:REFERENCE_LENGTH]


def is_valid_reference(reference: str | None) -> bool:
    """Check that a reference has the generated shape."""
    return bool(reference) and REFERENCE_PATTERN.match(reference) is not None
