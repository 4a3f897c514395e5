"""Phone number normalisation (Russian numbering plan defaults)."""

import re


def normalize_phone(phone: str) -> str:
    """Strip everything except digits and ``+``."""
    return re.sub(r"[^\d+]", "", phone)


def ensure_e164(phone: str) -> str:
    """Best-effort E.164: a leading trunk ``8`` becomes ``+7``.

    Returns an empty string when the input has no digits at all.
    """
    digits = normalize_phone(phone).replace("+", "")
    if not digits:
        return ""
    if digits.startswith("8"):
        return f"+7{digits[1:]}"
    return f"+{digits}"
