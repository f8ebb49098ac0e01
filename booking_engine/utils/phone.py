"""Philippine mobile number normalization and display formatting."""

from __future__ import annotations

import re
from typing import Optional

_NON_DIGITS = re.compile(r"[^0-9+]")
_PH_MOBILE = re.compile(r"^\+639\d{9}$")


def normalize_mobile_ph(phone: Optional[str]) -> Optional[str]:
    """
    Normalize a phone number to the canonical +639XXXXXXXXX form.

    Accepted inputs include 09171234567, +639171234567, 639171234567,
    9171234567, "0917 123 4567" and "(0917) 123-4567".

    Args:
        phone: Raw phone string

    Returns:
        Canonical 13-character string, or None when the input is not a valid
        Philippine mobile number.
    """
    if not phone:
        return None

    clean = _NON_DIGITS.sub("", phone.strip())
    # Only a leading plus survives
    if clean:
        clean = clean[0] + clean[1:].replace("+", "")

    if clean.startswith("09"):
        clean = "+63" + clean[1:]
    elif clean.startswith("9") and len(clean) == 10:
        clean = "+63" + clean
    elif clean.startswith("639"):
        clean = "+" + clean

    if not _PH_MOBILE.match(clean):
        return None
    return clean


def format_mobile_display(phone: Optional[str]) -> str:
    """
    Format a mobile number for display as 09XX XXX XXXX.

    Inputs that cannot be normalized are returned unchanged; this is for
    display only and must not be used for identity matching.
    """
    if not phone:
        return ""
    clean = normalize_mobile_ph(phone)
    if not clean:
        return phone

    local = "0" + clean[3:]
    return f"{local[:4]} {local[4:7]} {local[7:]}"
