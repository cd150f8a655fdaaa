"""Wallet address normalization and validation."""
from __future__ import annotations

import re
from typing import Optional

from polywatch.errors import ValidationError

ADDRESS_RE = re.compile(r"^0x[a-f0-9]{40}$")


def normalize_address(raw: object) -> Optional[str]:
    """Lowercase + trim ``raw``; None if it is not a 0x-prefixed 20-byte hex address."""
    if not isinstance(raw, str):
        return None
    address = raw.strip().lower()
    if not ADDRESS_RE.match(address):
        return None
    return address


def require_address(raw: object) -> str:
    """Like normalize_address but raises ValidationError on bad input."""
    address = normalize_address(raw)
    if address is None:
        raise ValidationError(
            f"invalid address format {raw!r} (expected 0x + 40 hex chars)"
        )
    return address


def short_address(address: str) -> str:
    """0x1234…abcd display form."""
    if len(address) < 10:
        return address
    return f"0x{address[2:6]}…{address[-4:]}"
