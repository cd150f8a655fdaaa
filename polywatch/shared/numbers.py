"""Fail-soft numeric coercion for loosely typed upstream fields."""
from __future__ import annotations

import math
from typing import Any, Optional


def to_number(value: Any) -> Optional[float]:
    """Return ``value`` as a finite float, or None when it is not numeric.

    Numeric strings ("12.5") are accepted since the data API is not consistent
    about quoting. Booleans, NaN and infinities are rejected.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number):
        return None
    return number


def safe_num(value: Any) -> float:
    """Numeric value of ``value``, degrading to 0.0 when missing or invalid."""
    number = to_number(value)
    return number if number is not None else 0.0
