from __future__ import annotations

import math
import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

_LEADING_FLOAT_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_LEADING_INT_RE = re.compile(r"^[+-]?\d+")


def _finite(x: float) -> float | None:
    return x if math.isfinite(x) else None


def to_number(value: Any) -> float | None:
    """Strict conversion: the whole value must be numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        return _finite(float(value))
    s = str(value).strip()
    if not s:
        return None
    try:
        return _finite(float(s))
    except ValueError:
        return None


def parse_float(value: Any) -> float | None:
    """Lenient conversion: uses the leading number of a string ("12.5 pzs" -> 12.5)."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        return _finite(float(value))
    m = _LEADING_FLOAT_RE.match(str(value).strip())
    if not m:
        return None
    try:
        return _finite(float(m.group(0)))
    except ValueError:
        return None


def parse_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        f = float(value)
        return int(f) if math.isfinite(f) else None
    m = _LEADING_INT_RE.match(str(value).strip())
    return int(m.group(0)) if m else None


def parse_money(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        return _finite(float(value))

    s = str(value).strip()
    if not s:
        return None

    # Remove currency text/symbols and keep digits/separators.
    s = s.replace("$", "").replace("MXN", "").replace("mxn", "").strip()
    s = "".join(ch for ch in s if ch.isdigit() or ch in (".", ",", "-"))
    if not any(ch.isdigit() for ch in s):
        return None

    # Heuristics for thousands/decimal separators.
    if "." in s and "," in s:
        if s.rfind(",") > s.rfind("."):
            # 1.234,56
            s = s.replace(".", "").replace(",", ".")
        else:
            # 1,234.56
            s = s.replace(",", "")
    elif "," in s:
        # Could be 1234,56 or 1,234
        parts = s.split(",")
        if len(parts) == 2 and len(parts[1]) == 2:
            s = s.replace(",", ".")
        else:
            s = s.replace(",", "")
    elif "." in s:
        # Could be 1.234.567 (thousands) or 1234.56 (decimal)
        parts = s.split(".")
        if len(parts) > 2:
            s = s.replace(".", "")

    try:
        return _finite(float(s))
    except ValueError:
        return None


def round_half_up(x: float) -> int:
    return int(Decimal(str(x)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def money(x: float | Decimal) -> Decimal:
    d = x if isinstance(x, Decimal) else Decimal(str(x))
    return d.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
