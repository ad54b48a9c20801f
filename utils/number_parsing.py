from __future__ import annotations

import re
from typing import Optional


_SHORTHAND = re.compile(r"^([0-9][0-9,]*(?:\.[0-9]+)?)\s*([KMB]?)$")
_FACTORS = {"": 1, "K": 1_000, "M": 1_000_000, "B": 1_000_000_000}


def parse_float_shorthand(value) -> Optional[float]:
    """Parse strings like '1.2K', '3M', '4,500', '500+' into a float.

    Returns None for unparsable inputs (including booleans).
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    s = str(value).strip().upper()
    # LinkedIn decorates counts: "500+ connections", "1,024 followers"
    s = re.sub(r"\s*(CONNECTIONS?|FOLLOWERS?|KONTAKTE|FOLLOWER)$", "", s)
    if s.endswith("+"):
        s = s[:-1].strip()
    if not s:
        return None
    m = _SHORTHAND.match(s)
    if m:
        return float(m.group(1).replace(",", "")) * _FACTORS[m.group(2)]
    try:
        return float(s.replace(",", ""))
    except ValueError:
        return None


def parse_int_shorthand(value) -> Optional[int]:
    parsed = parse_float_shorthand(value)
    if parsed is None:
        return None
    return int(round(parsed))
