from __future__ import annotations

import re
from typing import Optional

import numpy as np
import pandas as pd

_NUMBER_NOISE = re.compile(r"[$,\s]")
_RELATIVE_DATE_WORDS = frozenset({"now", "today", "tomorrow", "yesterday"})


def parse_number(value: Optional[str]) -> Optional[float]:
    """Parse a broker number cell; None when absent, unparseable, non-finite or zero.

    Currency symbols, thousands separators and accounting parentheses are
    stripped. The sign is kept; callers take the absolute value.
    """
    if value is None:
        return None
    text = _NUMBER_NOISE.sub("", str(value))
    negative = text.startswith("(") and text.endswith(")")
    if negative:
        text = text[1:-1]
    if not text:
        return None
    num = pd.to_numeric(text, errors="coerce")
    if pd.isna(num) or not np.isfinite(num) or num == 0:
        return None
    num = float(num)
    return -num if negative else num


def parse_trade_date(value: Optional[str]) -> Optional[str]:
    """Parse date text into an ISO-8601 UTC timestamp with millisecond precision."""
    if value is None or not str(value).strip():
        return None
    text = str(value).strip()
    # pandas resolves these against the wall clock
    if text.lower() in _RELATIVE_DATE_WORDS:
        return None
    ts = pd.to_datetime(text, errors="coerce")
    if pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return ts.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ts.microsecond // 1000:03d}Z"


def clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
