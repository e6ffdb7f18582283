"""Date-range tokens ("30d", "3m", "1y") -> cutoff datetime."""

import re
from datetime import datetime

import pandas as pd

_RANGE_RE = re.compile(r"^\s*(\d+)\s*([A-Za-z]+)\s*$")

_UNITS = {
    "d": "days",
    "m": "months",
    "y": "years",
}


class InvalidDateRangeError(ValueError):
    """Raised for a range token that isn't <integer><d|m|y>."""


def parse_date_range(token: str | None, now: datetime | None = None) -> datetime | None:
    """Return the cutoff for *token*, counted back from *now*.

    Month and year steps use calendar arithmetic (pandas DateOffset), so
    31 March minus one month is 28/29 February.  An empty token means no
    cutoff and returns None.
    """
    if token is None or not str(token).strip():
        return None
    m = _RANGE_RE.match(str(token))
    if not m:
        raise InvalidDateRangeError(f"Invalid date range '{token}': expected e.g. 30d, 3m, 1y")
    value, unit = int(m.group(1)), m.group(2).lower()
    if unit not in _UNITS:
        raise InvalidDateRangeError(
            f"Invalid date range '{token}': unknown unit '{unit}' (use d, m or y)"
        )
    now = now or datetime.now()
    cutoff = pd.Timestamp(now) - pd.DateOffset(**{_UNITS[unit]: value})
    return cutoff.to_pydatetime()
