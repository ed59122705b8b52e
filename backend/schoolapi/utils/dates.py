"""Date formatting helpers for values read from the database."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Union


def convert_mysql_date(value: Union[str, date, datetime, None]) -> Optional[str]:
    """Return `value` as a `YYYY-MM-DD` string.

    Accepts the `datetime` objects SQLAlchemy returns as well as the raw
    `YYYY-MM-DD HH:MM:SS` strings MySQL and SQLite produce. `None` is
    passed through.
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
