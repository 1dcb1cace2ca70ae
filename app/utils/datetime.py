"""
Utilities for standardized datetime handling.
"""
from datetime import date, datetime, timezone


def utc_now() -> datetime:
    """
    Get current UTC time as timezone-aware datetime.
    
    Returns:
        datetime: Current UTC time
    """
    return datetime.now(timezone.utc)


def format_cell_date(value) -> str:
    """
    Render a spreadsheet date cell as YYYY-MM-DD.

    Midnight datetimes (how spreadsheets store plain dates) lose their time
    part; other datetimes keep it in ISO form.
    """
    if isinstance(value, datetime):
        if value.time() == datetime.min.time():
            return value.date().isoformat()
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)
