"""Calendar-month windows used by budget aggregation."""

from datetime import date


def month_window(year: int, month: int) -> tuple[date, date]:
    """Half-open window ``[year-month-01, next-month-01)``.

    Raises:
        ValueError: If month is outside 1..12.
    """
    if not 1 <= month <= 12:
        raise ValueError(f"month must be in 1..12, got {month}")
    start = date(year, month, 1)
    if month == 12:
        end = date(year + 1, 1, 1)
    else:
        end = date(year, month + 1, 1)
    return start, end
