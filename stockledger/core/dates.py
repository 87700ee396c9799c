from datetime import date


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """Half-open [first day of month, first day of next month)."""
    if not 1 <= month <= 12:
        raise ValueError("month must be between 1 and 12")
    start = date(year, month, 1)
    if month == 12:
        return start, date(year + 1, 1, 1)
    return start, date(year, month + 1, 1)


def previous_month(today: date) -> tuple[int, int]:
    if today.month == 1:
        return today.year - 1, 12
    return today.year, today.month - 1
