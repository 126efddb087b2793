"""
Month Sheet Layout

Address arithmetic for the users x days grid kept in each month tab.

Layout of a month sheet:
- Rows 1-2: headers
- Column E: roster (one user name per row, starting at row 3)
- Columns F..AJ: check-in checkboxes for days 1..31
"""
import calendar
import re
from datetime import date
from typing import Optional, Tuple

ROSTER_COLUMN = "E"
FIRST_USER_ROW = 3
# Day 1 lives in column F (6th column)
DAY_COLUMN_OFFSET = 5
MAX_DAY = 31

_COLUMN_RE = re.compile(r"^[A-Z]+$")


def column_letter(index: int) -> str:
    """
    Convert a 1-indexed column number to its letter form.

    Examples:
        >>> column_letter(6)
        'F'
        >>> column_letter(36)
        'AJ'
    """
    if index < 1:
        raise ValueError(f"Column index must be >= 1, got {index}")

    letters = ""
    while index > 0:
        index -= 1
        letters = chr(ord("A") + index % 26) + letters
        index //= 26
    return letters


def column_index(letter: str) -> int:
    """Inverse of column_letter ('A' -> 1, 'AA' -> 27)."""
    letter = (letter or "").upper()
    if not _COLUMN_RE.match(letter):
        raise ValueError(f"Invalid column letter: {letter!r}")

    index = 0
    for char in letter:
        index = index * 26 + (ord(char) - ord("A") + 1)
    return index


def day_to_column(day: int) -> str:
    """Column holding the check-in cells for a day of the month (1 -> F)."""
    if not isinstance(day, int) or isinstance(day, bool) or not 1 <= day <= MAX_DAY:
        raise ValueError(f"Day must be between 1 and {MAX_DAY}, got {day!r}")
    return column_letter(DAY_COLUMN_OFFSET + day)


def sheet_name_for(target: date) -> str:
    """Tab name for the month containing ``target`` (YY.MM)."""
    return f"{target.year % 100:02d}.{target.month:02d}"


def previous_month(year: int, month: int) -> Tuple[int, int]:
    if month == 1:
        return year - 1, 12
    return year, month - 1


def previous_sheet_name(target: date) -> str:
    year, month = previous_month(target.year, target.month)
    return sheet_name_for(date(year, month, 1))


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def a1_range(
    sheet: str,
    start_col: str,
    start_row: int,
    end_col: Optional[str] = None,
    end_row: Optional[int] = None
) -> str:
    """
    Build an A1 range such as ``25.10!F3:AJ40`` or ``25.10!F7``.

    Sheet titles like ``25.10`` are valid unquoted in A1 notation.
    """
    start = f"{start_col}{start_row}"
    if end_col is None and end_row is None:
        return f"{sheet}!{start}"
    end = f"{end_col or start_col}{end_row if end_row is not None else start_row}"
    return f"{sheet}!{start}:{end}"


def column_range(sheet: str, col: str) -> str:
    """Whole-column range, e.g. ``25.10!E:E``."""
    return f"{sheet}!{col}:{col}"


def grid_range(sheet: str, days: int, last_row: int) -> str:
    """Range covering every check-in cell of a month for rows 3..last_row."""
    return a1_range(sheet, day_to_column(1), FIRST_USER_ROW, day_to_column(days), last_row)
