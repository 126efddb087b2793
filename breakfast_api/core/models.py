"""
Domain models for breakfast check-ins.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from .exceptions import InvalidNameError

# Time of day is not stored in the sheet, only presence per day
CHECK_IN_TIME_LABEL = "breakfast"


def validate_user_name(name: Optional[str], length: int = 3) -> str:
    """Return the trimmed name, or raise InvalidNameError."""
    if name is None or not isinstance(name, str) or not name.strip():
        raise InvalidNameError("Please enter a name.")
    trimmed = name.strip()
    if len(trimmed) != length:
        raise InvalidNameError(f"Name must be exactly {length} characters.")
    return trimmed


def is_checked(cell: Any) -> bool:
    """Checkbox cells come back as booleans, or as 'TRUE' when formatted."""
    return cell is True or (isinstance(cell, str) and cell.strip().upper() == "TRUE")


@dataclass(frozen=True)
class SheetUser:
    """A roster entry and the sheet row it lives on."""
    name: str
    row: int


@dataclass
class CheckIn:
    name: str
    date: str
    time: str
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "date": self.date,
            "time": self.time,
            "timestamp": self.timestamp
        }


@dataclass
class CheckInResult:
    """Outcome of a successful check-in."""
    name: str
    check_in_time: datetime
    sheet_name: str
    day: int
    warning: Optional[str] = None


@dataclass
class MonthlyGrid:
    """A month's users x days check-in matrix."""
    raw_data: List[List[bool]]
    user_list: List[SheetUser]
    sheet_name: str
    days_in_month: int
    month: int
    year: int

    def total(self) -> int:
        return sum(1 for row in self.raw_data for cell in row if cell)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rawData": self.raw_data,
            "userList": [{"name": u.name, "row": u.row} for u in self.user_list],
            "sheetName": self.sheet_name,
            "daysInMonth": self.days_in_month,
            "currentMonth": self.month,
            "currentYear": self.year
        }


@dataclass
class MonthlyStats:
    daily_stats: Dict[str, int]
    weekly_stats: Dict[str, int]
    total_count: int
    average_daily: float
    active_days: int
    best_day: Optional[str] = None
    best_day_count: int = 0


@dataclass
class RangeStats:
    start_date: date
    end_date: date
    daily_stats: Dict[str, int] = field(default_factory=dict)
    total_count: int = 0
    average_daily: float = 0.0
    active_days: int = 0
    best_day: Optional[str] = None
    best_day_count: int = 0

    @property
    def period(self) -> str:
        return f"{self.start_date.isoformat()} ~ {self.end_date.isoformat()}"
