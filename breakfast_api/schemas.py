"""
Pydantic schemas for request/response models.

JSON field names are camelCase (``checkInTime``, ``dailyStats``); the Python
attribute names are snake_case and either form is accepted on input.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# CHECK-IN SCHEMAS
# ============================================================================

class CheckInRequest(CamelModel):
    """Check-in submission."""
    name: Optional[str] = Field(None, description="3-character user name", examples=["KIM"])
    check_in_time: Optional[datetime] = Field(
        None,
        description="ISO 8601 check-in time; defaults to now",
        examples=["2026-10-19T08:30:00+09:00"]
    )


class CheckInData(CamelModel):
    name: str = Field(..., examples=["KIM"])
    date: str = Field(..., description="Local date", examples=["2026-10-19"])
    time: str = Field(..., description="Local time", examples=["08:30:00"])


class CheckInResponse(CamelModel):
    success: bool = Field(True)
    message: str = Field(..., examples=["KIM checked in."])
    check_in_time: str = Field(..., description="ISO 8601 timestamp", examples=["2026-10-19T08:30:00+09:00"])
    data: CheckInData
    warning: Optional[str] = Field(None, description="Set when the check-in is outside breakfast hours")


class CheckInRecord(CamelModel):
    name: str = Field(..., examples=["KIM"])
    date: str = Field(..., examples=["2026-10-19"])
    time: str = Field(..., description="Time of day is not stored", examples=["breakfast"])
    timestamp: str = Field(..., examples=["2026-10-19T00:00:00+09:00"])


class DailyCheckInsResponse(CamelModel):
    """Check-ins of one day."""
    date: str = Field(..., examples=["2026-10-19"])
    day: Optional[int] = Field(None, examples=[19])
    count: int = Field(..., examples=[12])
    check_ins: List[CheckInRecord]


# ============================================================================
# MONTH SCHEMAS
# ============================================================================

class SheetUserSchema(CamelModel):
    name: str = Field(..., examples=["KIM"])
    row: int = Field(..., description="Sheet row of the user", examples=[3])


class MonthlyGridSchema(CamelModel):
    """A month's users x days check-in matrix."""
    raw_data: List[List[bool]] = Field(..., description="One row per user, one column per day")
    user_list: List[SheetUserSchema]
    sheet_name: str = Field(..., examples=["26.10"])
    days_in_month: int = Field(..., examples=[31])
    current_month: int = Field(..., examples=[10])
    current_year: int = Field(..., examples=[2026])


class MonthlyFullDataResponse(CamelModel):
    success: bool = Field(True)
    data: MonthlyGridSchema
    month: str = Field(..., examples=["2026-10"])


class MonthlyDataResponse(CamelModel):
    success: bool = Field(True)
    data: MonthlyGridSchema
    year: int = Field(..., examples=[2026])
    month: int = Field(..., examples=[10])


# ============================================================================
# STATISTICS SCHEMAS
# ============================================================================

class MonthlyStatsSchema(CamelModel):
    daily_stats: Dict[str, int] = Field(..., examples=[{"2026-10-01": 12, "2026-10-02": 9}])
    weekly_stats: Dict[str, int] = Field(..., examples=[{"10-W1": 54, "10-W2": 61}])
    total_count: int = Field(..., examples=[215])
    average_daily: float = Field(..., description="Average over days with at least one check-in", examples=[10.75])
    active_days: int = Field(..., examples=[20])
    best_day: Optional[str] = Field(None, examples=["2026-10-14"])
    best_day_count: int = Field(0, examples=[17])


class MonthlyStatsResponse(CamelModel):
    success: bool = Field(True)
    data: MonthlyStatsSchema
    month: str = Field(..., examples=["2026-10"])


class RangeStatsResponse(CamelModel):
    period: str = Field(..., examples=["2026-10-01 ~ 2026-10-19"])
    start_date: str
    end_date: str
    daily_stats: Dict[str, int]
    total_check_ins: int
    average_daily: float
    active_days: int
    best_day: Optional[str] = None
    best_day_count: int = 0


# ============================================================================
# USER / SHEET SCHEMAS
# ============================================================================

class UserCreateRequest(CamelModel):
    name: Optional[str] = Field(None, description="3-character user name", examples=["KIM"])


class UserCreateResponse(CamelModel):
    success: bool = Field(True)
    message: str = Field(..., examples=["KIM has been registered."])
    name: str = Field(..., examples=["KIM"])
    row: int = Field(..., examples=[14])


class UsersResponse(CamelModel):
    users: List[str] = Field(..., examples=[["KIM", "LEE", "PAK"]])
    count: int = Field(..., examples=[3])


class SheetsResponse(CamelModel):
    sheets: List[str] = Field(..., examples=[["26.09", "26.10"]])
    count: int = Field(..., examples=[2])


class ErrorResponse(CamelModel):
    success: bool = Field(False)
    error: str = Field(..., examples=["Name must be exactly 3 characters."])
    status: int = Field(..., examples=[400])
