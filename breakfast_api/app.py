"""
Breakfast Check-in API - FastAPI Application

Employees check in for the subsidized breakfast; admins read daily, weekly
and monthly usage. All data lives in a Google Spreadsheet, one tab per month.
"""

# ============================================================================
# IMPORTS
# ============================================================================

from datetime import date
from typing import Optional
import logging
import os

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from breakfast_api import __version__
from breakfast_api.config_manager import BreakfastSettings, EnvConfig
from breakfast_api.core.exceptions import InvalidDateError
from breakfast_api.core.models import MonthlyGrid
from breakfast_api.services.breakfast import BreakfastService, build_breakfast_service
from breakfast_api.utils import error_body, handle_errors
from breakfast_api.schemas import (
    CheckInData,
    CheckInRecord,
    CheckInRequest,
    CheckInResponse,
    DailyCheckInsResponse,
    ErrorResponse,
    MonthlyDataResponse,
    MonthlyFullDataResponse,
    MonthlyGridSchema,
    MonthlyStatsResponse,
    MonthlyStatsSchema,
    RangeStatsResponse,
    SheetsResponse,
    UserCreateRequest,
    UserCreateResponse,
    UsersResponse,
)

# ============================================================================
# CONFIGURATION
# ============================================================================

logging.basicConfig(
    level=EnvConfig.get_log_level(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

MIN_YEAR = 2000
MAX_YEAR = 2099

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Validation or business rule failure"},
    500: {"model": ErrorResponse, "description": "Google Sheets failure"},
}

router = APIRouter()


def get_service(request: Request) -> BreakfastService:
    """The app's breakfast service, built from the environment on first use."""
    service = getattr(request.app.state, "service", None)
    if service is None:
        try:
            service = build_breakfast_service(getattr(request.app.state, "settings", None))
        except Exception as e:
            logger.error(f"Could not build the breakfast service: {e}")
            raise HTTPException(status_code=500, detail=f"Service is not configured: {e}")
        request.app.state.service = service
    return service


def _grid_schema(grid: MonthlyGrid) -> MonthlyGridSchema:
    return MonthlyGridSchema(**{
        "raw_data": grid.raw_data,
        "user_list": [{"name": u.name, "row": u.row} for u in grid.user_list],
        "sheet_name": grid.sheet_name,
        "days_in_month": grid.days_in_month,
        "current_month": grid.month,
        "current_year": grid.year,
    })


def _records(check_ins) -> list:
    return [CheckInRecord(**c.to_dict()) for c in check_ins]


# ============================================================================
# ROOT ENDPOINT
# ============================================================================

@router.get(
    "/",
    tags=["General"],
    summary="API Information",
    description="Get basic information about the Breakfast Check-in API and available endpoints"
)
def read_root():
    """
    Root endpoint providing API information and endpoint discovery.

    Example:
        ```bash
        curl http://localhost:8000/
        ```
    """
    return {
        "message": "Welcome to the Breakfast Check-in API",
        "version": __version__,
        "documentation": {
            "swagger_ui": "/docs",
            "redoc": "/redoc",
            "openapi_schema": "/openapi.json"
        },
        "endpoints": {
            "checkin": "/api/checkin - POST a check-in, GET today's check-ins",
            "checkin_day": "/api/checkin/{day} - Check-ins of a day in the current month",
            "monthly_full_data": "/api/monthly-full-data - Current month grid",
            "monthly_data": "/api/monthly-data/{year}/{month} - Grid of a given month",
            "monthly_stats": "/api/monthly-stats - Current month statistics",
            "stats": "/api/stats?startDate=YYYY-MM-DD&endDate=YYYY-MM-DD - Range statistics",
            "users": "/api/users - GET registered users, POST a new user",
            "sheets": "/api/sheets - Month sheets in the spreadsheet"
        }
    }


# ============================================================================
# CHECK-IN ENDPOINTS
# ============================================================================

@router.post(
    "/api/checkin",
    response_model=CheckInResponse,
    response_model_exclude_none=True,
    responses=ERROR_RESPONSES,
    tags=["Check-in"],
    summary="Check In",
    description="Record today's breakfast check-in for a registered user"
)
@handle_errors
def create_check_in(body: CheckInRequest, service: BreakfastService = Depends(get_service)):
    """
    Record a breakfast check-in.

    The user must be on the month's roster and may check in once per day.
    Check-ins outside breakfast hours are accepted and carry a ``warning``.

    Example:
        ```bash
        curl -X POST http://localhost:8000/api/checkin \\
             -H 'Content-Type: application/json' \\
             -d '{"name": "KIM", "checkInTime": "2026-10-19T08:30:00+09:00"}'
        ```
    """
    result = service.check_in(body.name, body.check_in_time)
    moment = result.check_in_time

    return CheckInResponse(
        success=True,
        message=f"{result.name} checked in.",
        check_in_time=moment.isoformat(),
        data=CheckInData(
            name=result.name,
            date=moment.date().isoformat(),
            time=moment.strftime("%H:%M:%S")
        ),
        warning=result.warning
    )


@router.get(
    "/api/checkin",
    response_model=DailyCheckInsResponse,
    response_model_exclude_none=True,
    responses=ERROR_RESPONSES,
    tags=["Check-in"],
    summary="Today's Check-ins"
)
@handle_errors
def list_today_check_ins(service: BreakfastService = Depends(get_service)):
    """Count and list of today's check-ins."""
    today = service.today()
    check_ins = service.get_check_ins_by_date(today)
    return DailyCheckInsResponse(
        date=today.isoformat(),
        count=len(check_ins),
        check_ins=_records(check_ins)
    )


@router.get(
    "/api/checkin/{day}",
    response_model=DailyCheckInsResponse,
    responses=ERROR_RESPONSES,
    tags=["Check-in"],
    summary="Check-ins of a Day",
    description="Count and list of check-ins for a day (1-31) of the current month"
)
@handle_errors
def list_day_check_ins(day: int, service: BreakfastService = Depends(get_service)):
    target = service.resolve_day(day)
    check_ins = service.get_check_ins_by_date(target)
    return DailyCheckInsResponse(
        date=target.isoformat(),
        day=day,
        count=len(check_ins),
        check_ins=_records(check_ins)
    )


# ============================================================================
# MONTH ENDPOINTS
# ============================================================================

@router.get(
    "/api/monthly-full-data",
    response_model=MonthlyFullDataResponse,
    responses=ERROR_RESPONSES,
    tags=["Months"],
    summary="Current Month Grid",
    description="Users x days check-in grid of the current month; creates the month sheet if needed"
)
@handle_errors
def get_monthly_full_data(service: BreakfastService = Depends(get_service)):
    grid = service.get_monthly_full_data()
    return MonthlyFullDataResponse(
        success=True,
        data=_grid_schema(grid),
        month=f"{grid.year}-{grid.month:02d}"
    )


@router.get(
    "/api/monthly-data/{year}/{month}",
    response_model=MonthlyDataResponse,
    responses=ERROR_RESPONSES,
    tags=["Months"],
    summary="Grid of a Month",
    description="Users x days check-in grid of a given month; empty if the month has no sheet"
)
@handle_errors
def get_monthly_data(year: int, month: int, service: BreakfastService = Depends(get_service)):
    if not (MIN_YEAR <= year <= MAX_YEAR and 1 <= month <= 12):
        raise InvalidDateError(f"Please enter a valid year ({MIN_YEAR}-{MAX_YEAR}) and month (1-12).")

    grid = service.get_monthly_full_data_by_date(date(year, month, 1))
    return MonthlyDataResponse(success=True, data=_grid_schema(grid), year=year, month=month)


# ============================================================================
# STATISTICS ENDPOINTS
# ============================================================================

@router.get(
    "/api/monthly-stats",
    response_model=MonthlyStatsResponse,
    responses=ERROR_RESPONSES,
    tags=["Statistics"],
    summary="Current Month Statistics",
    description="Daily, weekly and total check-ins of the current month"
)
@handle_errors
def get_monthly_stats(service: BreakfastService = Depends(get_service)):
    """
    Statistics of the current month.

    ``averageDaily`` is the total divided by the number of days on which at
    least one person checked in.
    """
    today = service.today()
    stats = service.get_monthly_stats()
    return MonthlyStatsResponse(
        success=True,
        data=MonthlyStatsSchema(
            daily_stats=stats.daily_stats,
            weekly_stats=stats.weekly_stats,
            total_count=stats.total_count,
            average_daily=stats.average_daily,
            active_days=stats.active_days,
            best_day=stats.best_day,
            best_day_count=stats.best_day_count
        ),
        month=f"{today.year}-{today.month:02d}"
    )


@router.get(
    "/api/stats",
    response_model=RangeStatsResponse,
    responses=ERROR_RESPONSES,
    tags=["Statistics"],
    summary="Date Range Statistics",
    description="Per-day check-in counts between startDate and endDate (defaults: first of this month to today)"
)
@handle_errors
def get_range_stats(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    service: BreakfastService = Depends(get_service)
):
    today = service.today()
    start = start_date or today.replace(day=1)
    end = end_date or today

    stats = service.get_stats_by_date_range(start, end)
    return RangeStatsResponse(
        period=stats.period,
        start_date=stats.start_date.isoformat(),
        end_date=stats.end_date.isoformat(),
        daily_stats=stats.daily_stats,
        total_check_ins=stats.total_count,
        average_daily=stats.average_daily,
        active_days=stats.active_days,
        best_day=stats.best_day,
        best_day_count=stats.best_day_count
    )


# ============================================================================
# USER / SHEET ENDPOINTS
# ============================================================================

@router.get(
    "/api/users",
    response_model=UsersResponse,
    responses=ERROR_RESPONSES,
    tags=["Users"],
    summary="Registered Users"
)
@handle_errors
def list_users(service: BreakfastService = Depends(get_service)):
    users = service.get_registered_users()
    return UsersResponse(users=users, count=len(users))


@router.post(
    "/api/users",
    response_model=UserCreateResponse,
    responses=ERROR_RESPONSES,
    tags=["Users"],
    summary="Register User",
    description="Add a 3-character name to the current month's roster"
)
@handle_errors
def create_user(body: UserCreateRequest, service: BreakfastService = Depends(get_service)):
    user = service.add_user(body.name)
    return UserCreateResponse(
        success=True,
        message=f"{user.name} has been registered.",
        name=user.name,
        row=user.row
    )


@router.get(
    "/api/sheets",
    response_model=SheetsResponse,
    responses=ERROR_RESPONSES,
    tags=["Months"],
    summary="Month Sheets"
)
@handle_errors
def list_sheets(service: BreakfastService = Depends(get_service)):
    sheets = service.get_available_sheets()
    return SheetsResponse(sheets=sheets, count=len(sheets))


# ============================================================================
# APPLICATION
# ============================================================================

async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content=error_body(str(exc.detail), exc.status_code))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"Invalid request: {location} {first.get('msg', '')}".strip()
    else:
        message = "Invalid request."
    logger.info(f"Rejected request to {request.url.path}: {message}")
    return JSONResponse(status_code=400, content=error_body(message, 400))


def create_app(
    service: Optional[BreakfastService] = None,
    settings: Optional[BreakfastSettings] = None
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        service: Breakfast service to use; built from the environment on the
                 first request when omitted
        settings: Settings used when the service is built lazily
    """
    app = FastAPI(
        title="Breakfast Check-in API",
        description="Breakfast check-ins and usage statistics backed by Google Sheets",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.service = service
    app.state.settings = settings
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.include_router(router)
    return app


app = create_app()


# ---------- Dev server ----------
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "breakfast_api.app:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        reload=False
    )
