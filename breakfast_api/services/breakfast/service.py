"""
Breakfast Check-in Service

Business rules on top of the spreadsheet:
- One tab per month (YY.MM), created from the previous month's tab on first use
- Roster in column E, one checkbox per user per day from column F
- At most one check-in per user per day
"""
import logging
import threading
from datetime import date, datetime, time
from typing import Any, Callable, List, Optional, Set, Tuple

from breakfast_api.cache import CacheStrategy, RosterCache, TimeBasedCacheStrategy
from breakfast_api.config_manager import BreakfastSettings, EnvConfig, get_settings
from breakfast_api.core.exceptions import (
    DuplicateCheckInError,
    DuplicateUserError,
    InvalidDateError,
    MissingPreviousSheetError,
    UnregisteredUserError,
)
from breakfast_api.core.models import (
    CHECK_IN_TIME_LABEL,
    CheckIn,
    CheckInResult,
    MonthlyGrid,
    MonthlyStats,
    RangeStats,
    SheetUser,
    is_checked,
    validate_user_name,
)
from breakfast_api.core.stats import day_counts, summarize_month, summarize_range
from breakfast_api.services.sheets import layout
from breakfast_api.services.sheets.client import SheetsClient

logger = logging.getLogger(__name__)

MAX_RANGE_DAYS = 366


class BreakfastService:
    """
    Check-ins, roster and statistics backed by the breakfast spreadsheet.

    The service is constructed explicitly and handed to whoever needs it;
    ``sheets`` only has to provide the ``SheetsClient`` methods used here.
    """

    def __init__(
        self,
        sheets: SheetsClient,
        settings: Optional[BreakfastSettings] = None,
        roster_cache: Optional[RosterCache] = None,
        clock: Optional[Callable[[], datetime]] = None,
        sheet_cache: Optional[CacheStrategy] = None
    ):
        """
        Args:
            sheets: Spreadsheet client
            settings: Timezone, breakfast window and roster rules
            roster_cache: Roster cache; defaults to a TTL cache
            clock: Returns the current time; defaults to now in the configured timezone
            sheet_cache: Remembers tabs known to exist; entries expire like the roster
        """
        self.sheets = sheets
        self.settings = settings or BreakfastSettings()
        self.roster_cache = roster_cache or RosterCache(
            TimeBasedCacheStrategy(default_ttl=self.settings.roster_cache_ttl)
        )
        self._clock = clock or (lambda: datetime.now(self.settings.tz))
        self._known_sheets = sheet_cache or TimeBasedCacheStrategy(default_ttl=self.settings.roster_cache_ttl)
        self._write_lock = threading.Lock()
        self._sheet_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Time helpers
    # ------------------------------------------------------------------

    def to_local(self, moment: datetime) -> datetime:
        """Express ``moment`` in the configured timezone (naive = already local)."""
        tz = self.settings.tz
        if moment.tzinfo is None:
            return tz.localize(moment)
        return moment.astimezone(tz)

    def now(self) -> datetime:
        return self.to_local(self._clock())

    def today(self) -> date:
        return self.now().date()

    def _local_midnight(self, target: date) -> datetime:
        return self.settings.tz.localize(datetime.combine(target, time.min))

    def _is_current_month(self, target: date) -> bool:
        today = self.today()
        return (target.year, target.month) == (today.year, today.month)

    def _is_known_sheet(self, sheet_name: str) -> bool:
        return self._known_sheets.get(sheet_name) is not None

    def _remember_sheet(self, sheet_name: str) -> None:
        self._known_sheets.set(sheet_name, True)

    # ------------------------------------------------------------------
    # Month sheet lifecycle
    # ------------------------------------------------------------------

    def ensure_month_sheet(self, target: Optional[date] = None) -> bool:
        """
        Make sure the tab for ``target``'s month exists.

        A missing tab is created by duplicating the previous month's tab and
        unchecking every check-in cell; the roster column is kept.
        If the copy cannot be cleared it is deleted again, so a retry starts
        over instead of finding last month's check-ins.

        Returns:
            True if the tab was created by this call

        Raises:
            MissingPreviousSheetError: If neither tab exists
        """
        target = target or self.today()
        sheet_name = layout.sheet_name_for(target)
        if self._is_known_sheet(sheet_name):
            return False

        with self._sheet_lock:
            titles = self.sheets.list_sheet_titles()
            if sheet_name in titles:
                self._remember_sheet(sheet_name)
                return False

            previous = layout.previous_sheet_name(target)
            if previous not in titles:
                raise MissingPreviousSheetError(
                    f"Cannot create sheet '{sheet_name}': previous month sheet '{previous}' does not exist."
                )

            logger.info(f"Sheet '{sheet_name}' does not exist, copying '{previous}'")
            self.sheets.duplicate_sheet(previous, sheet_name)
            self.roster_cache.invalidate(sheet_name)
            try:
                self._clear_check_ins(sheet_name)
            except Exception:
                logger.error(f"Clearing check-ins in '{sheet_name}' failed, removing the copy")
                self.roster_cache.invalidate(sheet_name)
                try:
                    self.sheets.delete_sheet(sheet_name)
                except Exception:
                    logger.exception(f"Could not remove half-created sheet '{sheet_name}'")
                raise
            self._remember_sheet(sheet_name)

        logger.info(f"Created sheet '{sheet_name}' from '{previous}'")
        return True

    def _clear_check_ins(self, sheet_name: str) -> None:
        """Uncheck every day column (1..31) down to the last occupied roster row of a copied tab."""
        _, last_row = self._load_roster(sheet_name)
        if last_row < layout.FIRST_USER_ROW:
            return

        rows = last_row - layout.FIRST_USER_ROW + 1
        values = [[False] * layout.MAX_DAY for _ in range(rows)]
        self.sheets.update_values(layout.grid_range(sheet_name, layout.MAX_DAY, last_row), values)
        logger.info(f"Cleared check-ins in '{sheet_name}' ({rows} rows x {layout.MAX_DAY} days)")

    def _sheet_available(self, target: date) -> bool:
        """Current month tabs are created on demand; other months must exist."""
        if self._is_current_month(target):
            self.ensure_month_sheet(target)
            return True

        sheet_name = layout.sheet_name_for(target)
        if self._is_known_sheet(sheet_name):
            return True
        if sheet_name in self.sheets.list_sheet_titles():
            self._remember_sheet(sheet_name)
            return True
        logger.info(f"Sheet '{sheet_name}' does not exist")
        return False

    # ------------------------------------------------------------------
    # Roster
    # ------------------------------------------------------------------

    def _load_roster(self, sheet_name: str) -> Tuple[List[SheetUser], int]:
        """Read the roster column; returns users and the last occupied row."""
        rows = self.sheets.get_values(layout.column_range(sheet_name, layout.ROSTER_COLUMN))
        roster: List[SheetUser] = []
        seen: Set[str] = set()
        last_row = layout.FIRST_USER_ROW - 1

        for row_number, row in enumerate(rows[layout.FIRST_USER_ROW - 1:], start=layout.FIRST_USER_ROW):
            value = row[0] if row else None
            name = str(value).strip() if value is not None else ""
            if not name:
                continue
            last_row = row_number
            if len(name) == self.settings.name_length and name not in seen:
                seen.add(name)
                roster.append(SheetUser(name=name, row=row_number))

        return roster, last_row

    def get_roster(self, sheet_name: str) -> List[SheetUser]:
        """Users on a month tab, cached per tab."""
        cached = self.roster_cache.get(sheet_name)
        if cached is not None:
            return cached

        roster, _ = self._load_roster(sheet_name)
        self.roster_cache.set(sheet_name, roster)
        return roster

    def get_registered_users(self) -> List[str]:
        today = self.today()
        self.ensure_month_sheet(today)
        return [user.name for user in self.get_roster(layout.sheet_name_for(today))]

    def add_user(self, name: Optional[str]) -> SheetUser:
        """
        Register a user on the current month's tab.

        Raises:
            InvalidNameError: If the name is not exactly the configured length
            DuplicateUserError: If the name is already on the roster
        """
        trimmed = validate_user_name(name, self.settings.name_length)
        today = self.today()
        self.ensure_month_sheet(today)
        sheet_name = layout.sheet_name_for(today)

        with self._write_lock:
            roster, last_row = self._load_roster(sheet_name)
            if any(user.name == trimmed for user in roster):
                raise DuplicateUserError(f"{trimmed} is already registered.")

            new_row = last_row + 1
            self.sheets.update_values(
                layout.a1_range(sheet_name, layout.ROSTER_COLUMN, new_row),
                [[trimmed]]
            )
            self.roster_cache.invalidate(sheet_name)

        logger.info(f"Registered user {trimmed} on '{sheet_name}' row {new_row}")
        return SheetUser(name=trimmed, row=new_row)

    # ------------------------------------------------------------------
    # Check-ins
    # ------------------------------------------------------------------

    def _mark_checked_in(self, sheet_name: str, row: int, day: int) -> bool:
        """
        Check a user's cell for a day unless it is already checked.

        The read and the write happen under one lock so concurrent requests in
        this process cannot both succeed. Returns False if already checked.
        """
        cell = layout.a1_range(sheet_name, layout.day_to_column(day), row)
        with self._write_lock:
            values = self.sheets.get_values(cell)
            current = values[0][0] if values and values[0] else None
            if is_checked(current):
                return False
            self.sheets.update_values(cell, [[True]])
        return True

    def check_in(self, name: Optional[str], check_in_time: Optional[datetime] = None) -> CheckInResult:
        """
        Record a breakfast check-in.

        Check-ins outside the breakfast window are accepted with a warning.

        Raises:
            InvalidNameError: Missing or malformed name
            UnregisteredUserError: Name is not on the month's roster
            DuplicateCheckInError: User already checked in that day
        """
        trimmed = validate_user_name(name, self.settings.name_length)
        moment = self.to_local(check_in_time) if check_in_time is not None else self.now()
        target = moment.date()
        sheet_name = layout.sheet_name_for(target)

        warning = None
        if not self.settings.in_breakfast_window(moment.hour):
            warning = f"Check-in outside breakfast hours ({self.settings.window_label})."
            logger.warning(f"{trimmed} checked in at {moment.strftime('%H:%M')}, outside breakfast hours")

        if not self._sheet_available(target):
            raise UnregisteredUserError(
                f"{trimmed} is not a registered user for {target.strftime('%Y-%m')}. Please contact an administrator."
            )

        user = next((u for u in self.get_roster(sheet_name) if u.name == trimmed), None)
        if user is None:
            raise UnregisteredUserError(
                f"{trimmed} is not a registered user. Please contact an administrator."
            )

        if not self._mark_checked_in(sheet_name, user.row, target.day):
            raise DuplicateCheckInError(f"{trimmed} has already checked in on {target.isoformat()}.")

        logger.info(f"{trimmed} checked in on {target.isoformat()} ('{sheet_name}' row {user.row})")
        return CheckInResult(
            name=trimmed,
            check_in_time=moment,
            sheet_name=sheet_name,
            day=target.day,
            warning=warning
        )

    def _checked_in_users(self, target: date) -> List[SheetUser]:
        if not self._sheet_available(target):
            return []

        sheet_name = layout.sheet_name_for(target)
        roster = self.get_roster(sheet_name)
        if not roster:
            return []

        column = layout.day_to_column(target.day)
        last_row = max(user.row for user in roster)
        values = self.sheets.get_values(
            layout.a1_range(sheet_name, column, layout.FIRST_USER_ROW, column, last_row)
        )
        return [user for user in roster if is_checked(_cell(values, user.row - layout.FIRST_USER_ROW, 0))]

    def resolve_day(self, day: int) -> date:
        """Date of ``day`` in the current month."""
        today = self.today()
        if not 1 <= day <= layout.days_in_month(today.year, today.month):
            raise InvalidDateError(
                f"Day must be between 1 and {layout.days_in_month(today.year, today.month)}."
            )
        return today.replace(day=day)

    def get_check_ins_by_date(self, target: date) -> List[CheckIn]:
        """Users who checked in on ``target``."""
        timestamp = self._local_midnight(target).isoformat()
        return [
            CheckIn(name=user.name, date=target.isoformat(), time=CHECK_IN_TIME_LABEL, timestamp=timestamp)
            for user in self._checked_in_users(target)
        ]

    def get_check_in_count(self, target: date) -> int:
        return len(self._checked_in_users(target))

    def get_today_check_ins(self) -> List[CheckIn]:
        return self.get_check_ins_by_date(self.today())

    def get_today_check_in_count(self) -> int:
        return self.get_check_in_count(self.today())

    # ------------------------------------------------------------------
    # Month grids and statistics
    # ------------------------------------------------------------------

    def _read_grid(self, sheet_name: str, year: int, month: int) -> MonthlyGrid:
        days = layout.days_in_month(year, month)
        roster = self.get_roster(sheet_name)
        if not roster:
            return MonthlyGrid([], [], sheet_name, days, month, year)

        last_row = max(user.row for user in roster)
        values = self.sheets.get_values(layout.grid_range(sheet_name, days, last_row))

        raw_data = []
        for user in roster:
            offset = user.row - layout.FIRST_USER_ROW
            raw_data.append([is_checked(_cell(values, offset, day)) for day in range(days)])

        return MonthlyGrid(raw_data, list(roster), sheet_name, days, month, year)

    def get_monthly_full_data(self) -> MonthlyGrid:
        """The current month's grid, creating the tab if needed."""
        today = self.today()
        self.ensure_month_sheet(today)
        return self._read_grid(layout.sheet_name_for(today), today.year, today.month)

    def get_monthly_full_data_by_date(self, target: date) -> MonthlyGrid:
        """The grid of ``target``'s month; empty if that tab does not exist."""
        sheet_name = layout.sheet_name_for(target)
        if not self._is_known_sheet(sheet_name) and sheet_name not in self.sheets.list_sheet_titles():
            logger.info(f"Sheet '{sheet_name}' does not exist")
            return MonthlyGrid(
                [], [], sheet_name, layout.days_in_month(target.year, target.month), target.month, target.year
            )
        self._remember_sheet(sheet_name)
        return self._read_grid(sheet_name, target.year, target.month)

    def get_monthly_stats(self) -> MonthlyStats:
        return summarize_month(self.get_monthly_full_data())

    def get_stats_by_date_range(self, start: date, end: date) -> RangeStats:
        """
        Per-day check-in counts between ``start`` and ``end`` inclusive.

        Months without a tab count as zero.
        """
        if start > end:
            raise InvalidDateError("startDate must not be after endDate.")
        if (end - start).days + 1 > MAX_RANGE_DAYS:
            raise InvalidDateError(f"Date range must not exceed {MAX_RANGE_DAYS} days.")

        titles = set(self.sheets.list_sheet_titles())
        counts = {}
        year, month = start.year, start.month
        while (year, month) <= (end.year, end.month):
            sheet_name = layout.sheet_name_for(date(year, month, 1))
            if sheet_name in titles:
                grid = self._read_grid(sheet_name, year, month)
                for day, count in day_counts(grid).items():
                    counts[date(year, month, int(day))] = int(count)
            month += 1
            if month > 12:
                year, month = year + 1, 1

        return summarize_range(counts, start, end)

    def get_available_sheets(self) -> List[str]:
        return self.sheets.list_sheet_titles()


def _cell(values: List[List[Any]], row: int, col: int) -> Any:
    """Value at (row, col) of a values response; omitted cells are None."""
    if row < 0 or row >= len(values):
        return None
    cells = values[row] or []
    return cells[col] if col < len(cells) else None


def build_breakfast_service(settings: Optional[BreakfastSettings] = None) -> BreakfastService:
    """Build a service from environment configuration."""
    settings = settings or get_settings()
    sheets = SheetsClient(
        spreadsheet_id=EnvConfig.get_spreadsheet_id(),
        credentials_path=EnvConfig.get_credentials_path()
    )
    return BreakfastService(sheets, settings=settings)
