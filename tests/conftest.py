import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from unittest.mock import MagicMock

import pytest
import pytz
from googleapiclient.errors import HttpError
from gspread.exceptions import APIError

from breakfast_api.cache import RosterCache, TimeBasedCacheStrategy
from breakfast_api.config_manager import BreakfastSettings
from breakfast_api.core.exceptions import SheetNotFoundError
from breakfast_api.services.breakfast import BreakfastService
from breakfast_api.services.sheets import layout

KST = pytz.timezone("Asia/Seoul")

_REF_RE = re.compile(r"^([A-Z]+)(\d*)$")


class FakeSheetsAPIError(Exception):
    pass


def sheets_api_error() -> APIError:
    response = MagicMock()
    response.json.return_value = {
        "error": {"code": 429, "message": "Quota exceeded", "status": "RESOURCE_EXHAUSTED"}
    }
    return APIError(response)


def discovery_http_error() -> HttpError:
    return HttpError(MagicMock(status=503, reason="Service Unavailable"), b'{"error": {"message": "Backend Error"}}')


class FakeSheetsClient:
    """In-memory spreadsheet speaking the SheetsClient interface."""

    def __init__(self):
        self.sheets: Dict[str, Dict[Tuple[int, int], Any]] = {}
        self.calls: List[Tuple[str, str]] = []
        self.fail_with: Optional[Exception] = None

    # -- seeding helpers ---------------------------------------------------

    def add_month_sheet(self, title: str, names: List[Optional[str]], checks: Optional[Dict[str, List[int]]] = None):
        cells = {(2, layout.column_index(layout.ROSTER_COLUMN)): "Name"}
        for offset, name in enumerate(names):
            if name is not None:
                cells[(layout.FIRST_USER_ROW + offset, layout.column_index(layout.ROSTER_COLUMN))] = name
        self.sheets[title] = cells
        for name, days in (checks or {}).items():
            row = layout.FIRST_USER_ROW + names.index(name)
            for day in days:
                cells[(row, layout.column_index(layout.day_to_column(day)))] = True
        return cells

    def cell(self, title: str, ref: str) -> Any:
        col, row = _REF_RE.match(ref).groups()
        return self.sheets[title].get((int(row), layout.column_index(col)))

    def count_calls(self, method: str, a1: Optional[str] = None) -> int:
        return sum(1 for m, r in self.calls if m == method and (a1 is None or r == a1))

    # -- SheetsClient interface ---------------------------------------------

    def _check(self):
        if self.fail_with is not None:
            raise self.fail_with

    def _parse(self, a1: str):
        title, ref = a1.split("!")
        if title not in self.sheets:
            raise FakeSheetsAPIError(f"Unable to parse range: {a1}")
        cells = self.sheets[title]
        parts = ref.split(":")
        start_col, start_row = _REF_RE.match(parts[0]).groups()
        end_col, end_row = _REF_RE.match(parts[-1]).groups()
        max_row = max((r for r, _ in cells), default=1)
        r0 = int(start_row) if start_row else 1
        r1 = int(end_row) if end_row else max_row
        return cells, r0, r1, layout.column_index(start_col), layout.column_index(end_col)

    def list_sheet_titles(self) -> List[str]:
        self._check()
        self.calls.append(("list_sheet_titles", ""))
        return list(self.sheets)

    def sheet_exists(self, title: str) -> bool:
        return title in self.list_sheet_titles()

    def get_values(self, a1: str) -> List[List[Any]]:
        self._check()
        self.calls.append(("get_values", a1))
        cells, r0, r1, c0, c1 = self._parse(a1)
        rows = []
        for r in range(r0, r1 + 1):
            row = [cells.get((r, c)) for c in range(c0, c1 + 1)]
            while row and row[-1] is None:
                row.pop()
            rows.append(["" if v is None else v for v in row])
        while rows and not rows[-1]:
            rows.pop()
        return rows

    def update_values(self, a1: str, values: List[List[Any]]):
        self._check()
        self.calls.append(("update_values", a1))
        cells, r0, _, c0, _ = self._parse(a1)
        for i, row in enumerate(values):
            for j, value in enumerate(row):
                cells[(r0 + i, c0 + j)] = value
        return {"updatedRange": a1}

    def duplicate_sheet(self, source_title: str, new_title: str):
        self._check()
        self.calls.append(("duplicate_sheet", f"{source_title}->{new_title}"))
        if source_title not in self.sheets:
            raise SheetNotFoundError(f"Sheet '{source_title}' does not exist.")
        self.sheets[new_title] = dict(self.sheets[source_title])
        return {}

    def delete_sheet(self, title: str):
        self._check()
        self.calls.append(("delete_sheet", title))
        if title not in self.sheets:
            raise SheetNotFoundError(f"Sheet '{title}' does not exist.")
        del self.sheets[title]
        return {}


class FixedClock:
    def __init__(self, moment: datetime):
        self.moment = moment

    def __call__(self) -> datetime:
        return self.moment

    def set(self, *args):
        self.moment = KST.localize(datetime(*args))


class ManualClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0):
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float):
        self.value += seconds


# Roster rows: KIM 3, LEE 4, (blank) 5, PAK 6, Jonathan 7 (ignored, wrong length)
ROSTER = ["KIM", "LEE", None, "PAK", "Jonathan"]


@pytest.fixture
def fake_sheets():
    sheets = FakeSheetsClient()
    sheets.add_month_sheet("26.09", ROSTER, {"KIM": [1, 30], "LEE": [30]})
    sheets.add_month_sheet("26.10", ROSTER, {"LEE": [1, 2], "PAK": [2]})
    return sheets


@pytest.fixture
def clock():
    return FixedClock(KST.localize(datetime(2026, 10, 19, 8, 30)))


@pytest.fixture
def cache_clock():
    return ManualClock()


@pytest.fixture
def settings():
    return BreakfastSettings()


@pytest.fixture
def service(fake_sheets, clock, cache_clock, settings):
    cache = RosterCache(TimeBasedCacheStrategy(default_ttl=settings.roster_cache_ttl, clock=cache_clock))
    known_sheets = TimeBasedCacheStrategy(default_ttl=settings.roster_cache_ttl, clock=cache_clock)
    return BreakfastService(
        fake_sheets, settings=settings, roster_cache=cache, clock=clock, sheet_cache=known_sheets
    )
