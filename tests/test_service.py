import threading
import time
from datetime import date, datetime

import pytest
import pytz

from breakfast_api.core.exceptions import (
    DuplicateCheckInError,
    DuplicateUserError,
    InvalidDateError,
    InvalidNameError,
    MissingPreviousSheetError,
    UnregisteredUserError,
)
from breakfast_api.services.sheets import layout

from .conftest import KST, ROSTER, FakeSheetsAPIError


# ---------------------------------------------------------------------------
# Roster
# ---------------------------------------------------------------------------

def test_roster_keeps_three_character_names_with_their_rows(service):
    roster = service.get_roster("26.10")
    assert [(u.name, u.row) for u in roster] == [("KIM", 3), ("LEE", 4), ("PAK", 6)]


def test_roster_is_cached_per_sheet(service, fake_sheets):
    service.get_roster("26.10")
    service.get_roster("26.10")
    assert fake_sheets.count_calls("get_values", "26.10!E:E") == 1


def test_roster_cache_expires(service, fake_sheets, cache_clock):
    service.get_roster("26.10")
    cache_clock.advance(301)
    service.get_roster("26.10")
    assert fake_sheets.count_calls("get_values", "26.10!E:E") == 2


def test_registered_users(service):
    assert service.get_registered_users() == ["KIM", "LEE", "PAK"]


def test_add_user_writes_below_last_occupied_row(service, fake_sheets):
    service.get_registered_users()
    user = service.add_user(" CHO ")

    assert (user.name, user.row) == ("CHO", 8)
    assert fake_sheets.cell("26.10", "E8") == "CHO"
    assert service.get_registered_users() == ["KIM", "LEE", "PAK", "CHO"]


@pytest.mark.parametrize("name", ["AB", "ABCD", "", "   ", None])
def test_add_user_rejects_names_not_three_characters(service, name):
    with pytest.raises(InvalidNameError):
        service.add_user(name)


def test_add_user_rejects_duplicates(service):
    with pytest.raises(DuplicateUserError):
        service.add_user("KIM")


def test_add_user_on_empty_roster_starts_at_row_three(service, fake_sheets):
    fake_sheets.add_month_sheet("26.10", [])
    assert service.add_user("CHO").row == 3


# ---------------------------------------------------------------------------
# Check-ins
# ---------------------------------------------------------------------------

def test_check_in_marks_the_day_cell(service, fake_sheets):
    result = service.check_in("KIM")

    assert result.name == "KIM"
    assert result.sheet_name == "26.10"
    assert result.day == 19
    assert result.warning is None
    assert fake_sheets.cell("26.10", f"{layout.day_to_column(19)}3") is True


def test_second_check_in_same_day_is_rejected_and_count_unchanged(service):
    service.check_in("KIM")
    before = service.get_today_check_in_count()

    with pytest.raises(DuplicateCheckInError):
        service.check_in("KIM")

    assert service.get_today_check_in_count() == before == 1
    assert service.get_monthly_stats().total_count == 4


def test_check_in_detects_cells_written_as_text(service, fake_sheets):
    fake_sheets.sheets["26.10"][(3, layout.column_index(layout.day_to_column(19)))] = "TRUE"
    with pytest.raises(DuplicateCheckInError):
        service.check_in("KIM")


def test_check_in_unregistered_user(service):
    with pytest.raises(UnregisteredUserError):
        service.check_in("CHO")


def test_check_in_ignores_names_filtered_from_roster(service):
    with pytest.raises(InvalidNameError):
        service.check_in("Jonathan")


@pytest.mark.parametrize("name", ["KI", "KIMS", "", None])
def test_check_in_requires_three_character_name(service, name):
    with pytest.raises(InvalidNameError):
        service.check_in(name)


def test_check_in_trims_name(service):
    assert service.check_in("  LEE ").name == "LEE"


def test_check_in_outside_breakfast_hours_is_accepted_with_warning(service, fake_sheets):
    result = service.check_in("PAK", KST.localize(datetime(2026, 10, 19, 7, 15)))

    assert result.warning is not None
    assert "08:00-10:00" in result.warning
    assert fake_sheets.cell("26.10", f"{layout.day_to_column(19)}6") is True


def test_check_in_at_window_end_gets_warning(service):
    assert service.check_in("PAK", KST.localize(datetime(2026, 10, 19, 10, 0))).warning


def test_check_in_time_is_converted_to_local_date(service, fake_sheets):
    # 23:30 UTC on the 18th is 08:30 KST on the 19th
    result = service.check_in("KIM", pytz.utc.localize(datetime(2026, 10, 18, 23, 30)))

    assert result.day == 19
    assert result.warning is None
    assert fake_sheets.cell("26.10", f"{layout.day_to_column(19)}3") is True


def test_check_in_for_previous_month_uses_that_sheet(service, fake_sheets):
    service.check_in("PAK", KST.localize(datetime(2026, 9, 15, 9, 0)))
    assert fake_sheets.cell("26.09", f"{layout.day_to_column(15)}6") is True


def test_check_in_for_month_without_sheet(service):
    with pytest.raises(UnregisteredUserError):
        service.check_in("KIM", KST.localize(datetime(2026, 5, 15, 9, 0)))


def test_check_ins_by_date(service):
    service.check_in("KIM")
    check_ins = service.get_check_ins_by_date(date(2026, 10, 19))

    assert [c.name for c in check_ins] == ["KIM"]
    assert check_ins[0].date == "2026-10-19"
    assert check_ins[0].timestamp == "2026-10-19T00:00:00+09:00"

    assert [c.name for c in service.get_check_ins_by_date(date(2026, 10, 2))] == ["LEE", "PAK"]
    assert service.get_check_in_count(date(2026, 10, 2)) == 2


def test_check_ins_for_missing_month_are_empty(service):
    assert service.get_check_ins_by_date(date(2026, 3, 2)) == []


def test_resolve_day(service):
    assert service.resolve_day(31) == date(2026, 10, 31)
    for day in (0, 32):
        with pytest.raises(InvalidDateError):
            service.resolve_day(day)


def test_resolve_day_respects_month_length(service, clock):
    clock.set(2026, 11, 3, 9, 0)
    service.ensure_month_sheet()
    with pytest.raises(InvalidDateError):
        service.resolve_day(31)


def test_concurrent_check_ins_for_one_user_write_once(service, fake_sheets, monkeypatch):
    cell = layout.a1_range("26.10", layout.day_to_column(19), 3)
    service.get_roster("26.10")
    service.ensure_month_sheet()
    get_values = fake_sheets.get_values

    def slow_get_values(a1):
        values = get_values(a1)
        if a1 == cell:
            time.sleep(0.05)
        return values

    monkeypatch.setattr(fake_sheets, "get_values", slow_get_values)
    barrier = threading.Barrier(2)
    results, errors = [], []

    def attempt():
        barrier.wait()
        try:
            results.append(service.check_in("KIM"))
        except DuplicateCheckInError as e:
            errors.append(e)

    threads = [threading.Thread(target=attempt) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(results) == 1
    assert len(errors) == 1
    assert fake_sheets.count_calls("update_values", cell) == 1
    assert fake_sheets.cell("26.10", "X3") is True


# ---------------------------------------------------------------------------
# Month sheet lifecycle
# ---------------------------------------------------------------------------

def test_new_month_is_copied_from_previous_with_check_ins_cleared(service, fake_sheets, clock):
    clock.set(2026, 11, 2, 8, 45)

    assert service.ensure_month_sheet() is True
    assert "26.11" in fake_sheets.sheets
    assert service.get_roster("26.11") == service.get_roster("26.10")

    grid = service.get_monthly_full_data()
    assert grid.sheet_name == "26.11"
    assert grid.days_in_month == 30
    assert grid.total() == 0
    # day 31 of the copied tab is cleared too
    assert fake_sheets.cell("26.11", "AJ4") is False
    # the source month is untouched
    assert fake_sheets.cell("26.10", "G4") is True


def test_ensure_month_sheet_is_a_noop_when_present(service, fake_sheets):
    assert service.ensure_month_sheet(date(2026, 10, 1)) is False
    assert fake_sheets.count_calls("duplicate_sheet") == 0


def test_new_month_rolls_over_the_year(service, fake_sheets, clock):
    fake_sheets.add_month_sheet("26.12", ROSTER, {"KIM": [24]})
    clock.set(2027, 1, 4, 8, 10)

    service.check_in("KIM")

    assert "27.01" in fake_sheets.sheets
    assert fake_sheets.cell("27.01", f"{layout.day_to_column(24)}3") is False
    assert fake_sheets.cell("27.01", f"{layout.day_to_column(4)}3") is True


def test_new_month_without_previous_sheet_fails(service, fake_sheets, clock):
    clock.set(2026, 12, 1, 8, 30)

    with pytest.raises(MissingPreviousSheetError):
        service.get_monthly_full_data()

    assert "26.12" not in fake_sheets.sheets
    assert fake_sheets.count_calls("duplicate_sheet") == 0


def test_failed_clear_removes_the_copied_sheet(service, fake_sheets, clock, monkeypatch):
    clock.set(2026, 11, 2, 8, 45)
    update_values = fake_sheets.update_values

    def broken_update(a1, values):
        raise FakeSheetsAPIError("quota exceeded")

    monkeypatch.setattr(fake_sheets, "update_values", broken_update)
    with pytest.raises(FakeSheetsAPIError):
        service.ensure_month_sheet()

    assert "26.11" not in fake_sheets.sheets
    assert fake_sheets.count_calls("delete_sheet", "26.11") == 1

    monkeypatch.setattr(fake_sheets, "update_values", update_values)
    assert service.ensure_month_sheet() is True
    assert service.get_monthly_full_data().total() == 0
    assert fake_sheets.cell("26.11", "G4") is False


def test_new_month_clears_rows_of_names_not_on_roster(service, fake_sheets, clock):
    fake_sheets.add_month_sheet("26.10", ROSTER, {"LEE": [2], "Jonathan": [2, 5]})
    clock.set(2026, 11, 2, 8, 45)

    service.ensure_month_sheet()

    assert fake_sheets.cell("26.11", "G7") is False
    assert fake_sheets.cell("26.11", "J7") is False


def test_deleted_month_sheet_is_recreated_after_ttl(service, fake_sheets, cache_clock):
    service.get_monthly_full_data()
    del fake_sheets.sheets["26.10"]

    assert service.ensure_month_sheet() is False

    cache_clock.advance(301)
    assert service.ensure_month_sheet() is True
    assert "26.10" in fake_sheets.sheets
    assert service.get_monthly_full_data().total() == 0


# ---------------------------------------------------------------------------
# Grids and statistics
# ---------------------------------------------------------------------------

def test_monthly_full_data(service):
    grid = service.get_monthly_full_data()

    assert grid.sheet_name == "26.10"
    assert [u.name for u in grid.user_list] == ["KIM", "LEE", "PAK"]
    assert len(grid.raw_data) == 3
    assert all(len(row) == 31 for row in grid.raw_data)
    assert grid.raw_data[1][:2] == [True, True]
    assert grid.raw_data[2][:2] == [False, True]
    assert grid.total() == 3


def test_monthly_data_by_date_for_missing_month_is_empty(service, fake_sheets):
    grid = service.get_monthly_full_data_by_date(date(2025, 2, 1))

    assert grid.raw_data == []
    assert grid.sheet_name == "25.02"
    assert grid.days_in_month == 28
    assert "25.02" not in fake_sheets.sheets


def test_monthly_data_by_date(service):
    grid = service.get_monthly_full_data_by_date(date(2026, 9, 1))
    assert grid.days_in_month == 30
    assert grid.total() == 3


def test_monthly_stats(service):
    service.check_in("KIM")
    stats = service.get_monthly_stats()

    assert stats.total_count == 4
    assert stats.daily_stats["2026-10-02"] == 2
    assert stats.daily_stats["2026-10-19"] == 1
    assert stats.active_days == 3
    assert stats.average_daily == 1.33
    assert stats.best_day == "2026-10-02"
    assert stats.weekly_stats["10-W1"] == 3


def test_stats_by_date_range_spans_months(service):
    stats = service.get_stats_by_date_range(date(2026, 9, 29), date(2026, 10, 2))

    assert stats.daily_stats == {
        "2026-09-29": 0,
        "2026-09-30": 2,
        "2026-10-01": 1,
        "2026-10-02": 2,
    }
    assert stats.total_count == 5
    assert stats.average_daily == round(5 / 3, 2)


def test_stats_by_date_range_treats_missing_months_as_zero(service):
    stats = service.get_stats_by_date_range(date(2026, 8, 30), date(2026, 9, 1))
    assert stats.total_count == 1
    assert stats.daily_stats["2026-08-31"] == 0


def test_stats_by_date_range_validation(service):
    with pytest.raises(InvalidDateError):
        service.get_stats_by_date_range(date(2026, 10, 2), date(2026, 10, 1))
    with pytest.raises(InvalidDateError):
        service.get_stats_by_date_range(date(2024, 1, 1), date(2026, 1, 1))


def test_available_sheets(service):
    assert service.get_available_sheets() == ["26.09", "26.10"]
