#!/usr/bin/env python3
"""
Admin command line for the breakfast spreadsheet.

Uses the same service as the API, configured from .env / config.json.
"""

import argparse
import logging
import sys
from datetime import date
from typing import List, Optional

import uvicorn
from googleapiclient.errors import HttpError
from gspread.exceptions import APIError
from requests.exceptions import RequestException

from breakfast_api.config_manager import EnvConfig
from breakfast_api.core.exceptions import BreakfastError
from breakfast_api.services.breakfast import BreakfastService, build_breakfast_service

logger = logging.getLogger(__name__)


def show_sheets(service: BreakfastService) -> int:
    """List month sheets."""
    sheets = service.get_available_sheets()
    print("=" * 70)
    print(f"Month sheets ({len(sheets)})")
    print("=" * 70)
    for title in sheets:
        print(f"  - {title}")
    return 0


def show_users(service: BreakfastService, add: Optional[str] = None) -> int:
    """List registered users, optionally registering one first."""
    if add:
        user = service.add_user(add)
        print(f"Registered {user.name} (row {user.row})")
        print()

    users = service.get_registered_users()
    print(f"Registered users ({len(users)}): {', '.join(users) if users else '-'}")
    return 0


def ensure_month(service: BreakfastService) -> int:
    """Create this month's sheet from last month's if it is missing."""
    created = service.ensure_month_sheet()
    print("Created this month's sheet." if created else "This month's sheet already exists.")
    return 0


def show_stats(service: BreakfastService, start: Optional[date], end: Optional[date]) -> int:
    today = service.today()
    stats = service.get_stats_by_date_range(start or today.replace(day=1), end or today)

    print("=" * 70)
    print(f"Breakfast check-ins {stats.period}")
    print("=" * 70)
    for day, count in stats.daily_stats.items():
        if count:
            print(f"  {day}: {count}")
    print()
    print(f"Total:          {stats.total_count}")
    print(f"Active days:    {stats.active_days}")
    print(f"Average/day:    {stats.average_daily}")
    if stats.best_day:
        print(f"Best day:       {stats.best_day} ({stats.best_day_count})")
    return 0


def main(argv: Optional[List[str]] = None, service: Optional[BreakfastService] = None) -> int:
    parser = argparse.ArgumentParser(
        description='Breakfast check-in spreadsheet admin',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  breakfast-check sheets
  breakfast-check users --add KIM
  breakfast-check ensure-month
  breakfast-check stats --start 2026-10-01 --end 2026-10-19
  breakfast-check serve --port 8000

Environment (.env):
  GOOGLE_SPREADSHEET_ID=...
  SERVICE_ACCOUNT_CREDENTIALS={...service account JSON...}
        """
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    subparsers.add_parser('sheets', help='List month sheets')

    users_parser = subparsers.add_parser('users', help='List registered users')
    users_parser.add_argument('--add', metavar='NAME', help='Register a user first')

    subparsers.add_parser('ensure-month', help="Create this month's sheet if missing")

    stats_parser = subparsers.add_parser('stats', help='Check-in statistics for a date range')
    stats_parser.add_argument('--start', type=date.fromisoformat, help='First day (YYYY-MM-DD)')
    stats_parser.add_argument('--end', type=date.fromisoformat, help='Last day (YYYY-MM-DD)')

    serve_parser = subparsers.add_parser('serve', help='Run the HTTP API')
    serve_parser.add_argument('--host', default='127.0.0.1', help='Interface to bind (default: 127.0.0.1)')
    serve_parser.add_argument('--port', type=int, default=8000, help='Port to listen on (default: 8000)')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=EnvConfig.get_log_level(),
        format="%(asctime)s - %(levelname)s - %(message)s"
    )

    if args.command == 'serve':
        uvicorn.run("breakfast_api.app:app", host=args.host, port=args.port)
        return 0

    try:
        service = service or build_breakfast_service()
        if args.command == 'sheets':
            return show_sheets(service)
        if args.command == 'users':
            return show_users(service, args.add)
        if args.command == 'ensure-month':
            return ensure_month(service)
        return show_stats(service, args.start, args.end)
    except (BreakfastError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except (APIError, HttpError) as e:
        logger.error(f"Google Sheets API error: {e}")
        print(f"Error: Google Sheets request failed: {e}", file=sys.stderr)
        return 1
    except RequestException as e:
        logger.error(f"Network error: {e}")
        print("Error: Network error while connecting to Google Sheets.", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
