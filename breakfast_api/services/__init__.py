"""
Service layer

Usage:
    from breakfast_api.services.breakfast import BreakfastService
    from breakfast_api.services.sheets import SheetsClient
"""
from .breakfast import BreakfastService, build_breakfast_service
from .sheets import SheetsClient

__all__ = [
    'BreakfastService',
    'build_breakfast_service',
    'SheetsClient',
]
