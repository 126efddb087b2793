"""
Breakfast Service Module

Check-ins, roster management and statistics over the month sheets.
"""
from .service import BreakfastService, build_breakfast_service

__all__ = ['BreakfastService', 'build_breakfast_service']
