"""
Google Sheets Service Module

Spreadsheet access and month-sheet address arithmetic.
"""
from .client import SheetsClient
from . import layout

__all__ = ['SheetsClient', 'layout']
