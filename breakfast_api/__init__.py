"""
Breakfast check-in API backed by a Google Spreadsheet.
"""
__version__ = "1.0.0"
