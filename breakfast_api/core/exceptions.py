"""
Error categories surfaced by the breakfast service.

Each error carries the HTTP status the API answers with.
"""


class BreakfastError(Exception):
    """Base class for expected failures."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BreakfastError):
    """Missing or malformed input."""

    status_code = 400


class InvalidNameError(ValidationError):
    pass


class InvalidDateError(ValidationError):
    pass


class BusinessRuleError(BreakfastError):
    """Input is well-formed but not allowed in the current state."""

    status_code = 400


class UnregisteredUserError(BusinessRuleError):
    pass


class DuplicateCheckInError(BusinessRuleError):
    pass


class DuplicateUserError(BusinessRuleError):
    pass


class UpstreamError(BreakfastError):
    """The spreadsheet is not in the shape the service expects."""

    status_code = 500


class SheetNotFoundError(UpstreamError):
    pass


class MissingPreviousSheetError(UpstreamError):
    """A new month tab cannot be created because there is nothing to copy."""
