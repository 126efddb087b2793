from fastapi import HTTPException
from functools import wraps
from gspread.exceptions import APIError
from googleapiclient.errors import HttpError
from requests.exceptions import RequestException
import logging
import traceback

from breakfast_api.core.exceptions import BreakfastError

logger = logging.getLogger(__name__)


def handle_errors(func):
    """
    Decorator to handle common exceptions in API endpoints.

    Wraps an endpoint so every failure reaches the client as an HTTPException
    with a readable message:
    - BreakfastError subclasses use their own status (400 for validation and
      business rules, 500 for an unexpected spreadsheet shape)
    - Google Sheets API errors and network errors become 500
    - Anything else becomes 500

    Example:
        >>> @router.get("/example")
        >>> @handle_errors
        >>> def example_endpoint():
        >>>     # Your endpoint logic here
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)

        except HTTPException:
            raise

        except BreakfastError as e:
            if e.status_code >= 500:
                logger.error(f"{type(e).__name__}: {e.message}\nTraceback:\n{traceback.format_exc()}")
            else:
                logger.info(f"Rejected request ({type(e).__name__}): {e.message}")
            raise HTTPException(status_code=e.status_code, detail=e.message)

        except (APIError, HttpError) as e:
            tb = traceback.format_exc()
            logger.error(f"Google Sheets API error: {e}\nTraceback:\n{tb}")
            raise HTTPException(status_code=500, detail=f"Google Sheets request failed: {e}")

        except RequestException as e:
            tb = traceback.format_exc()
            logger.error(f"Network error: {e}\nTraceback:\n{tb}")
            raise HTTPException(status_code=500, detail="Network error while connecting to Google Sheets.")

        except Exception as e:
            tb = traceback.format_exc()
            logger.error(f"Unexpected server error: {e}\nTraceback:\n{tb}")
            raise HTTPException(status_code=500, detail=f"An unexpected server error occurred: {e}")
    return wrapper


def error_body(message: str, status_code: int) -> dict:
    """JSON body shared by every error response."""
    return {"success": False, "error": message, "status": status_code}
