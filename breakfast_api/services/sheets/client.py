"""
Google Sheets Client

Thin client over the breakfast spreadsheet: reads and writes cell ranges
and manages month tabs. Failures from the API propagate to the caller
untouched; nothing here retries.
"""
import os
import json
import gspread
from google.oauth2.service_account import Credentials
from googleapiclient.discovery import build
import logging
from typing import List, Dict, Any, Optional
from pathlib import Path

from breakfast_api.core.exceptions import SheetNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"


class SheetsClient:
    """
    Google Sheets client bound to one spreadsheet.

    Features:
    - Service account authentication from several sources
    - Lazy construction of the gspread and Sheets v4 clients
    - Unformatted reads so checkbox cells come back as booleans
    """

    # Google Sheets API scopes
    SCOPES = [
        'https://www.googleapis.com/auth/spreadsheets',
        'https://www.googleapis.com/auth/drive'
    ]

    def __init__(
        self,
        spreadsheet_id: str,
        credentials_path: Optional[str] = None,
        credentials_info: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize Google Sheets client.

        Args:
            spreadsheet_id: ID of the breakfast spreadsheet
            credentials_path: Path to service account JSON
            credentials_info: Parsed service account JSON
        """
        if not spreadsheet_id:
            raise ValueError("spreadsheet_id is required")
        self.spreadsheet_id = spreadsheet_id
        self.credentials_path = credentials_path
        self.credentials_info = credentials_info
        self._gspread_client = None
        self._sheets_service = None
        self._spreadsheet = None

    @property
    def gspread_client(self) -> gspread.Client:
        """Lazy-load gspread client."""
        if self._gspread_client is None:
            creds = self._get_credentials()
            self._gspread_client = gspread.authorize(creds)
        return self._gspread_client

    @property
    def sheets_service(self):
        """Lazy-load Google Sheets API service."""
        if self._sheets_service is None:
            creds = self._get_credentials()
            self._sheets_service = build('sheets', 'v4', credentials=creds, cache_discovery=False)
        return self._sheets_service

    @property
    def spreadsheet(self) -> gspread.Spreadsheet:
        if self._spreadsheet is None:
            logger.info(f"Opening spreadsheet: {self.spreadsheet_id}")
            self._spreadsheet = self.gspread_client.open_by_key(self.spreadsheet_id)
        return self._spreadsheet

    def _get_credentials(self) -> Credentials:
        """Get Google API credentials."""
        # 1) Explicit overrides
        if self.credentials_info:
            return Credentials.from_service_account_info(self.credentials_info, scopes=self.SCOPES)
        if self.credentials_path:
            return Credentials.from_service_account_file(
                self.credentials_path,
                scopes=self.SCOPES
            )

        # 2) JSON string in env (preferred)
        json_env = os.getenv("SERVICE_ACCOUNT_CREDENTIALS")
        if json_env:
            try:
                data = json.loads(json_env)
                return Credentials.from_service_account_info(data, scopes=self.SCOPES)
            except ValueError:
                logger.exception("Failed to load service account from SERVICE_ACCOUNT_CREDENTIALS env var")

        # 3) Service account email + PEM key in env
        email = os.getenv("GOOGLE_SPREAD_SERVICE_EMAIL")
        pem_key = os.getenv("GOOGLE_SPREAD_API_PEM_KEY")
        if email and pem_key:
            return Credentials.from_service_account_info(
                {
                    "client_email": email,
                    "private_key": pem_key.replace("\\n", "\n"),
                    "token_uri": DEFAULT_TOKEN_URI,
                },
                scopes=self.SCOPES
            )

        # 4) Path from GOOGLE_APPLICATION_CREDENTIALS
        gac_path = os.getenv("GOOGLE_APPLICATION_CREDENTIALS")
        if gac_path and Path(gac_path).exists():
            return Credentials.from_service_account_file(
                gac_path,
                scopes=self.SCOPES
            )

        # 5) Legacy gspread default location
        return Credentials.from_service_account_file(
            Path.home() / '.config' / 'gspread' / 'service_account.json',
            scopes=self.SCOPES
        )

    def _sheet_properties(self) -> List[Dict[str, Any]]:
        response = self.sheets_service.spreadsheets().get(
            spreadsheetId=self.spreadsheet_id,
            fields='sheets.properties'
        ).execute()
        return [sheet.get('properties', {}) for sheet in response.get('sheets', [])]

    def list_sheet_titles(self) -> List[str]:
        """Titles of every tab in the spreadsheet, in tab order."""
        return [props['title'] for props in self._sheet_properties() if props.get('title')]

    def sheet_exists(self, title: str) -> bool:
        return title in self.list_sheet_titles()

    def get_values(self, a1_range: str) -> List[List[Any]]:
        """
        Read a range of cells.

        Args:
            a1_range: Range in A1 notation, e.g. '25.10!F3:AJ40'

        Returns:
            Rows of cell values; trailing empty rows and cells are omitted
        """
        response = self.spreadsheet.values_get(
            a1_range,
            params={'valueRenderOption': 'UNFORMATTED_VALUE'}
        )
        return response.get('values', [])

    def update_values(self, a1_range: str, values: List[List[Any]]) -> Dict[str, Any]:
        """
        Overwrite a range of cells with raw values.

        Args:
            a1_range: Range in A1 notation
            values: 2D list of values [[row1], [row2], ...]
        """
        logger.info(f"Updating {len(values)} rows at '{a1_range}'")
        return self.spreadsheet.values_update(
            a1_range,
            params={'valueInputOption': 'RAW'},
            body={'values': values}
        )

    def batch_update(self, requests: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Execute batch update requests on the spreadsheet.

        Args:
            requests: List of update request objects

        Returns:
            API response dictionary
        """
        body = {'requests': requests}
        logger.info(f"Executing {len(requests)} batch update requests")
        return self.sheets_service.spreadsheets().batchUpdate(
            spreadsheetId=self.spreadsheet_id,
            body=body
        ).execute()

    def duplicate_sheet(self, source_title: str, new_title: str) -> Dict[str, Any]:
        """
        Copy a tab inside the spreadsheet under a new title.

        Raises:
            SheetNotFoundError: If no tab is named ``source_title``
        """
        source_id = self._sheet_id(source_title)

        logger.info(f"Duplicating sheet '{source_title}' as '{new_title}'")
        return self.batch_update([{
            'duplicateSheet': {
                'sourceSheetId': source_id,
                'newSheetName': new_title
            }
        }])

    def _sheet_id(self, title: str) -> int:
        props = next((p for p in self._sheet_properties() if p.get('title') == title), None)
        if props is None or props.get('sheetId') is None:
            raise SheetNotFoundError(f"Sheet '{title}' does not exist.")
        return props['sheetId']

    def delete_sheet(self, title: str) -> Dict[str, Any]:
        """
        Remove a tab from the spreadsheet.

        Raises:
            SheetNotFoundError: If no tab is named ``title``
        """
        sheet_id = self._sheet_id(title)
        logger.info(f"Deleting sheet '{title}'")
        return self.batch_update([{'deleteSheet': {'sheetId': sheet_id}}])
