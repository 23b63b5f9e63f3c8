"""
Tabular data source used by the systems API.

The API only needs four capabilities from a spreadsheet: list its tabs, read a
rectangular range as plain values, read the same range as rich cells (text
plus formatting runs), and overwrite a single cell. ``TabularDataSource``
names that contract; ``GoogleSheetsSource`` implements it on top of the
Google Sheets v4 API with a service account.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from config import SheetSettings
from rich_text import RichCell, runs_from_api

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
TOKEN_URI = "https://oauth2.googleapis.com/token"


class DataSourceError(Exception):
    """Any failure reaching, reading or writing the tabular data source."""


# ============================================================================
# A1 ADDRESSING
# ============================================================================

def column_label(index: int) -> str:
    """Convert a zero-based column index to a column label (0 -> A, 26 -> AA)."""
    if index < 0:
        raise ValueError(f"Column index must be non-negative, got {index}")
    label = ""
    index += 1
    while index:
        index, remainder = divmod(index - 1, 26)
        label = chr(ord("A") + remainder) + label
    return label


def quote_tab(tab: str) -> str:
    """Quote a tab name for A1 notation ('It''s' style escaping)."""
    return "'" + tab.replace("'", "''") + "'"


def a1_range(tab: str, start: str, end: Optional[str] = None) -> str:
    if end:
        return f"{quote_tab(tab)}!{start}:{end}"
    return f"{quote_tab(tab)}!{start}"


def sheet_range(tab: str, max_rows: int, max_columns: int) -> str:
    """Range covering the header row plus data rows up to the ceilings."""
    return a1_range(tab, "A1", f"{column_label(max_columns - 1)}{max_rows}")


def header_range(tab: str, max_columns: int) -> str:
    return a1_range(tab, "A1", f"{column_label(max_columns - 1)}1")


# ============================================================================
# DATA SOURCES
# ============================================================================

class TabularDataSource(ABC):
    """Contract for the spreadsheet backing the systems list."""

    @abstractmethod
    def list_tabs(self) -> List[str]:
        raise NotImplementedError

    @abstractmethod
    def read_values(self, cell_range: str) -> List[List[str]]:
        """Return rows of formatted cell values; trailing empty cells may be absent."""
        raise NotImplementedError

    @abstractmethod
    def read_rich_cells(self, cell_range: str) -> List[List[RichCell]]:
        raise NotImplementedError

    @abstractmethod
    def write_cell(self, tab: str, column: str, row_number: int, value: str) -> None:
        """Overwrite one cell with the literal ``value`` (no formula parsing)."""
        raise NotImplementedError


class GoogleSheetsSource(TabularDataSource):
    """Google Sheets v4 implementation authenticated as a service account.

    The API client wraps a single ``httplib2.Http``, which must not be shared
    between threads, so each worker thread builds its own client. The
    credentials are parsed once and shared.
    """

    def __init__(
        self,
        spreadsheet_id: str,
        client_email: str = "",
        private_key: str = "",
        service: Any = None,
    ) -> None:
        self.spreadsheet_id = spreadsheet_id
        self.client_email = client_email
        self.private_key = private_key
        self._service = service
        self._credentials = None
        self._lock = threading.Lock()
        self._local = threading.local()

    @classmethod
    def from_settings(cls, settings: SheetSettings) -> "GoogleSheetsSource":
        return cls(
            settings.spreadsheet_id,
            client_email=settings.client_email,
            private_key=settings.private_key,
        )

    def _get_credentials(self):
        with self._lock:
            if self._credentials is None:
                info = {
                    "type": "service_account",
                    "client_email": self.client_email,
                    "private_key": self.private_key,
                    "token_uri": TOKEN_URI,
                }
                try:
                    self._credentials = service_account.Credentials.from_service_account_info(
                        info, scopes=SCOPES
                    )
                except (ValueError, GoogleAuthError) as exc:
                    raise DataSourceError("Invalid service account credentials.") from exc
            return self._credentials

    @property
    def service(self) -> Any:
        """Sheets API client for the calling thread, built on first use."""
        if self._service is not None:
            return self._service
        service = getattr(self._local, "service", None)
        if service is None:
            service = build("sheets", "v4", credentials=self._get_credentials(), cache_discovery=False)
            self._local.service = service
            logger.info(
                "Google Sheets client initialized for %s in %s",
                self.client_email or "(no email)",
                threading.current_thread().name,
            )
        return service

    def _execute(self, request_factory, action: str) -> Dict[str, Any]:
        if not self.spreadsheet_id:
            raise DataSourceError("GOOGLE_SHEET_ID is not configured.")
        try:
            return request_factory(self.service.spreadsheets()).execute() or {}
        except DataSourceError:
            raise
        except (HttpError, GoogleAuthError, OSError) as exc:
            raise DataSourceError(f"Failed to {action}: {exc}") from exc

    def list_tabs(self) -> List[str]:
        response = self._execute(
            lambda sheets: sheets.get(
                spreadsheetId=self.spreadsheet_id,
                fields="sheets.properties.title",
            ),
            "list sheet tabs",
        )
        titles = []
        for sheet in response.get("sheets", []):
            title = (sheet.get("properties") or {}).get("title")
            if title:
                titles.append(title)
        return titles

    def read_values(self, cell_range: str) -> List[List[str]]:
        response = self._execute(
            lambda sheets: sheets.values().get(
                spreadsheetId=self.spreadsheet_id,
                range=cell_range,
            ),
            f"read {cell_range}",
        )
        return [[str(cell) for cell in row] for row in response.get("values", [])]

    def read_rich_cells(self, cell_range: str) -> List[List[RichCell]]:
        response = self._execute(
            lambda sheets: sheets.get(
                spreadsheetId=self.spreadsheet_id,
                ranges=[cell_range],
                includeGridData=True,
                fields="sheets(data(rowData(values(formattedValue,textFormatRuns))))",
            ),
            f"read {cell_range}",
        )
        sheets = response.get("sheets") or [{}]
        data = sheets[0].get("data") or [{}]
        rows = []
        for row_data in data[0].get("rowData", []):
            cells = []
            for value in row_data.get("values", []):
                cells.append(
                    RichCell(
                        text=str(value.get("formattedValue", "")),
                        runs=runs_from_api(value.get("textFormatRuns")),
                    )
                )
            rows.append(cells)
        return rows

    def write_cell(self, tab: str, column: str, row_number: int, value: str) -> None:
        cell = a1_range(tab, f"{column}{row_number}")
        self._execute(
            lambda sheets: sheets.values().update(
                spreadsheetId=self.spreadsheet_id,
                range=cell,
                valueInputOption="RAW",
                body={"values": [[value]]},
            ),
            f"update {cell}",
        )
        logger.info("Updated %s", cell)
