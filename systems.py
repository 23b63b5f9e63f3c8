"""
Flatten the spreadsheet tabs into one list of system records and write
single fields back.

Every tab has its own header row; a record maps header text to the cell
value for one data row, plus ``id`` (``<tab>__<row>``) and ``sheet``.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Sequence, Tuple

from config import SheetSettings
from inquiry import ID_DELIMITER, ID_KEY, NAME_COLUMNS, SHEET_KEY
from rich_text import render_cell, strip_markup
from sheets_source import (
    TabularDataSource,
    column_label,
    header_range,
    sheet_range,
)

logger = logging.getLogger(__name__)


class SystemsError(Exception):
    """Base class for request-level errors raised by this module."""


class InvalidIdError(SystemsError):
    """A composite system id that does not name a tab and a row."""


class ColumnNotFoundError(SystemsError):
    """The requested field is not a header of the target tab."""


def make_system_id(tab: str, row_number: int) -> str:
    return f"{tab}{ID_DELIMITER}{row_number}"


def parse_system_id(system_id: str) -> Tuple[str, int]:
    """Split ``<tab>__<row>`` into the tab name and 1-based row number.

    The last delimiter wins, so tab names containing ``__`` still parse.
    """
    tab, sep, row_text = (system_id or "").rpartition(ID_DELIMITER)
    if not sep or not tab or not row_text.isdigit():
        raise InvalidIdError(f"Invalid system id: {system_id!r}")
    row_number = int(row_text)
    if row_number < 1:
        raise InvalidIdError(f"Invalid system id: {system_id!r}")
    return tab, row_number


def has_system_name(record: Dict[str, str]) -> bool:
    """True when any name column holds text once markup is stripped."""
    return any(strip_markup(record.get(column)).strip() for column in NAME_COLUMNS)


def flatten_tab(tab: str, rows: Sequence[Sequence[str]]) -> List[Dict[str, str]]:
    """Turn one tab's rows (header first) into records, dropping blank rows."""
    if not rows:
        return []
    headers = [str(header) if header is not None else "" for header in rows[0]]
    if not any(header.strip() for header in headers):
        return []

    records = []
    # Data rows start on spreadsheet row 2.
    for row_number, row in enumerate(rows[1:], start=2):
        record: Dict[str, str] = {}
        for col_index, header in enumerate(headers):
            if not header.strip():
                continue
            value = row[col_index] if col_index < len(row) else ""
            record[header] = "" if value is None else value
        if not has_system_name(record):
            continue
        record[ID_KEY] = make_system_id(tab, row_number)
        record[SHEET_KEY] = tab
        records.append(record)
    return records


def _read_tab(source: TabularDataSource, tab: str, settings: SheetSettings) -> List[List[str]]:
    cell_range = sheet_range(tab, settings.max_rows, settings.max_columns)
    if not settings.rich_text:
        return source.read_values(cell_range)
    rich_rows = source.read_rich_cells(cell_range)
    if not rich_rows:
        return []
    # Headers are record keys and must match the plain headers used for writes.
    headers = [cell.text for cell in rich_rows[0]]
    return [headers] + [[render_cell(cell) for cell in row] for row in rich_rows[1:]]


def list_systems(source: TabularDataSource, settings: SheetSettings) -> List[Dict[str, str]]:
    """Records from every tab, in tab order then row order.

    Tabs are read one after another; any ``DataSourceError`` aborts the
    whole listing.
    """
    tabs = source.list_tabs()
    systems: List[Dict[str, str]] = []
    for tab in tabs:
        systems.extend(flatten_tab(tab, _read_tab(source, tab, settings)))
    logger.info("Loaded %d systems from %d tabs", len(systems), len(tabs))
    return systems


def update_field(
    source: TabularDataSource,
    system_id: str,
    field_name: str,
    value: str,
    settings: SheetSettings,
) -> None:
    """Overwrite ``field_name`` of the row named by ``system_id`` with ``value``."""
    tab, row_number = parse_system_id(system_id)

    header_rows = source.read_values(header_range(tab, settings.max_columns))
    headers = header_rows[0] if header_rows else []
    try:
        col_index = list(headers).index(field_name)
    except ValueError:
        raise ColumnNotFoundError(f"{field_name} column not found") from None

    source.write_cell(tab, column_label(col_index), row_number, value)
    logger.info("Saved %s for %s", field_name, system_id)
