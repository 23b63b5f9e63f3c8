import re

import pytest
from fastapi.testclient import TestClient

from config import SheetSettings
from sheets_source import DataSourceError, TabularDataSource

_RANGE_RE = re.compile(r"^'((?:[^']|'')*)'!([A-Z]+)(\d+)(?::([A-Z]+)(\d+))?$")


def _column_index(label):
    index = 0
    for char in label:
        index = index * 26 + (ord(char) - ord("A") + 1)
    return index - 1


class FakeSheetSource(TabularDataSource):
    """In-memory spreadsheet keyed by tab name; rows include the header."""

    def __init__(self, tabs=None, rich_tabs=None):
        self.tabs = {name: [list(row) for row in rows] for name, rows in (tabs or {}).items()}
        self.rich_tabs = rich_tabs or {}
        self.reads = []
        self.writes = []
        self.fail_on = set()

    def _parse(self, cell_range):
        match = _RANGE_RE.match(cell_range)
        assert match, f"unexpected range {cell_range!r}"
        tab = match.group(1).replace("''", "'")
        end_col = match.group(4) or match.group(2)
        end_row = int(match.group(5) or match.group(3))
        return tab, _column_index(end_col) + 1, end_row

    def list_tabs(self):
        if "list" in self.fail_on:
            raise DataSourceError("list failed")
        return list(self.tabs or self.rich_tabs)

    def read_values(self, cell_range):
        tab, width, end_row = self._parse(cell_range)
        self.reads.append(cell_range)
        if f"read:{tab}" in self.fail_on:
            raise DataSourceError(f"read {tab} failed")
        return [row[:width] for row in self.tabs.get(tab, [])[:end_row]]

    def read_rich_cells(self, cell_range):
        tab, width, end_row = self._parse(cell_range)
        self.reads.append(cell_range)
        return [row[:width] for row in self.rich_tabs.get(tab, [])[:end_row]]

    def write_cell(self, tab, column, row_number, value):
        if "write" in self.fail_on:
            raise DataSourceError("write failed")
        self.writes.append((tab, column, row_number, value))
        rows = self.tabs.setdefault(tab, [])
        while len(rows) < row_number:
            rows.append([])
        row = rows[row_number - 1]
        col_index = _column_index(column)
        while len(row) <= col_index:
            row.append("")
        row[col_index] = value


@pytest.fixture
def sample_tabs():
    return {
        "ERP": [
            ["System Name", "ERP", "Type of software", "Pre-approved?", "Approved Scopes",
             "Research Doc", "Website/Useful links", "Notes"],
            ["", "NetSuite", "ERP", "Yes", "<strong>All</strong> modules",
             "https://docs.example.com/netsuite", "https://netsuite.com,\nhttps://status.netsuite.com",
             "Line one\nLine <em>two</em>"],
            [],
            ["", "", "ERP", "No"],
            ["", "Acme", "ERP", "no"],
        ],
        "CRM": [
            ["CRM", "Pre-approved?", "Approved Scopes", "", "Observations"],
            ["Salesforce", "YES", "contacts", "ignored", "fine"],
        ],
        "Other Systems": [
            ["Other System", "Information"],
            ["<em>Slack</em>", "https://wiki.example.com/slack"],
        ],
    }


@pytest.fixture
def source(sample_tabs):
    return FakeSheetSource(sample_tabs)


@pytest.fixture
def settings():
    return SheetSettings(spreadsheet_id="sheet-123")


@pytest.fixture
def client(source, settings):
    from web_app import app, get_settings, get_source

    app.dependency_overrides[get_source] = lambda: source
    app.dependency_overrides[get_settings] = lambda: settings
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
