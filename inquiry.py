#!/usr/bin/env python3
"""
Inquiry Compilation Core Module
Shared constants for the systems lookup API and its browser views.
"""

# ============================================================================
# CORE CONSTANTS
# ============================================================================
APP_TITLE = "Inquiry Compilation"
APP_VERSION = "1.0.0"
LIVENESS_TEXT = "Inquiry Compilation API running"

# ============================================================================
# SPREADSHEET LAYOUT
# ============================================================================
# Exact column headings shown in the detail view, in display order.
DISPLAY_HEADERS = [
    "System Name",
    "Type of software",
    "Pre-approved?",
    "Pricing",
    "Next Steps",
    "Notes",
    "API Docs",
    "Approved Scopes",
    "Approval Date",
    "Research Doc",
    "Website/Useful links",
]

# Each tab names its system in one of these columns.
NAME_COLUMNS = ("System Name", "ERP", "CRM", "Other System")

ID_DELIMITER = "__"

# Synthetic keys added to every record.
ID_KEY = "id"
SHEET_KEY = "sheet"

# ============================================================================
# WRITABLE FIELDS
# ============================================================================
# URL segment / JSON body key -> spreadsheet column header.
WRITABLE_FIELDS = {
    "scope": "Approved Scopes",
    "observations": "Observations",
}

EDITABLE_FIELD = WRITABLE_FIELDS["scope"]

# ============================================================================
# DETAIL VIEW FIELDS
# ============================================================================
PRE_APPROVED_FIELD = "Pre-approved?"
RESEARCH_DOC_FIELD = "Research Doc"
RESEARCH_DOC_FALLBACK_FIELD = "Information"
LINKS_FIELD = "Website/Useful links"

NO_NAME_TEXT = "(no name)"
EMPTY_VALUE_TEXT = "-"
NO_SYSTEMS_TEXT = "No systems found"

SAVE_OK_TEXT = "Approved scopes saved"
SAVE_ERROR_TEXT = "Error saving scopes"
SAVE_MISSING_ID_TEXT = "Cannot save: missing system id"

SCOPE_PLACEHOLDER = "Add scope notes here..."
SAVE_BUTTON_TEXT = "Save scopes"
RESEARCH_DOC_BUTTON_TEXT = "Open Research Doc"
