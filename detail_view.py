"""
Browser views for the systems list: search, detail cards and the scope editor.

Each field is turned into a small context dict by the strategy table below;
the Jinja2 templates in ``templates/`` turn those into HTML. Rendering is a
pure function of an ``AppState`` (the record list fetched on load) plus the
current query and selection. The only mutation is ``save_editable_field``,
which updates the state after the write is confirmed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional
from urllib.parse import quote, urlencode

from markupsafe import Markup

import config
from inquiry import (
    APP_TITLE,
    DISPLAY_HEADERS,
    EDITABLE_FIELD,
    EMPTY_VALUE_TEXT,
    ID_KEY,
    LINKS_FIELD,
    NAME_COLUMNS,
    NO_NAME_TEXT,
    NO_SYSTEMS_TEXT,
    PRE_APPROVED_FIELD,
    RESEARCH_DOC_BUTTON_TEXT,
    RESEARCH_DOC_FALLBACK_FIELD,
    RESEARCH_DOC_FIELD,
    SAVE_BUTTON_TEXT,
    SAVE_ERROR_TEXT,
    SAVE_MISSING_ID_TEXT,
    SAVE_OK_TEXT,
    SCOPE_PLACEHOLDER,
    SHEET_KEY,
)
from rich_text import strip_markup
from sheets_source import DataSourceError
from systems import SystemsError
from ui_helpers import get_palette, render_fragment

Record = Dict[str, str]
Writer = Callable[[str, str, str], None]
FieldContext = Dict[str, Any]

_LINK_SPLIT_RE = re.compile(r"[\n,]+")

EMPTY_FIELD: FieldContext = {"kind": "empty"}


def get_display_name(record: Record) -> str:
    for column in NAME_COLUMNS:
        plain = strip_markup(record.get(column)).strip()
        if plain:
            return plain
    return NO_NAME_TEXT


def search(query: str, records: Iterable[Record]) -> List[Record]:
    """Records whose display name contains ``query``, ignoring case."""
    needle = (query or "").lower()
    return [record for record in records if needle in get_display_name(record).lower()]


# ============================================================================
# FIELD RULES
# ============================================================================

def pre_approved_text(plain: str) -> tuple[bool, str]:
    """Return (is_yes, display text) for the Pre-approved? field."""
    if not plain:
        return False, EMPTY_VALUE_TEXT
    return plain.lower() == "yes", plain[0].upper() + plain[1:].lower()


def research_doc_url(record: Record) -> Optional[str]:
    candidate = strip_markup(record.get(RESEARCH_DOC_FIELD)).strip()
    if not candidate:
        candidate = strip_markup(record.get(RESEARCH_DOC_FALLBACK_FIELD)).strip()
    if candidate.startswith(("http://", "https://")):
        return candidate
    return None


def split_links(plain: str) -> List[str]:
    return [piece.strip() for piece in _LINK_SPLIT_RE.split(plain or "") if piece.strip()]


def is_yes_no(plain: str) -> bool:
    return plain.lower() in ("yes", "no")


# ============================================================================
# FIELD STRATEGIES
# ============================================================================
# Each strategy takes (record, field, raw value, plain value) and returns the
# context for one card in templates/_detail.html.

def editable_scope_field(record: Record, field: str, value: str, plain: str) -> FieldContext:
    system_id = record.get(ID_KEY)
    action = f"/ui/systems/{quote(system_id, safe='')}/scope" if system_id else None
    return {
        "kind": "scope",
        "text": plain,
        "action": action,
        "placeholder": SCOPE_PLACEHOLDER,
        "button": SAVE_BUTTON_TEXT,
        "notice": SAVE_MISSING_ID_TEXT,
    }


def pre_approved_field(record: Record, field: str, value: str, plain: str) -> FieldContext:
    is_yes, text = pre_approved_text(plain)
    return {"kind": "pre_approved", "is_yes": is_yes, "text": text, "empty": not plain}


def research_doc_field(record: Record, field: str, value: str, plain: str) -> FieldContext:
    url = research_doc_url(record)
    if url is None:
        return EMPTY_FIELD
    return {"kind": "document", "url": url, "label": RESEARCH_DOC_BUTTON_TEXT}


def link_list_field(record: Record, field: str, value: str, plain: str) -> FieldContext:
    links = split_links(plain)
    if not links:
        return EMPTY_FIELD
    return {"kind": "links", "urls": links}


def yes_no_field(record: Record, field: str, value: str, plain: str) -> FieldContext:
    return {"kind": "yes_no", "text": plain.upper()}


def default_field(record: Record, field: str, value: str, plain: str) -> FieldContext:
    if not value:
        return EMPTY_FIELD
    return {"kind": "value", "value": value}


FIELD_STRATEGIES = {
    EDITABLE_FIELD: editable_scope_field,
    PRE_APPROVED_FIELD: pre_approved_field,
    RESEARCH_DOC_FIELD: research_doc_field,
    LINKS_FIELD: link_list_field,
}


def strategy_for(field: str, plain: str):
    strategy = FIELD_STRATEGIES.get(field)
    if strategy is not None:
        return strategy
    if is_yes_no(plain):
        return yes_no_field
    return default_field


def field_context(record: Record, field: str) -> FieldContext:
    raw = record.get(field)
    value = "" if raw is None else str(raw).strip()
    plain = strip_markup(value).strip()
    return {"title": field, **strategy_for(field, plain)(record, field, value, plain)}


def detail_context(record: Record, field_order: Iterable[str] = DISPLAY_HEADERS) -> Dict[str, Any]:
    sheet = record.get(SHEET_KEY)
    system_id = record.get(ID_KEY)
    meta = None
    if sheet or system_id:
        meta = (f"Sheet: {sheet}" if sheet else "") + (f"  |  ID: {system_id}" if system_id else "")
    return {
        "fields": [field_context(record, field) for field in field_order],
        "meta": meta,
    }


def render_detail(record: Optional[Record], field_order: Iterable[str] = DISPLAY_HEADERS) -> Markup:
    """Detail cards for ``record`` in ``field_order``, then the sheet/id line."""
    if not record:
        return Markup("")
    return render_fragment("_detail.html", detail=detail_context(record, field_order))


def list_context(items: List[Record], selected_id: Optional[str] = None, query: str = "") -> List[Dict[str, Any]]:
    entries = []
    for record in items:
        system_id = record.get(ID_KEY, "")
        params = {"id": system_id}
        if query:
            params["q"] = query
        entries.append({
            "name": get_display_name(record),
            "href": f"/ui?{urlencode(params)}",
            "selected": bool(system_id) and system_id == selected_id,
        })
    return entries


def render_list(items: List[Record], selected_id: Optional[str] = None, query: str = "") -> Markup:
    return render_fragment(
        "_list.html",
        items=list_context(items, selected_id, query),
        empty_text=NO_SYSTEMS_TEXT,
    )


# ============================================================================
# APPLICATION STATE
# ============================================================================

class AppState:
    """The record list held by the browser view.

    Replaced wholesale on load; individual records change only through
    ``apply_confirmed_write``.
    """

    def __init__(self, records: Optional[Iterable[Record]] = None) -> None:
        self.records: List[Record] = list(records or [])

    def replace(self, records: Iterable[Record]) -> None:
        self.records = list(records)

    def find(self, system_id: Optional[str]) -> Optional[Record]:
        if not system_id:
            return None
        for record in self.records:
            if record.get(ID_KEY) == system_id:
                return record
        return None

    def filtered(self, query: str) -> List[Record]:
        return search(query, self.records)

    def apply_confirmed_write(self, system_id: str, field: str, value: str) -> bool:
        record = self.find(system_id)
        if record is None:
            return False
        record[field] = value
        return True


@dataclass(frozen=True)
class SaveResult:
    ok: bool
    message: str
    error: Optional[Exception] = None


def save_editable_field(state: AppState, system_id: Optional[str], new_text: str, writer: Writer) -> SaveResult:
    """Send the edited scope text through ``writer`` and apply it on success.

    ``writer(system_id, field_name, value)`` raises on failure, in which case
    the state is left untouched and the error is kept on the result.
    """
    if not system_id:
        return SaveResult(False, SAVE_MISSING_ID_TEXT)
    try:
        writer(system_id, EDITABLE_FIELD, new_text)
    except (DataSourceError, SystemsError) as exc:
        return SaveResult(False, SAVE_ERROR_TEXT, error=exc)
    state.apply_confirmed_write(system_id, EDITABLE_FIELD, new_text)
    return SaveResult(True, SAVE_OK_TEXT)


# ============================================================================
# PAGES
# ============================================================================

def page_context(
    state: AppState,
    query: str = "",
    selected_id: Optional[str] = None,
    result: Optional[SaveResult] = None,
    theme: str = config.THEME_LIGHT,
) -> Dict[str, Any]:
    """Context for templates/page.html: search, list, details and flash."""
    return {
        "title": APP_TITLE,
        "palette": get_palette(theme),
        "query": query,
        "list_html": render_list(state.filtered(query), selected_id, query),
        "detail_html": render_detail(state.find(selected_id)),
        "flash_message": result.message if result else "",
        "flash_ok": result.ok if result else True,
    }


def error_context(message: str, theme: str = config.THEME_LIGHT) -> Dict[str, Any]:
    return {"title": APP_TITLE, "palette": get_palette(theme), "message": message}
