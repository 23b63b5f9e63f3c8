"""
Rich-text helpers: formatting runs -> inline markup, and back to plain text.

A spreadsheet cell in rich mode is its formatted text plus an ordered list of
runs. Each run starts at a character offset and applies until the next run
starts (or the text ends). Runs are turned into ``<strong>``/``<em>``/``<u>``
markup so the browser views can show bold, italic and underlined text.
"""

from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence, Tuple

from markupsafe import Markup, escape

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]*>")
# Tags re-enabled by safe_markup after escaping.
ALLOWED_TAGS = ("strong", "em", "u", "b", "i", "br")
_ALLOWED_ESCAPED_RE = re.compile(
    r"&lt;(/?)(" + "|".join(ALLOWED_TAGS) + r")\s*(/?)&gt;",
    re.IGNORECASE,
)


class MalformedRunsError(ValueError):
    """Formatting runs that are unordered, overlapping or out of range."""


@dataclass(frozen=True)
class TextRun:
    start: int
    bold: bool = False
    italic: bool = False
    underline: bool = False


@dataclass(frozen=True)
class RichCell:
    text: str
    runs: Tuple[TextRun, ...] = ()


def runs_from_api(raw_runs: Optional[Iterable[dict]]) -> Tuple[TextRun, ...]:
    """Convert Sheets API ``textFormatRuns`` to ``TextRun`` objects.

    The API omits ``startIndex`` for a run starting at offset 0.
    """
    runs = []
    for raw in raw_runs or ():
        fmt = raw.get("format") or {}
        runs.append(
            TextRun(
                start=raw.get("startIndex", 0),
                bold=bool(fmt.get("bold")),
                italic=bool(fmt.get("italic")),
                underline=bool(fmt.get("underline")),
            )
        )
    return tuple(runs)


def validate_runs(text: str, runs: Sequence[TextRun]) -> None:
    previous = -1
    for run in runs:
        start = run.start
        if not isinstance(start, int) or isinstance(start, bool):
            raise MalformedRunsError(f"Run offset must be an integer, got {start!r}")
        if start < 0 or start > len(text):
            raise MalformedRunsError(f"Run offset {start} outside text of length {len(text)}")
        if start <= previous:
            raise MalformedRunsError(f"Run offsets must increase, got {start} after {previous}")
        previous = start


def _wrap(segment: str, run: TextRun) -> str:
    if run.underline:
        segment = f"<u>{segment}</u>"
    if run.italic:
        segment = f"<em>{segment}</em>"
    if run.bold:
        segment = f"<strong>{segment}</strong>"
    return segment


def to_markup(cell: RichCell) -> str:
    """Render a rich cell as inline markup; raises ``MalformedRunsError``."""
    text = cell.text or ""
    if not cell.runs:
        return text
    validate_runs(text, cell.runs)

    parts = []
    first_start = cell.runs[0].start
    if first_start > 0:
        parts.append(text[:first_start])
    for index, run in enumerate(cell.runs):
        end = cell.runs[index + 1].start if index + 1 < len(cell.runs) else len(text)
        segment = text[run.start:end]
        if segment:
            parts.append(_wrap(segment, run))
    return "".join(parts)


def render_cell(cell: RichCell) -> str:
    """Like ``to_markup`` but falls back to plain text for malformed runs."""
    try:
        return to_markup(cell)
    except MalformedRunsError as exc:
        logger.warning("Ignoring formatting for cell %r: %s", cell.text[:40], exc)
        return cell.text or ""


def strip_markup(value: Any) -> str:
    """Plain text of a possibly markup-bearing value."""
    if value is None:
        return ""
    return html.unescape(_TAG_RE.sub("", str(value)))


def safe_markup(value: Any) -> Markup:
    """Escape ``value`` for HTML, keeping only inline formatting tags.

    The result is a ``Markup`` so templates render it without escaping again.
    """
    if value is None:
        return Markup("")
    escaped = str(escape(str(value)))
    return Markup(_ALLOWED_ESCAPED_RE.sub(
        lambda m: f"<{m.group(1)}{m.group(2).lower()}{m.group(3)}>", escaped
    ))
