import pytest
from markupsafe import Markup

from rich_text import (
    MalformedRunsError,
    RichCell,
    TextRun,
    render_cell,
    runs_from_api,
    safe_markup,
    strip_markup,
    to_markup,
    validate_runs,
)


def test_to_markup_wraps_each_run_until_the_next():
    cell = RichCell("Bold plain italic", (TextRun(0, bold=True), TextRun(4), TextRun(11, italic=True)))

    assert to_markup(cell) == "<strong>Bold</strong> plain <em>italic</em>"


def test_to_markup_nests_tags_in_fixed_order():
    cell = RichCell("all", (TextRun(0, bold=True, italic=True, underline=True),))

    assert to_markup(cell) == "<strong><em><u>all</u></em></strong>"


def test_to_markup_keeps_text_before_first_run():
    cell = RichCell("Vendor: Acme", (TextRun(8, underline=True),))

    assert to_markup(cell) == "Vendor: <u>Acme</u>"


def test_to_markup_without_runs_returns_text_unchanged():
    assert to_markup(RichCell("a < b")) == "a < b"


@pytest.mark.parametrize(
    "runs",
    [
        (TextRun(3), TextRun(1)),
        (TextRun(2), TextRun(2)),
        (TextRun(-1),),
        (TextRun(10),),
    ],
)
def test_validate_runs_rejects_malformed_offsets(runs):
    with pytest.raises(MalformedRunsError):
        validate_runs("short", runs)


def test_render_cell_falls_back_to_plain_text():
    cell = RichCell("Acme", (TextRun(2, bold=True), TextRun(0)))

    assert render_cell(cell) == "Acme"


def test_runs_from_api_defaults_missing_start_index():
    runs = runs_from_api([
        {"format": {"bold": True}},
        {"startIndex": 5, "format": {}},
        {"startIndex": 9, "format": {"italic": True, "underline": True}},
    ])

    assert runs == (
        TextRun(0, bold=True),
        TextRun(5),
        TextRun(9, italic=True, underline=True),
    )
    assert runs_from_api(None) == ()


def test_strip_markup_removes_tags_and_entities():
    assert strip_markup("<strong>R&amp;D</strong> <em>tools</em>") == "R&D tools"
    assert strip_markup(None) == ""


def test_safe_markup_keeps_only_inline_formatting():
    value = '<strong>Bold</strong><br/><script>alert(1)</script><a href="x">link</a>'

    result = safe_markup(value)

    assert isinstance(result, Markup)
    assert result == (
        "<strong>Bold</strong><br/>&lt;script&gt;alert(1)&lt;/script&gt;"
        "&lt;a href=&#34;x&#34;&gt;link&lt;/a&gt;"
    )


def test_safe_markup_of_missing_value_is_empty_markup():
    assert safe_markup(None) == Markup("")
