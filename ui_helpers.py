from pathlib import Path

from fastapi.templating import Jinja2Templates
from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

import config
from rich_text import safe_markup

FONTS = config.FONTS

_ROLE_COLORS = config.BUTTON_ROLE_COLORS
BUTTON_OUTLINE_COLOR = config.BUTTON_OUTLINE_COLOR

# Roles that should always render black text for readability
ALWAYS_BLACK_TEXT_ROLES = config.ALWAYS_BLACK_TEXT_ROLES

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"


def _hex_to_rgb(h):
    try:
        h = (h or '').strip().lstrip('#')
        if len(h) == 6:
            return tuple(int(h[i:i+2], 16) for i in (0, 2, 4))
    except ValueError:
        pass
    return (255, 255, 255)


def _is_dark_color(h):
    r, g, b = _hex_to_rgb(h)
    lum = (0.299*r + 0.587*g + 0.114*b) / 255.0
    return lum < 0.5


def get_palette(theme):
    """Return a copy of the palette for ``theme`` (light when unknown)."""
    return config.PALETTES.get(theme, config.LIGHT_PALETTE).copy()


def button_colors(role="default"):
    """Return (background, hover background, text color) for a button role."""
    bg, active = _ROLE_COLORS.get(role, _ROLE_COLORS["default"])
    # Text color policy: force black for certain roles; otherwise contrast by bg
    if role in ALWAYS_BLACK_TEXT_ROLES:
        fg_color = "black"
    else:
        fg_color = "white" if _is_dark_color(bg) else "black"
    return bg, active, fg_color


def button_styles():
    """Per-role button colours for the stylesheet template."""
    styles = []
    for role in _ROLE_COLORS:
        bg, active, fg = button_colors(role)
        styles.append({"role": role, "bg": bg, "active": active, "fg": fg})
    return styles


def _build_environment():
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=select_autoescape(["html"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["rich"] = safe_markup
    env.globals.update(
        fonts=FONTS,
        text_colors=config.TEXT_COLORS,
        check_mark=config.CHECK_MARK,
        list_pane_width=config.LIST_PANE_WIDTH,
        textarea_min_height=config.TEXTAREA_MIN_HEIGHT,
        button_outline_color=BUTTON_OUTLINE_COLOR,
        button_styles=button_styles(),
    )
    return env


templates = Jinja2Templates(env=_build_environment())


def render_fragment(name, **context):
    """Render a template outside a request, e.g. a fragment embedded in a page."""
    return Markup(templates.get_template(name).render(**context))
