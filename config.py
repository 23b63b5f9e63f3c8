"""
Unified configuration and constants for the Inquiry Compilation application.
Centralizes environment settings, typography, colors and button styles.
"""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# ============================================================================
# ENVIRONMENT SETTINGS
# ============================================================================
DEFAULT_PORT = 4000
DEFAULT_MAX_ROWS = 2000
DEFAULT_MAX_COLUMNS = 26

TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class SheetSettings:
    """Spreadsheet connection and server settings read from the environment."""

    spreadsheet_id: str = ""
    client_email: str = ""
    private_key: str = ""
    port: int = DEFAULT_PORT
    max_rows: int = DEFAULT_MAX_ROWS
    max_columns: int = DEFAULT_MAX_COLUMNS
    rich_text: bool = False
    cors_origins: tuple = ("*",)
    theme: str = "light"


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def _env_origins(env: Mapping[str, str]) -> tuple:
    raw = env.get("CORS_ALLOWED_ORIGINS") or ""
    origins = tuple(origin.strip() for origin in raw.split(",") if origin.strip())
    return origins or ("*",)


def load_settings(env: Optional[Mapping[str, str]] = None) -> SheetSettings:
    """Build settings from ``env`` (defaults to the process environment).

    When reading the process environment an optional ``.env`` file is loaded
    first. A missing spreadsheet id only logs a warning so the server can
    still start and answer liveness checks.
    """
    if env is None:
        load_dotenv()
        env = os.environ

    spreadsheet_id = (env.get("GOOGLE_SHEET_ID") or "").strip()
    if not spreadsheet_id:
        logger.warning("GOOGLE_SHEET_ID is not set.")

    theme = (env.get("UI_THEME") or THEME_LIGHT).strip().lower()
    if theme not in PALETTES:
        logger.warning("Unknown UI_THEME %r, using %s.", theme, THEME_LIGHT)
        theme = THEME_LIGHT

    return SheetSettings(
        spreadsheet_id=spreadsheet_id,
        client_email=(env.get("GOOGLE_CLIENT_EMAIL") or "").strip(),
        # Keys arrive with literal "\n" sequences when stored in .env files.
        private_key=(env.get("GOOGLE_PRIVATE_KEY") or "").replace("\\n", "\n"),
        port=_env_int(env, "PORT", DEFAULT_PORT),
        max_rows=_env_int(env, "SHEET_MAX_ROWS", DEFAULT_MAX_ROWS),
        max_columns=_env_int(env, "SHEET_MAX_COLUMNS", DEFAULT_MAX_COLUMNS),
        rich_text=(env.get("SHEET_RICH_TEXT") or "").strip().lower() in TRUE_VALUES,
        cors_origins=_env_origins(env),
        theme=theme,
    )


# ============================================================================
# TYPOGRAPHY TOKENS
# ============================================================================
FONTS = {
    "body": "13px Verdana, Geneva, sans-serif",
    "title": "bold 20px Verdana, Geneva, sans-serif",
    "card_title": "600 12px Verdana, Geneva, sans-serif",
    "small": "12px Verdana, Geneva, sans-serif",
    "button": "bold 11px Verdana, Geneva, sans-serif",
    "badge": "bold 16px Verdana, Geneva, sans-serif",
    "micro": "10px Verdana, Geneva, sans-serif",
}

# ============================================================================
# COLOR PALETTES
# ============================================================================
LIGHT_PALETTE = {
    "bg_color": "#e2e6e9",
    "fg_color": "#2c3e50",
    "accent_color": "#3498db",
    "border_color": "#dddddd",
    "error_color": "#e74c3c",
    "card_bg_color": "#ffffff",
    "hover_color": "#f5f5f5",
}

DARK_PALETTE = {
    "bg_color": "#121212",
    "fg_color": "#ecf0f1",
    "accent_color": "#4ea0ff",
    "border_color": "#3a3f44",
    "error_color": "#e74c3c",
    "card_bg_color": "#2c2f33",
    "hover_color": "#3a3f44",
}

THEME_LIGHT = "light"
THEME_DARK = "dark"

PALETTES = {
    THEME_LIGHT: LIGHT_PALETTE,
    THEME_DARK: DARK_PALETTE,
}

# ============================================================================
# BUTTON ROLE COLORS
# ============================================================================
BUTTON_ROLE_COLORS = {
    "save": ("#27ae60", "#229954"),
    "view": ("#2980b9", "#1f618d"),
    "charcoal": ("#c3c9ce", "#b5bcc2"),
    "default": ("#3498db", "#2e86c1"),
}

# Roles that should always render black text
ALWAYS_BLACK_TEXT_ROLES = {"view"}

BUTTON_OUTLINE_COLOR = "#1b1f23"

# ============================================================================
# TEXT COLORS & EMPHASIS STYLING
# ============================================================================
TEXT_COLORS = {
    'label': "#333333",
    'muted': "#6b7280",
    'meta': "#888888",
    'link': "#1a0dab",
    'affirmative': "#15803d",              # Subtle green check mark
}

CHECK_MARK = "✓"

# Layout dimensions (px)
LIST_PANE_WIDTH = 300
TEXTAREA_MIN_HEIGHT = 60
