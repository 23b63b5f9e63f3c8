import logging
import threading
from typing import Optional

import uvicorn
from fastapi import Depends, FastAPI, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse

from config import SheetSettings, load_settings
from detail_view import AppState, error_context, page_context, save_editable_field
from inquiry import APP_TITLE, APP_VERSION, LIVENESS_TEXT, WRITABLE_FIELDS
from sheets_source import DataSourceError, GoogleSheetsSource, TabularDataSource
from systems import ColumnNotFoundError, InvalidIdError, list_systems, update_field
from ui_helpers import templates

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SETTINGS = load_settings()
_SOURCE: Optional[TabularDataSource] = None
_SOURCE_LOCK = threading.Lock()

app = FastAPI(title=APP_TITLE, version=APP_VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(SETTINGS.cors_origins),
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_settings() -> SheetSettings:
    return SETTINGS


def get_source(settings: SheetSettings = Depends(get_settings)) -> TabularDataSource:
    """Shared Google Sheets source, created on first request."""
    global _SOURCE
    with _SOURCE_LOCK:
        if _SOURCE is None:
            _SOURCE = GoogleSheetsSource.from_settings(settings)
        return _SOURCE


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.exception_handler(RequestValidationError)
async def invalid_request(request: Request, exc: RequestValidationError):
    logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc.errors())
    return _error(400, "Invalid request body")


@app.get("/", response_class=PlainTextResponse)
def index():
    return LIVENESS_TEXT


@app.get("/api/systems")
def get_systems(
    source: TabularDataSource = Depends(get_source),
    settings: SheetSettings = Depends(get_settings),
):
    try:
        return list_systems(source, settings)
    except DataSourceError:
        logger.exception("Error in GET /api/systems")
        return _error(500, "Failed to load systems")


@app.post("/api/systems/{system_id:path}/{field_key}")
def update_system_field(
    system_id: str,
    field_key: str,
    payload: dict,
    source: TabularDataSource = Depends(get_source),
    settings: SheetSettings = Depends(get_settings),
):
    field_name = WRITABLE_FIELDS.get(field_key)
    if field_name is None:
        return _error(404, f"Unknown field: {field_key}")

    value = payload.get(field_key)
    value = "" if value is None else str(value)
    try:
        update_field(source, system_id, field_name, value, settings)
    except InvalidIdError:
        return _error(400, "Invalid system id")
    except ColumnNotFoundError:
        return _error(500, f"{field_name} column not found")
    except DataSourceError:
        logger.exception("Error in POST /api/systems/%s/%s", system_id, field_key)
        return _error(500, f"Failed to update {field_name}")
    return {"ok": True}


# ============================================================================
# BROWSER VIEWS
# ============================================================================

def _load_state(source: TabularDataSource, settings: SheetSettings) -> AppState:
    return AppState(list_systems(source, settings))


def _save_status(result) -> int:
    if result.ok:
        return 200
    if isinstance(result.error, InvalidIdError):
        return 400
    return 500


def _error_page(request: Request, message: str, settings: SheetSettings):
    return templates.TemplateResponse(
        request, "error.html", error_context(message, settings.theme), status_code=500
    )


@app.get("/ui", response_class=HTMLResponse)
def ui_page(
    request: Request,
    q: str = "",
    selected: str = Query("", alias="id"),
    source: TabularDataSource = Depends(get_source),
    settings: SheetSettings = Depends(get_settings),
):
    try:
        state = _load_state(source, settings)
    except DataSourceError:
        logger.exception("Error loading systems for /ui")
        return _error_page(request, "Failed to load systems", settings)
    context = page_context(state, query=q, selected_id=selected or None, theme=settings.theme)
    return templates.TemplateResponse(request, "page.html", context)


@app.post("/ui/systems/{system_id:path}/scope", response_class=HTMLResponse)
async def ui_save_scope(
    request: Request,
    system_id: str,
    source: TabularDataSource = Depends(get_source),
    settings: SheetSettings = Depends(get_settings),
):
    form = await request.form()
    new_scope = str(form.get("scope") or "")

    try:
        state = await run_in_threadpool(_load_state, source, settings)
    except DataSourceError:
        logger.exception("Error loading systems for scope save")
        return _error_page(request, "Failed to load systems", settings)

    def writer(target_id: str, field_name: str, value: str) -> None:
        update_field(source, target_id, field_name, value, settings)

    result = await run_in_threadpool(save_editable_field, state, system_id, new_scope, writer)
    if result.error is not None:
        logger.error("Error saving scope for %s: %s", system_id, result.error)
    context = page_context(state, selected_id=system_id, result=result, theme=settings.theme)
    return templates.TemplateResponse(request, "page.html", context, status_code=_save_status(result))


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=SETTINGS.port)
