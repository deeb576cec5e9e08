import html
import secrets
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse

from config import Settings
from database import BookingStore
from errors import AuthError, BookingError, BookingNotFound, ValidationError
from logging_config import (
    REQUEST_ID_HEADER,
    bind_request_context,
    generate_request_id,
    get_logger,
    setup_structured_logging,
)
from models import AvailableSlots, Booking, BookingCreate, BookingRead, Day, DeleteResult, HealthStatus

logger = get_logger(__name__)


def get_store(request: Request) -> BookingStore:
    return request.app.state.store


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def parse_day(day: str) -> Day:
    try:
        return Day(day)
    except ValueError:
        raise ValidationError("Invalid day") from None


def require_admin_key(key: Optional[str], settings: Settings):
    """Shared-secret check. A placeholder, not a security boundary."""
    expected = settings.admin_key
    if not expected or key is None or not secrets.compare_digest(
        key.encode("utf-8"), expected.encode("utf-8")
    ):
        logger.warning("admin_access_denied")
        raise AuthError("Invalid admin key")


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if any(error.get("type") == "missing" for error in errors):
        return "All fields required"
    for error in errors:
        loc = [
            part for part in error.get("loc", ())
            if isinstance(part, str) and part not in ("body", "path", "query")
        ]
        if loc:
            return f"Invalid {loc[-1]}"
    return "Invalid request"


def render_admin_page(bookings: List[Booking]) -> str:
    rows = "\n".join(
        "<tr>"
        + "".join(
            f"<td>{html.escape(str(value))}</td>"
            for value in (b.id, b.student_name, b.meeting_type, b.day, b.time, b.created_at)
        )
        + "</tr>"
        for b in bookings
    )
    if not rows:
        rows = '<tr><td colspan="6">No bookings yet.</td></tr>'
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>Office Hours - Bookings</title>
<style>
body {{ font-family: sans-serif; margin: 2rem; }}
table {{ border-collapse: collapse; }}
th, td {{ border: 1px solid #ccc; padding: 0.4rem 0.8rem; text-align: left; }}
</style>
</head>
<body>
<h1>Bookings ({len(bookings)})</h1>
<table>
<thead><tr><th>ID</th><th>Student</th><th>Type</th><th>Day</th><th>Time</th><th>Created</th></tr></thead>
<tbody>
{rows}
</tbody>
</table>
</body>
</html>
"""


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    setup_structured_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store = BookingStore(settings.database_url)
        await store.open()
        app.state.store = store
        try:
            yield
        finally:
            await store.close()

    app = FastAPI(title="Office Hours Booking System", lifespan=lifespan)
    app.state.settings = settings

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or generate_request_id()
        bind_request_context(request_id, request.method, request.url.path)
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    @app.exception_handler(BookingError)
    async def booking_error_handler(request: Request, exc: BookingError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": _validation_message(exc)},
        )

    # --- GET /api/bookings ---
    @app.get("/api/bookings", response_model=List[BookingRead])
    async def list_bookings(store: BookingStore = Depends(get_store)):
        return await store.list_all()

    # --- GET /api/available-slots/{day} ---
    @app.get("/api/available-slots/{day}", response_model=AvailableSlots)
    async def available_slots(day: str, store: BookingStore = Depends(get_store)):
        valid_day = parse_day(day)
        slots = await store.available_slots(valid_day)
        return AvailableSlots(day=valid_day, slots=slots)

    # --- POST /api/bookings ---
    @app.post("/api/bookings", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
    async def create_booking(
        booking_data: BookingCreate,
        store: BookingStore = Depends(get_store),
    ):
        return await store.create(booking_data)

    # --- DELETE /api/bookings/{booking_id} ---
    @app.delete("/api/bookings/{booking_id}", response_model=DeleteResult)
    async def delete_booking(
        booking_id: int,
        key: Optional[str] = None,
        store: BookingStore = Depends(get_store),
        app_settings: Settings = Depends(get_settings),
    ):
        require_admin_key(key, app_settings)
        if not await store.delete(booking_id):
            raise BookingNotFound("Booking not found")
        return DeleteResult(success=True, deletedId=booking_id)

    @app.get("/api/health", response_model=HealthStatus)
    async def health():
        return HealthStatus(status="OK", timestamp=datetime.now(timezone.utc).isoformat())

    @app.get("/admin", response_class=HTMLResponse)
    async def admin_page(
        key: Optional[str] = None,
        store: BookingStore = Depends(get_store),
        app_settings: Settings = Depends(get_settings),
    ):
        require_admin_key(key, app_settings)
        return HTMLResponse(render_admin_page(await store.list_all()))

    # Single-page app fallback; must stay the last route
    @app.get("/{full_path:path}", include_in_schema=False)
    async def static_fallback(full_path: str, app_settings: Settings = Depends(get_settings)):
        static_dir = Path(app_settings.static_dir).resolve()
        if full_path:
            candidate = (static_dir / full_path).resolve()
            if candidate.is_file() and static_dir in candidate.parents:
                return FileResponse(candidate)
        index = static_dir / "index.html"
        if not index.is_file():
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
        return FileResponse(index)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    return app


app = create_app()


def run():
    settings = app.state.settings
    logger.info("server_starting", host=settings.host, port=settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    run()
