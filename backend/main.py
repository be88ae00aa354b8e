import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import httpx
from fastapi import APIRouter, FastAPI, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.requests import Request

from api.routes import physique, profile
from config import AppMode, get_settings
from db.database import init_db
from services.physique_simulator import build_physique_simulator
from services.storage import create_photo_storage

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Quiet noisy loggers
for _noisy in ("aiosqlite", "sqlalchemy.engine", "httpx", "httpcore", "botocore", "urllib3"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown: database, shared HTTP client, storage and simulator."""
    logger.info("Starting Physique Coach API in %s mode...", settings.APP_MODE.value)

    await init_db()

    http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(settings.EXTERNAL_CALL_TIMEOUT_SECONDS),
        follow_redirects=True,
    )
    storage = create_photo_storage(settings)
    app.state.http_client = http_client
    app.state.photo_storage = storage
    app.state.physique_simulator = build_physique_simulator(settings, http_client, storage)
    logger.info(
        "Storage backend: %s, image generation: %s",
        settings.STORAGE_BACKEND,
        "replicate" if settings.image_generation_enabled else "mock",
    )

    try:
        yield
    finally:
        await http_client.aclose()
        logger.info("Shutting down Physique Coach API...")


app = FastAPI(
    title="Physique Coach API",
    description="AI physique analysis, training plan updates and transformation previews",
    version="1.0.0",
    lifespan=lifespan,
    debug=(settings.APP_MODE == AppMode.DEV),
)

MAX_ERROR_STRING_CHARS = 400
MAX_ERROR_CONTAINER_ITEMS = 50
MAX_ERROR_DEPTH = 8


def _truncate_string(value: str, max_chars: int = MAX_ERROR_STRING_CHARS) -> str:
    if len(value) <= max_chars:
        return value
    return f"{value[:max_chars]}…(truncated)"


def _sanitize_for_json(value: Any, *, _depth: int = 0) -> Any:
    """
    Make validation error payloads UTF-8 encodable and bounded in size.

    RequestValidationError details echo user input, which may hold unpaired
    surrogates or very large strings.
    """
    if _depth > MAX_ERROR_DEPTH:
        return "<max depth reached>"
    if value is None or isinstance(value, (int, float, bool)):
        return value
    if isinstance(value, str):
        safe = value.encode("utf-8", errors="replace").decode("utf-8", errors="replace")
        return _truncate_string(safe)
    if isinstance(value, bytes):
        return _truncate_string(value.decode("utf-8", errors="replace"))
    if isinstance(value, (list, tuple, set)):
        items = list(value)
        out = [_sanitize_for_json(v, _depth=_depth + 1) for v in items[:MAX_ERROR_CONTAINER_ITEMS]]
        if len(items) > MAX_ERROR_CONTAINER_ITEMS:
            out.append(f"... ({len(items) - MAX_ERROR_CONTAINER_ITEMS} more items truncated)")
        return out
    if isinstance(value, dict):
        items = list(value.items())
        out_dict: dict[str, Any] = {}
        for k, v in items[:MAX_ERROR_CONTAINER_ITEMS]:
            out_dict[str(_sanitize_for_json(k, _depth=_depth + 1))] = _sanitize_for_json(
                v, _depth=_depth + 1
            )
        if len(items) > MAX_ERROR_CONTAINER_ITEMS:
            out_dict["__truncated__"] = f"{len(items) - MAX_ERROR_CONTAINER_ITEMS} more keys truncated"
        return out_dict
    # Validation contexts can carry exception instances
    return _sanitize_for_json(str(value), _depth=_depth + 1)


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": _sanitize_for_json(exc.errors())},
    )


# Request logging (development only)
if settings.APP_MODE == AppMode.DEV:
    from middleware.logging import RequestLoggingMiddleware, configure_request_logging

    configure_request_logging(settings.LOG_LEVEL)
    app.add_middleware(RequestLoggingMiddleware)

# CORS must be added last so it runs first
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)

# Local storage is served back as static files; S3 uses presigned URLs instead
if settings.STORAGE_BACKEND == "local":
    storage_dir = Path(settings.LOCAL_STORAGE_DIR)
    storage_dir.mkdir(parents=True, exist_ok=True)
    app.mount("/storage", StaticFiles(directory=str(storage_dir)), name="storage")

api_v1_router = APIRouter(prefix="/api/v1")
api_v1_router.include_router(physique.router)
api_v1_router.include_router(profile.router)
app.include_router(api_v1_router)


@app.get("/")
async def root():
    return {
        "name": "Physique Coach API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/v1/physique/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=(settings.APP_MODE == AppMode.DEV),
    )
