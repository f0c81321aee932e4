"""
FastAPI app entrypoint.

Primary: POST /send-notification (called by record-change triggers). Also device registration,
notification history and preferences for the mobile app.
"""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Load .env from backend/ before any app code
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from notifier.api.routes import devices, notifications, preferences, send
from notifier.config import settings
from notifier.core.channels import configure_channels
from notifier.core.errors import ERR_INVALID_REQUEST, STATUS_BAD_REQUEST

logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Process-wide setup, once; configure_channels is idempotent
    channels = configure_channels()
    logger.info("Notifier ready (%s push channels, gateway %s)", len(channels), settings.expo_push_url)
    yield


app = FastAPI(title="Notifier", version="0.1.0", lifespan=lifespan)

# CORS: dev origins + optional CORS_ORIGINS env (comma-separated) for the deployed app
_cors_origins = [
    "http://localhost:8081",
    "http://127.0.0.1:8081",
    "http://localhost:19006",
    "http://127.0.0.1:19006",
]
if settings.cors_origins:
    _cors_origins.extend(o.strip() for o in settings.cors_origins.split(",") if o.strip())
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_error_to_400(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies are a client error (400 {error, message}), not FastAPI's default 422."""
    messages = [f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}" for err in exc.errors()]
    return JSONResponse(
        status_code=STATUS_BAD_REQUEST,
        content={"error": ERR_INVALID_REQUEST, "message": "; ".join(messages)},
    )


app.include_router(send.router, tags=["send"])
app.include_router(devices.router, tags=["push"])
app.include_router(notifications.router, tags=["notifications"])
app.include_router(preferences.router, tags=["preferences"])


@app.get("/", include_in_schema=False)
def root():
    """Root: point to API docs and health."""
    return {"message": "Notifier API", "docs": "/docs", "health": "/health"}


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
