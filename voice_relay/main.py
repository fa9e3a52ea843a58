"""
main.py
FastAPI application — AZ-900 voice study relay
Static frontend + Azure Speech config + Azure OpenAI SSE relay
"""

import os
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles

from voice_relay.core.config import Settings, get_settings, settings
from voice_relay.core.logger import get_logger, mask
from voice_relay.routers import config, health, stream
from voice_relay.services.config_gateway import ConfigGateway

logger = get_logger(__name__)

PROVIDER_ENV_MARKERS = ("GPT", "OPENAI", "AZURE")


# ─────────────────────────────────────────────────────────────────────────────
# LIFESPAN
# ─────────────────────────────────────────────────────────────────────────────

def log_configuration(snapshot: Settings) -> None:
    """Startup report: which settings are present. Values of secrets never leave."""
    present = ConfigGateway(snapshot).presence()
    logger.info("=" * 60)
    logger.info(f"  {snapshot.APP_NAME}  v{snapshot.APP_VERSION}")
    logger.info("=" * 60)
    logger.info(f"  SPEECH_KEY    : {mask(snapshot.SPEECH_KEY)}")
    logger.info(f"  SPEECH_REGION : {snapshot.SPEECH_REGION or 'missing'}")
    logger.info(f"  voice         : {snapshot.VOICE or 'missing'}")
    logger.info(f"  GPT_ENDPOINT  : {snapshot.GPT_ENDPOINT or 'missing'}")
    logger.info(f"  GPT_KEY       : {mask(snapshot.GPT_KEY)}")
    logger.info(f"  Deployment    : {snapshot.GPT_DEPLOYMENT} (api {snapshot.GPT_API_VERSION})")
    logger.info(f"  Frontend      : {snapshot.frontend_path}")
    logger.info(f"  Host          : {snapshot.HOST}:{snapshot.PORT}")
    logger.info("=" * 60)

    for key in sorted(os.environ):
        if any(marker in key.upper() for marker in PROVIDER_ENV_MARKERS):
            logger.info(f"  env {key}: {mask(os.environ[key])}")

    missing = [name for name, ok in present.items() if not ok]
    if missing:
        logger.warning(f"Missing configuration: {', '.join(missing)}; dependent endpoints will fail")


@asynccontextmanager
async def lifespan(app: FastAPI):
    log_configuration(settings)

    yield

    logger.info("Shutting down relay...")


# ─────────────────────────────────────────────────────────────────────────────
# APP
# ─────────────────────────────────────────────────────────────────────────────

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=(
        "AZ-900 voice study assistant backend\n\n"
        "Azure Speech configuration for the browser and a streaming\n"
        "Azure OpenAI chat relay (Server-Sent Events)."
    ),
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


# ─────────────────────────────────────────────────────────────────────────────
# MIDDLEWARE
# ─────────────────────────────────────────────────────────────────────────────

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    """Log every request with method, path, status, and latency (time to headers for streams)."""
    t0 = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = int((time.perf_counter() - t0) * 1000)

    response.headers["X-Latency-Ms"] = str(elapsed_ms)

    log_level = "warning" if response.status_code >= 400 else "info"
    getattr(logger, log_level)(
        f"{request.method} {request.url.path} → {response.status_code} [{elapsed_ms}ms]"
    )

    return response


# ─────────────────────────────────────────────────────────────────────────────
# EXCEPTION HANDLERS
# ─────────────────────────────────────────────────────────────────────────────

@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.detail,
            "status_code": exc.status_code,
            "path": str(request.url.path),
        },
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Invalid request on {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=422,
        content={
            "error": "Invalid request",
            "detail": [
                {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
                for err in exc.errors()
            ],
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# ─────────────────────────────────────────────────────────────────────────────
# ROUTERS
# ─────────────────────────────────────────────────────────────────────────────

app.include_router(health.router, tags=["Health"])
app.include_router(config.router, tags=["Config"])
app.include_router(stream.router, tags=["Streaming"])


# ─────────────────────────────────────────────────────────────────────────────
# FRONTEND
# ─────────────────────────────────────────────────────────────────────────────

@app.get("/", include_in_schema=False)
async def index(snapshot: Settings = Depends(get_settings)):
    page = snapshot.frontend_path / "index.html"
    if not page.is_file():
        raise HTTPException(status_code=404, detail="Entry page not found")
    return FileResponse(page)


# Mounted last so /api/* and /health win over same-named files
if settings.frontend_path.is_dir():
    app.mount("/", StaticFiles(directory=settings.frontend_path, html=True), name="frontend")
else:
    logger.warning(f"Frontend directory {settings.frontend_path} not found, static assets disabled")


# ─────────────────────────────────────────────────────────────────────────────
# DEV RUN
# ─────────────────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "voice_relay.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info",
        workers=1,
        access_log=False,  # handled by our middleware
    )
