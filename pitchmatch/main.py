import logging
import json
import os
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import HTTPException as FastAPIHTTPException

from pitchmatch.database.database import init_db
from pitchmatch.api.routes import router as marketplace_router
from pitchmatch.api.messaging import router as messaging_router
from pitchmatch.api.admin import router as admin_router
from pitchmatch.api.ai.agents import is_ai_configured

# Plain-text records locally; Cloud Logging is layered on top when enabled
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s"
)
logger = logging.getLogger(__name__)


def configure_cloud_logging() -> bool:
    """Attach the Google Cloud Logging handler when ENABLE_CLOUD_LOGGING=true."""
    if os.getenv("ENABLE_CLOUD_LOGGING", "false").lower() != "true":
        return False

    import google.cloud.logging

    client = google.cloud.logging.Client()
    default_handler = client.get_default_handler()
    json_formatter = logging.Formatter('%(asctime)s %(levelname)s %(name)s %(message)s')
    default_handler.setFormatter(json_formatter)
    logging.getLogger().addHandler(default_handler)
    client.setup_logging()
    logger.info("Google Cloud Logging enabled.")
    return True


configure_cloud_logging()

app = FastAPI(title="PitchMatch Founder & Investor Marketplace API")

# CORS: comma-separated list; defaults to any origin
allowed_origins = [o.strip() for o in os.getenv("CORS_ALLOWED_ORIGINS", "*").split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    logger.info(json.dumps({
        "event": "request_received",
        "method": request.method,
        "path": request.url.path,
    }))
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(json.dumps({
            "event": "request_error",
            "path": request.url.path,
            "error": str(e),
        }), exc_info=True)
        raise
    logger.info(json.dumps({
        "event": "request_completed",
        "method": request.method,
        "path": request.url.path,
        "status_code": response.status_code,
        "duration_ms": round((time.perf_counter() - started) * 1000, 1),
    }))
    return response

app.include_router(marketplace_router, prefix="/api")
app.include_router(messaging_router, prefix="/api")
app.include_router(admin_router, prefix="/api")

@app.get("/health")
def health_check():
    logger.info("Health check endpoint accessed")
    return {"status": "ok"}

# ------------------------------------------------------------------
# Exception Handlers
# ------------------------------------------------------------------

@app.exception_handler(FastAPIHTTPException)
async def http_exception_handler(request: Request, exc: FastAPIHTTPException):
    if exc.status_code < 500:
        logger.warning("HTTP %s for %s: %s", exc.status_code, request.url, exc.detail)
    else:
        logger.error("HTTPException for %s: %s", request.url, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )

@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception for %s: %s", request.url, str(exc), exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error"}
    )

@app.on_event("startup")
async def startup_event():
    # Create missing tables (users, startups, pitch_decks, ...)
    init_db()
    logger.info("Database initialized.")

    if is_ai_configured():
        logger.info("OpenAI API key configured - AI scoring enabled.")
    else:
        logger.info("OpenAI API key not configured - AI features run in demo mode.")

    logger.info("Application startup complete.")

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Application shutdown complete.")
