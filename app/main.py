"""
SkillSwap backend
FastAPI application: CORS, error envelopes, routers and health checks

Run locally:
  uvicorn app.main:app --reload --port 8000
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config.settings import settings
from app.routers import auth, match, profile
from app.services.cache_service import close_cache_service
from app.utils.datetime_utils import get_current_timestamp, format_datetime
from app.utils.exceptions import AppException

logging.basicConfig(
    level=logging.DEBUG if settings.is_development else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"[STARTUP] SkillSwap backend starting ({settings.environment})")
    yield
    await close_cache_service()
    logger.info("[SHUTDOWN] SkillSwap backend stopped")


app = FastAPI(title="SkillSwap API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    if exc.status_code >= 500:
        logger.error(f"[ERROR] {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.message, "statusCode": exc.status_code},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": error.get("msg", "Invalid value"),
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "Validation failed", "details": details},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail, "statusCode": exc.status_code},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"[ERROR] Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    content = {"success": False, "error": "Internal server error"}
    if settings.is_development:
        content["details"] = str(exc)
    return JSONResponse(status_code=500, content=content)


app.include_router(auth.router, prefix="/api/auth")
app.include_router(profile.router, prefix="/api/profile")
app.include_router(match.router, prefix="/api/match")


@app.get("/")
async def root():
    return {"success": True, "message": "SkillSwap Backend Running"}


@app.get("/health")
async def health():
    return {
        "success": True,
        "status": "OK",
        "environment": settings.environment,
        "timestamp": format_datetime(get_current_timestamp()),
    }
