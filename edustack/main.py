# edustack/main.py - Application factory wiring, middleware and error envelopes
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
import logging
import traceback
import time

from edustack.core.config import settings
from edustack.core.db import db_manager, get_engine, health_check as db_health_check
from edustack.core.errors import AppError, translate_db_error
from edustack.models import Base
from edustack.api.routers import auth, schools, classes, sessions, students
from edustack.schemas.common import api_response
from edustack.services.term_scheduler import start_term_scheduler, stop_term_scheduler


# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info(f"Starting {settings.API_TITLE}...")
    logger.info(f"Environment: {settings.ENV}")
    logger.info(f"Database URL: {settings.DATABASE_URL.split('@')[1] if '@' in settings.DATABASE_URL else 'local'}")

    engine = get_engine()

    # Create tables if they don't exist (for development)
    if settings.is_development:
        logger.info("Creating database tables...")
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")

    if settings.TERM_RECONCILE_ENABLED:
        start_term_scheduler()

    yield

    stop_term_scheduler()
    db_manager.close()
    logger.info(f"Shutting down {settings.API_TITLE}...")


app = FastAPI(
    title=settings.API_TITLE,
    description="Multi-tenant school management API: schools, classes, sessions and the student lifecycle",
    version=settings.API_VERSION,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan
)


# Request logging middleware - BEFORE CORS
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"Error processing {request.method} {request.url.path}: {e}")
        raise
    process_time = time.time() - start_time
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({process_time:.3f}s)")
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "Origin", "X-Requested-With"],
    max_age=3600,
)


# ==================== ERROR ENVELOPES ====================

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=api_response(exc.message, exc.data, success=False),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    message = errors[0]["message"] if errors else "Invalid data sent"
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": message, "errors": errors},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=api_response(str(exc.detail), success=False),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    error = translate_db_error(exc)
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=error.status_code,
        content=api_response(error.message, success=False),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle uncaught exceptions"""
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}")
    logger.error(traceback.format_exc())
    data = {"detail": str(exc)} if settings.DEBUG else None
    return JSONResponse(
        status_code=500,
        content=api_response("Internal server error", data, success=False),
    )


@app.get("/health")
def health_check():
    database = db_health_check()
    return {
        "status": "healthy" if database["status"] == "healthy" else "degraded",
        "environment": settings.ENV,
        "version": settings.API_VERSION,
        "database": database,
    }


# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(schools.router, prefix="/api/school", tags=["Schools"])
app.include_router(classes.router, prefix="/api/class", tags=["Classes"])
app.include_router(sessions.router, prefix="/api/session", tags=["Sessions"])
app.include_router(students.router, prefix="/api/students", tags=["Students"])


@app.get("/")
def root():
    return {
        "message": settings.API_TITLE,
        "version": settings.API_VERSION,
        "docs_url": "/docs" if settings.is_development else "Documentation disabled in production",
    }
