"""
Career Plan Tracker - Main Application

FastAPI backend with:
- PostgreSQL for plans, tasks and rewards
- MongoDB for AI-generated plan drafts
- DeepSeek AI for plan drafting
- JWT authentication

Run: uvicorn app.main:app --reload
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.routes import api_router
from app.core.config import get_settings
from app.core.errors import PlanError
from app.db.mongodb import init_mongo_indexes, check_mongo_connection
from app.db.postgres import engine, check_db_connection
from app.db.tables import create_tables

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Career Plan Tracker",
    description="""
    Gamified career preparation plans for students.

    ## Features
    - **Authentication**: JWT-based auth for students
    - **Plans**: AI-drafted weekly plans saved as day-by-day tasks
    - **Progress**: XP, daily streaks, progress percentage and reward badges
    - **Analytics**: per-skill radar data and an XP leaderboard
    - **Reminders**: evening email for tasks still pending today
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS middleware (allow all for development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix="/api")


# ============================================================
# ERROR ENVELOPE
# Every failure answers {"success": false, "error": "<message>"}
# ============================================================

def error_response(status_code: int, message: str, headers: dict = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message}, headers=headers)


@app.exception_handler(PlanError)
async def plan_error_handler(request: Request, exc: PlanError):
    logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
    return error_response(exc.status_code, exc.message)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid request")
    else:
        message = "Invalid request"
    return error_response(400, message)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(500, "Internal server error")


# Startup event
@app.on_event("startup")
async def startup_event():
    """Create relational tables and MongoDB indexes on startup."""
    if settings.auto_create_tables:
        create_tables(engine)
        logger.info("Database tables ready")

    if settings.plan_cache_enabled:
        try:
            init_mongo_indexes()
        except Exception as e:
            logger.warning("MongoDB index initialization failed: %s", e)


@app.get("/", tags=["Health"])
async def root():
    return {"status": "healthy", "app": "Career Plan Tracker"}


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check."""
    return {
        "status": "healthy",
        "database": "connected" if check_db_connection() else "disconnected",
        "mongodb": (
            ("connected" if check_mongo_connection() else "disconnected")
            if settings.plan_cache_enabled else "disabled"
        )
    }
