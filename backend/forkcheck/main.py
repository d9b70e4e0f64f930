from contextlib import asynccontextmanager
import logging

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from forkcheck.config import settings
from forkcheck.database import engine, get_db, init_db
from forkcheck.routers import (
    auth,
    users,
    departments,
    mhe_units,
    checklist_items,
    inspection_reports,
    downtime_logs,
    pms_task_masters,
    pms_schedule_entries,
    safety,
    dashboard
)
from forkcheck.security import require_supervisor
from forkcheck.services.llm.provider_factory import current_llm_factory

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    logger.info(f"Starting {settings.APP_NAME}...")

    try:
        init_db()
        logger.info("Database initialized successfully")

        if settings.LLM_WARMUP_ON_STARTUP:
            from forkcheck.services.llm import get_llm_factory
            factory = await get_llm_factory()
            if factory.is_initialized:
                logger.info(f"LLM providers ready: {factory.get_stats()['providers']}")
            else:
                logger.warning("No LLM provider available - safety analysis will use the fail-safe verdict")

        yield

    finally:
        # Shutdown
        logger.info(f"Shutting down {settings.APP_NAME}...")
        engine.dispose()
        logger.info("Shutdown complete")


# Initialize FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    description=(
        "Forklift safety inspection API\n\n"
        "Checklist inspections with photos, AI safety assessment, downtime "
        "logging, preventive maintenance scheduling and supervisor dashboards."
    ),
    version=settings.APP_VERSION,
    lifespan=lifespan
)


# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ----------------------------------------------------
# Exception handlers
# ----------------------------------------------------
def _validation_message(exc: RequestValidationError) -> str:
    messages = []
    for error in exc.errors():
        msg = error.get("msg", "Invalid value")
        if error.get("type") == "value_error":
            # Messages raised by our own validators are already user-facing
            messages.append(msg.removeprefix("Value error, "))
        else:
            location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
            messages.append(f"{location}: {msg}" if location else msg)
    return "; ".join(messages) or "Invalid request."


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"message": _validation_message(exc)})


@app.exception_handler(IntegrityError)
async def integrity_exception_handler(request: Request, exc: IntegrityError):
    logger.warning(f"Integrity error on {request.method} {request.url.path}: {exc.orig}")
    return JSONResponse(
        status_code=409,
        content={"message": "The request conflicts with existing data."}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"message": "An internal server error occurred"}
    )

# ----------------------------------------------------
# Routers
# ----------------------------------------------------
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])

app.include_router(users.router, prefix="/api/users", tags=["Users"])

app.include_router(departments.router, prefix="/api/departments", tags=["Departments"])

app.include_router(mhe_units.router, prefix="/api/mhe-units", tags=["MHE Units"])

app.include_router(checklist_items.router, prefix="/api/checklist-items", tags=["Checklist Items"])

app.include_router(
    inspection_reports.router,
    prefix="/api/inspection-reports",
    tags=["Inspection Reports"]
)

app.include_router(downtime_logs.router, prefix="/api/downtime-logs", tags=["Downtime"])

app.include_router(pms_task_masters.router, prefix="/api/pms-task-masters", tags=["PMS Task Masters"])

app.include_router(
    pms_schedule_entries.router,
    prefix="/api/pms-schedule-entries",
    tags=["PMS Schedule"]
)

app.include_router(safety.router, prefix="/api/safety", tags=["AI Safety Analysis"])

app.include_router(
    dashboard.router,
    prefix="/api/dashboard",
    tags=["Dashboard"],
    dependencies=[Depends(require_supervisor())]
)

# ----------------------------------------------------
# Root endpoints
# ----------------------------------------------------
@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint - API information
    """
    return {
        "message": f"{settings.APP_NAME} is running",
        "version": settings.APP_VERSION,
        "features": [
            "Checklist Inspections",
            "AI Safety Analysis",
            "Downtime Logging",
            "Preventive Maintenance Schedule",
            "Supervisor Dashboards"
        ],
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/health", tags=["Root"])
async def health_check(db: Session = Depends(get_db)):
    """
    Health check endpoint for monitoring
    """
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "database": "disconnected",
                "message": str(e)
            }
        )

    factory = current_llm_factory()
    return {
        "status": "healthy",
        "database": "connected",
        "version": settings.APP_VERSION,
        "llm": factory.get_stats() if factory else {"providers": [], "initialized": False}
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "forkcheck.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.LOG_LEVEL.lower()
    )
