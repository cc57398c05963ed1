"""
Prison Management API: prisoners, cells, visits, staff, security and access control.
"""
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

import config
from database.connection import Database
from core.errors import PrisonError, ConnectivityError
from core.logger import logger
from middleware.security import SecurityHeadersMiddleware, RequestLoggingMiddleware, setup_cors
from services.emergency_procedure_service import EmergencyProcedureService
from routers.auth import router as auth_router
from routers.employees import router as employees_router
from routers.prisoners import router as prisoners_router
from routers.cells import router as cells_router
from routers.visitors import router as visitors_router
from routers.visits import router as visits_router
from routers.tasks import router as tasks_router
from routers.guard_duties import router as guard_duties_router
from routers.security import router as security_router
from routers.access_controls import router as access_controls_router
from routers.daily_reports import router as daily_reports_router


# Lifespan context manager for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan events for FastAPI app.
    Initialize the database and seed the standard emergency procedures on startup.
    """
    logger.info("=" * 60)
    logger.info(f"Starting {config.APP_NAME}...")
    logger.info("=" * 60)

    # Tests install their own database before the app starts
    owns_db = config.db is None
    if owns_db:
        try:
            config.db = Database(
                database_url=config.DATABASE_URL,
                pool_size=config.DB_POOL_SIZE,
                max_overflow=config.DB_MAX_OVERFLOW,
                pool_timeout=config.DB_POOL_TIMEOUT,
                statement_timeout_ms=config.DB_STATEMENT_TIMEOUT_MS,
            )
            config.db.create_tables()
            logger.info("Database initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize database: {e}", exc_info=True)
            raise

    with config.db.get_session() as db:
        seeded = EmergencyProcedureService.seed_default_procedures(db)
    if seeded:
        logger.info(f"Seeded {seeded} emergency procedures")

    logger.info("=" * 60)
    logger.info("Server ready!")
    logger.info(f"Environment: {config.ENVIRONMENT}")
    logger.info("API Docs: http://localhost:8000/docs")
    logger.info("=" * 60)

    yield

    # Cleanup on shutdown
    logger.info("Shutting down...")
    if owns_db and config.db:
        config.db.dispose()
        config.db = None


# Initialize FastAPI app
app = FastAPI(
    title=config.APP_NAME,
    description="Back office API for prison administration",
    version=config.APP_VERSION,
    lifespan=lifespan
)

# Setup security middleware
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)
setup_cors(app, config.CORS_ORIGINS, allow_credentials=config.CORS_ALLOW_CREDENTIALS)


@app.exception_handler(PrisonError)
async def prison_error_handler(request: Request, exc: PrisonError):
    """Map domain errors onto their HTTP status."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected ({exc.status_code}): {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Include routers
app.include_router(auth_router)
app.include_router(employees_router)
app.include_router(prisoners_router)
app.include_router(cells_router)
app.include_router(visitors_router)
app.include_router(visits_router)
app.include_router(tasks_router)
app.include_router(guard_duties_router)
app.include_router(security_router)
app.include_router(access_controls_router)
app.include_router(daily_reports_router)


@app.get("/")
async def root():
    """Root endpoint with API information. Public endpoint."""
    return {
        "message": config.APP_NAME,
        "version": config.APP_VERSION,
        "environment": config.ENVIRONMENT,
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring. Public endpoint."""
    health_status = {
        "status": "healthy",
        "timestamp": time.time(),
        "checks": {}
    }

    if config.db is None:
        health_status["checks"]["database"] = {"status": "error", "error": "not initialized"}
        health_status["status"] = "unhealthy"
        return JSONResponse(status_code=503, content=health_status)

    try:
        config.db.ping()
        health_status["checks"]["database"] = {"status": "ok"}
    except ConnectivityError as e:
        logger.error(f"Health check failed: {e.message}")
        health_status["checks"]["database"] = {"status": "error", "error": e.message}
        health_status["status"] = "unhealthy"
        return JSONResponse(status_code=503, content=health_status)

    return health_status


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
