"""
Main FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from svmms.config import get_settings
from svmms.database import engine, init_db
from svmms.errors import register_exception_handlers
from svmms.routers import analytics, auth, bookings, invoices, jobcards, parts, payments, seed, users, vehicles

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("svmms")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan events for the application.
    Handles startup and shutdown events.
    """
    # Startup
    logger.info("Starting %s (%s)", settings.app_name, settings.environment)
    await init_db()
    logger.info("API available at: %s", settings.api_prefix)

    yield

    # Shutdown
    await engine.dispose()
    logger.info("Shutting down %s", settings.app_name)


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    ## Service Vehicle Maintenance Management System API

    Vehicles, service bookings, job cards, parts inventory, invoices and
    payments for a service center, with admin, mechanic and customer roles.

    ### Entities:
    * **Users**: Authentication, roles and profiles
    * **Vehicles**: Customer vehicles and their service history
    * **Bookings**: Service appointments and mechanic assignment
    * **Job cards**: Tasks and spare parts used on a job
    * **Parts**: Inventory with low-stock tracking
    * **Invoices & payments**: Billing and simulated payments
    """,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    response = await call_next(request)
    logger.info("%s %s %s", request.method, request.url.path, response.status_code)
    return response


# Include routers
for module in (auth, users, vehicles, bookings, jobcards, parts, invoices, payments, analytics, seed):
    app.include_router(module.router, prefix=settings.api_prefix)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": f"Welcome to {settings.app_name} API",
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc",
    }


@app.get(f"{settings.api_prefix}/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "svmms.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
