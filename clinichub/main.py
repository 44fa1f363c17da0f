"""
Main FastAPI application entry point.

This module creates the FastAPI application instance and configures
routes, middleware and application lifecycle events.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn
from typing import AsyncGenerator

from clinichub.config.settings import settings
from clinichub.core.database import create_tables
from clinichub.core.unit_of_work import UnitOfWork
from clinichub.services.domain.subscription_service import SubscriptionService
from clinichub.api.routes import onboarding, working_hours

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("clinichub")


def seed_plans() -> None:
    """Make sure every plan type has a stored subscription plan row."""
    with UnitOfWork() as uow:
        with uow.transaction():
            plans = SubscriptionService().ensure_default_plans(uow)
        logger.info(f"Subscription plans available: {', '.join(plan.name for plan in plans)}")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.
    
    Creates missing tables and seeds the subscription plans on startup.
    """
    logger.info(f"Starting {settings.project_name} API...")
    
    create_tables()
    seed_plans()
    logger.info("Database tables verified")
    logger.info(f"{settings.project_name} API ready, docs at /docs")
    
    yield
    
    logger.info(f"Shutting down {settings.project_name} API...")


# Create FastAPI application instance
app = FastAPI(
    title=settings.project_name,
    description="""
    ## ClinicHub Onboarding API
    
    Onboarding for multi-tenant healthcare facilities.
    
    - **Full onboarding**: submit an organization, complexes, departments,
      clinics and services in one atomic request
    - **Step wizard**: save the onboarding one step at a time with resumable progress
    - **Working hours**: validate that child schedules fit inside their parent's
    
    ### Plans
    - **company**: organization with complexes and clinics
    - **complex**: complexes with departments and clinics
    - **clinic**: a single clinic
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url=f"{settings.api_v1_str}/openapi.json",
    lifespan=lifespan
)

# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.debug else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """
    Global exception handler for unhandled errors.
    
    Provides consistent error responses and logging for debugging.
    """
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    error_detail = str(exc) if settings.debug else "Internal server error"
    
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal Server Error",
            "detail": error_detail,
            "path": str(request.url),
            "method": request.method
        }
    )


@app.get("/", tags=["System"])
async def root():
    """API information and available endpoints."""
    return {
        "message": f"Welcome to {settings.project_name}",
        "version": "1.0.0",
        "status": "operational",
        "documentation": {
            "interactive": "/docs",
            "alternative": "/redoc",
            "openapi_spec": f"{settings.api_v1_str}/openapi.json"
        },
        "endpoints": {
            "onboarding": f"{settings.api_v1_str}/onboarding",
            "working_hours": f"{settings.api_v1_str}/working-hours",
        },
        "celery_queues": ["default", "onboarding"],
    }


# Health check endpoint
@app.get("/health", tags=["System"])
async def health_check():
    """
    Health check endpoint for monitoring and load balancers.
    """
    return {
        "status": "healthy",
        "version": "1.0.0",
        "environment": "development" if settings.debug else "production",
    }


# Include API routers
app.include_router(
    onboarding.router,
    prefix=f"{settings.api_v1_str}/onboarding",
    tags=["Onboarding"]
)

app.include_router(
    working_hours.router,
    prefix=f"{settings.api_v1_str}/working-hours",
    tags=["Working Hours"]
)


# Development server entry point
if __name__ == "__main__":
    uvicorn.run(
        "clinichub.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )
