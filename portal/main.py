"""
Main FastAPI application for the cluster portal.
Serves the v2 user API, the portal pages (home, job detail), health and metrics.
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from portal.core.config import settings
from portal.core.errors import PortalError, portal_error_handler
from portal.core.logging import configure_logging
from portal.api.routes import health, jobs, users
from portal.utils.metrics import router as metrics_router


configure_logging()

app = FastAPI(
    title="Cluster Portal",
    description="User API and job status pages for the cluster portal",
    version="1.0.0",
)

# CORS
origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
if not origins:
    origins = ["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:80"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Errors raised by controllers are formatted here
app.add_exception_handler(PortalError, portal_error_handler)

# Routers
app.include_router(health.router, tags=["health"])
app.include_router(users.router)
app.include_router(jobs.router)
app.include_router(metrics_router)
