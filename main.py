"""
Main application entry point for the Grace Church API.

This module configures logging, builds the FastAPI application, sets up
CORS and the error handlers, attaches the session identity to every
request, and mounts the public routers and the owner-only admin routers
under the versioned API prefix.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from church import (
    activities,
    auth,
    contacts,
    dashboard,
    donations,
    events,
    media,
    models,
    sermons,
    users,
)
from church.core import get_settings
from church.database import SessionLocal, engine
from church.errors import register_exception_handlers
from church.logging_config import setup_logging
from church.seed import seed_owner

settings = get_settings()
setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)
logger = logging.getLogger("church.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the tables and make sure the owner account exists."""
    models.Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_owner(db, settings)
    finally:
        db.close()
    logger.info("Grace Church API ready")
    yield
    logger.info("Grace Church API shutting down")


# Initialize FastAPI application; the identity dependency runs on every request
app = FastAPI(
    title="Grace Church API",
    lifespan=lifespan,
    dependencies=[Depends(auth.get_optional_user)],
)

# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

api = APIRouter(prefix=settings.API_PREFIX)
api.include_router(auth.router)
api.include_router(users.router)
api.include_router(events.router)
api.include_router(donations.router)
api.include_router(contacts.router)
api.include_router(sermons.router)
api.include_router(media.router)

admin = APIRouter(prefix="/admin", dependencies=[Depends(auth.require_owner)])
admin.include_router(users.admin_router)
admin.include_router(media.admin_router)
admin.include_router(contacts.admin_router)
admin.include_router(donations.admin_router)
admin.include_router(activities.admin_router)
admin.include_router(dashboard.admin_router)

api.include_router(admin)
app.include_router(api)


@app.get("/")
def root():
    """
    Root endpoint for the API.

    Returns:
        dict: JSON message pointing to the Swagger UI.
    """
    return {"msg": "Grace Church API. Visit /docs for Swagger UI"}
