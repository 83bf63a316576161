"""Owner dashboard figures."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from . import reports, schemas
from .database import get_db

admin_router = APIRouter(prefix="/dashboard", tags=["admin: dashboard"])


@admin_router.get("/stats", response_model=schemas.DashboardStats)
def dashboard_stats(db: Session = Depends(get_db)):
    """Return the eight aggregate figures shown on the admin dashboard."""
    return reports.dashboard_stats(db)
