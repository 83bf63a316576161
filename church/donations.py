"""Donation routes for members and for the owner's donation reports."""

import logging
import random
import time
from typing import Literal

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from . import crud, notifications, reports, schemas
from .activity import ActivityLogger, get_activity_logger
from .auth import SessionUser, get_current_user
from .database import get_db
from .models import ActivityAction, DonationStatus, PaymentMethod

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/donations", tags=["donations"])
admin_router = APIRouter(prefix="/donations", tags=["admin: donations"])

DonationPeriod = Literal["all_time", "this_month", "last_month", "this_year"]


def settlement_details(donation_in: schemas.DonationCreate) -> dict:
    """
    Work out the initial status and references for a new donation.

    Card and PayPal donations complete immediately. eSewa and bank QR
    donations stay pending until the owner reconciles them, and carry a
    generated reference for that.

    Returns:
        dict: ``status_`` plus any of ``transaction_id``, ``qr_image_url``
        and ``esewa_reference``.
    """
    millis = int(time.time() * 1000)
    method = PaymentMethod(donation_in.payment_method)
    if method == PaymentMethod.ESEWA:
        return {
            "status_": DonationStatus.PENDING,
            "esewa_reference": f"ESEWA-{millis}-{random.randint(0, 999)}",
        }
    if method == PaymentMethod.BANK_QR:
        bank = (donation_in.bank_name or "GENERIC").strip().upper() or "GENERIC"
        return {
            "status_": DonationStatus.PENDING,
            "qr_image_url": f"https://example.com/qr-codes/church-donation-{millis}.png",
            "transaction_id": f"BANK-{bank}-{millis}",
        }
    return {"status_": DonationStatus.COMPLETED}


@router.post("", response_model=schemas.DonationOut, status_code=status.HTTP_201_CREATED)
def make_donation(
    donation_in: schemas.DonationCreate,
    background_tasks: BackgroundTasks,
    identity: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    """
    Record a donation by the signed-in member.

    Args:
        donation_in (DonationCreate): Amount, payment method and settlement hints.
        identity (SessionUser): Donating user.
        db (Session): Database session.

    Returns:
        DonationOut: Created donation.
    """
    donation = crud.create_donation(
        db,
        user_id=identity.id,
        amount=donation_in.amount,
        payment_method=donation_in.payment_method,
        **settlement_details(donation_in),
    )
    method = PaymentMethod(donation.payment_method).value
    if donation.status == DonationStatus.COMPLETED and identity.notification_opt_in:
        notifications.send_donation_receipt_email(
            background_tasks, identity.email, identity.name, float(donation.amount), method
        )
    activity.log(
        identity.id,
        ActivityAction.DONATION,
        f"Made a donation of ${donation.amount} using {method.replace('_', ' ')}",
    )
    return donation


@router.get("/history", response_model=schemas.Page[schemas.DonationOut])
def donation_history(
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100, alias="perPage"),
    identity: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Return the caller's own donations, newest first."""
    items, total = crud.list_user_donations(db, identity.id, page=page, per_page=per_page)
    return {"items": items, "total": total}


@admin_router.get("", response_model=schemas.Page[schemas.DonationDetail])
def list_donations(
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100, alias="perPage"),
    search: str = Query(""),
    status_: Literal["all", "pending", "completed", "failed"] = Query("all", alias="status"),
    period: DonationPeriod = Query("all_time"),
    sort: Literal["date", "amount", "id"] = Query("date"),
    direction: Literal["asc", "desc"] = Query("desc"),
    db: Session = Depends(get_db),
):
    """List all donations with donor name and email."""
    items, total = crud.list_donations(
        db,
        page=page,
        per_page=per_page,
        search=search,
        status_=status_,
        period=period,
        sort=sort,
        direction=direction,
    )
    return {"items": items, "total": total}


@admin_router.get("/summary", response_model=schemas.DonationSummary)
def donation_summary(
    period: DonationPeriod = Query("all_time"),
    db: Session = Depends(get_db),
):
    """Totals, growth, breakdowns and the six-month trend for a period."""
    return reports.donation_summary(db, period)


@admin_router.get("/{donation_id}", response_model=schemas.DonationDetail)
def get_donation(donation_id: int, db: Session = Depends(get_db)):
    donation = crud.get_donation(db, donation_id)
    if donation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Donation not found")
    return donation


@admin_router.patch("/{donation_id}", response_model=schemas.DonationDetail)
def update_donation(
    donation_id: int,
    changes: schemas.DonationUpdate,
    identity: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    """Change the status of a donation, typically after manual reconciliation."""
    donation = crud.get_donation(db, donation_id)
    if donation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Donation not found")
    values = {k: v for k, v in changes.model_dump(exclude_unset=True).items() if v is not None}
    donation = crud.update_donation(db, donation, values)
    new_status = DonationStatus(donation.status).value
    logger.info("Donation %s status set to %s", donation.id, new_status)
    activity.log(
        identity.id,
        ActivityAction.DONATION,
        f"Updated donation status to {new_status}: Donation ID {donation.id}",
    )
    return donation
