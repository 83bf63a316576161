from datetime import datetime

from fastapi import status
from sqlalchemy import select

from church import crud
from church.auth import get_password_hash
from church.models import (
    Activity,
    ActivityAction,
    Donation,
    DonationStatus,
    PaymentMethod,
    UserRole,
)

API = "/api/v1"
OWNER_EMAIL = "admin@gracechurch.org"


def create_and_login(client, db_session, email, role=UserRole.USER, name="Member"):
    user = crud.create_user(
        db_session,
        name=name,
        email=email,
        hashed_password=get_password_hash("secret123"),
        role=role,
    )
    resp = client.post(f"{API}/auth/login", json={"email": email, "password": "secret123"})
    assert resp.status_code == status.HTTP_200_OK
    return user


def test_donation_requires_authentication(client):
    resp = client.post(f"{API}/donations", json={"amount": 50, "paymentMethod": "paypal"})
    assert resp.status_code == status.HTTP_401_UNAUTHORIZED


def test_card_donation_completes_and_appears_in_history(client, db_session):
    user = create_and_login(client, db_session, "a@example.com")

    resp = client.post(
        f"{API}/donations", json={"amount": 50, "paymentMethod": "credit_card"}
    )
    assert resp.status_code == status.HTTP_201_CREATED
    donation = resp.json()
    assert donation["status"] == "completed"
    assert donation["amount"] == 50.0
    assert donation["userId"] == user.id

    history = client.get(f"{API}/donations/history")
    assert history.status_code == status.HTTP_200_OK
    assert history.json()["total"] == 1
    assert history.json()["items"][0]["id"] == donation["id"]

    entry = db_session.scalars(
        select(Activity).where(Activity.action == ActivityAction.DONATION)
    ).one()
    assert entry.details == "Made a donation of $50.00 using credit card"


def test_bank_qr_donation_is_pending_with_placeholders(client, db_session):
    create_and_login(client, db_session, "b@example.com")
    resp = client.post(
        f"{API}/donations",
        json={"amount": "25.50", "paymentMethod": "bank_qr", "bankName": "nabil"},
    )
    assert resp.status_code == status.HTTP_201_CREATED
    data = resp.json()
    assert data["status"] == "pending"
    assert data["qrImageUrl"].startswith("https://example.com/qr-codes/church-donation-")
    assert data["transactionId"].startswith("BANK-NABIL-")


def test_bank_qr_without_bank_name_uses_generic(client, db_session):
    create_and_login(client, db_session, "c@example.com")
    resp = client.post(f"{API}/donations", json={"amount": 5, "paymentMethod": "bank_qr"})
    assert resp.json()["transactionId"].startswith("BANK-GENERIC-")


def test_esewa_donation_is_pending_with_reference(client, db_session):
    create_and_login(client, db_session, "d@example.com")
    resp = client.post(
        f"{API}/donations",
        json={"amount": 10, "paymentMethod": "esewa", "esewaId": "9800000000"},
    )
    data = resp.json()
    assert data["status"] == "pending"
    assert data["esewaReference"].startswith("ESEWA-")


def test_non_positive_amounts_are_rejected(client, db_session):
    create_and_login(client, db_session, "e@example.com")
    for amount in (0, -5, "-0.01"):
        resp = client.post(
            f"{API}/donations", json={"amount": amount, "paymentMethod": "paypal"}
        )
        assert resp.status_code == status.HTTP_400_BAD_REQUEST
        assert resp.json()["message"].startswith("Validation error")
    assert db_session.scalars(select(Donation)).all() == []


def test_unknown_payment_method_is_rejected(client, db_session):
    create_and_login(client, db_session, "f@example.com")
    resp = client.post(f"{API}/donations", json={"amount": 5, "paymentMethod": "bitcoin"})
    assert resp.status_code == status.HTTP_400_BAD_REQUEST


def test_history_only_shows_own_donations(client, db_session):
    other = crud.create_user(
        db_session, name="Other", email="other@example.com", hashed_password="x"
    )
    crud.create_donation(
        db_session, other.id, 99, PaymentMethod.PAYPAL, DonationStatus.COMPLETED
    )
    create_and_login(client, db_session, "g@example.com")
    client.post(f"{API}/donations", json={"amount": 1, "paymentMethod": "paypal"})

    history = client.get(f"{API}/donations/history").json()
    assert history["total"] == 1
    assert history["items"][0]["amount"] == 1.0


def test_admin_donation_listing_sort_and_status(client, db_session):
    donor = crud.create_user(
        db_session, name="Hannah", email="hannah@example.com", hashed_password="x"
    )
    for amount, state in ((10, DonationStatus.COMPLETED), (30, DonationStatus.PENDING), (20, DonationStatus.COMPLETED)):
        crud.create_donation(db_session, donor.id, amount, PaymentMethod.PAYPAL, state)
    create_and_login(client, db_session, OWNER_EMAIL, role=UserRole.OWNER, name="Admin")

    by_amount = client.get(
        f"{API}/admin/donations", params={"sort": "amount", "direction": "asc"}
    ).json()
    assert [d["amount"] for d in by_amount["items"]] == [10.0, 20.0, 30.0]
    assert by_amount["items"][0]["userName"] == "Hannah"
    assert by_amount["items"][0]["userEmail"] == "hannah@example.com"

    pending = client.get(f"{API}/admin/donations", params={"status": "pending"}).json()
    assert pending["total"] == 1

    search = client.get(f"{API}/admin/donations", params={"search": "nobody"}).json()
    assert search == {"items": [], "total": 0}

    bad_sort = client.get(f"{API}/admin/donations", params={"sort": "donor"})
    assert bad_sort.status_code == status.HTTP_400_BAD_REQUEST


def test_admin_donation_detail_and_status_update(client, db_session):
    donor = crud.create_user(
        db_session, name="Hannah", email="hannah@example.com", hashed_password="x"
    )
    donation = crud.create_donation(
        db_session, donor.id, 40, PaymentMethod.ESEWA, DonationStatus.PENDING
    )
    create_and_login(client, db_session, OWNER_EMAIL, role=UserRole.OWNER, name="Admin")

    detail = client.get(f"{API}/admin/donations/{donation.id}")
    assert detail.status_code == status.HTTP_200_OK
    assert detail.json()["userName"] == "Hannah"

    updated = client.patch(
        f"{API}/admin/donations/{donation.id}", json={"status": "completed"}
    )
    assert updated.status_code == status.HTTP_200_OK
    assert updated.json()["status"] == "completed"

    missing = client.get(f"{API}/admin/donations/9999")
    assert missing.status_code == status.HTTP_404_NOT_FOUND


def test_admin_donation_summary_endpoint(client, db_session):
    donor = crud.create_user(
        db_session, name="Hannah", email="hannah@example.com", hashed_password="x"
    )
    donation = crud.create_donation(
        db_session, donor.id, 100, PaymentMethod.CREDIT_CARD, DonationStatus.COMPLETED
    )
    crud.update_donation(db_session, donation, {"created_at": datetime.now()})
    create_and_login(client, db_session, OWNER_EMAIL, role=UserRole.OWNER, name="Admin")

    resp = client.get(f"{API}/admin/donations/summary", params={"period": "all_time"})
    assert resp.status_code == status.HTTP_200_OK
    summary = resp.json()
    assert summary["totalDonations"] == 100.0
    assert summary["totalDonors"] == 1
    assert len(summary["monthlyTrend"]) == 6
    assert summary["paymentMethodBreakdown"] == [{"name": "credit card", "value": 1}]

    bad = client.get(f"{API}/admin/donations/summary", params={"period": "forever"})
    assert bad.status_code == status.HTTP_400_BAD_REQUEST
