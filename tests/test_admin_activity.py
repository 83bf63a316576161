from fastapi import status
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from church import crud
from church.activity import write_activity
from church.auth import get_password_hash
from church.models import ActivityAction, UserRole

API = "/api/v1"
OWNER_EMAIL = "admin@gracechurch.org"


def login_owner(client, db_session):
    owner = crud.create_user(
        db_session,
        name="Admin",
        email=OWNER_EMAIL,
        hashed_password=get_password_hash("secret123"),
        role=UserRole.OWNER,
    )
    resp = client.post(
        f"{API}/auth/login", json={"email": OWNER_EMAIL, "password": "secret123"}
    )
    assert resp.status_code == status.HTTP_200_OK
    return owner


def test_write_activity_reports_success(session_factory):
    assert write_activity(session_factory, None, ActivityAction.SIGNUP, "System entry")


def test_write_activity_swallows_database_errors():
    # the tables do not exist in this fresh in-memory database
    empty = sessionmaker(bind=create_engine("sqlite://"))
    assert write_activity(empty, None, ActivityAction.SIGNUP, "Lost entry") is False


def test_activity_listing(client, db_session):
    owner = login_owner(client, db_session)
    crud.create_activity(db_session, None, ActivityAction.SIGNUP, "System maintenance")

    resp = client.get(f"{API}/admin/activity")
    assert resp.status_code == status.HTTP_200_OK
    data = resp.json()
    # the owner's login plus the system entry
    assert data["total"] == 2

    logins = client.get(f"{API}/admin/activity", params={"action": "login"}).json()
    assert logins["total"] == 1
    entry = logins["items"][0]
    assert entry["userId"] == owner.id
    assert entry["userName"] == "Admin"
    assert entry["userEmail"] == OWNER_EMAIL

    search = client.get(f"{API}/admin/activity", params={"search": "maintenance"}).json()
    assert search["total"] == 1
    assert search["items"][0]["userId"] is None

    by_id = client.get(
        f"{API}/admin/activity", params={"sort": "id", "direction": "asc"}
    ).json()
    ids = [item["id"] for item in by_id["items"]]
    assert ids == sorted(ids)

    detail = client.get(f"{API}/admin/activity/{entry['id']}")
    assert detail.status_code == status.HTTP_200_OK
    assert detail.json()["action"] == "login"

    assert client.get(f"{API}/admin/activity/9999").status_code == status.HTTP_404_NOT_FOUND


def test_activity_listing_rejects_unknown_filters(client, db_session):
    login_owner(client, db_session)
    assert client.get(
        f"{API}/admin/activity", params={"action": "dance"}
    ).status_code == status.HTTP_400_BAD_REQUEST
    assert client.get(
        f"{API}/admin/activity", params={"period": "this_year"}
    ).status_code == status.HTTP_400_BAD_REQUEST


def test_dashboard_stats_endpoint(client, db_session):
    assert client.get(f"{API}/admin/dashboard/stats").status_code == status.HTTP_401_UNAUTHORIZED

    login_owner(client, db_session)
    resp = client.get(f"{API}/admin/dashboard/stats")
    assert resp.status_code == status.HTTP_200_OK
    data = resp.json()
    assert set(data) == {
        "totalUsers",
        "totalDonations",
        "monthlyDonations",
        "upcomingEvents",
        "newContacts",
        "unreadContacts",
        "userGrowth",
        "donationGrowth",
    }
    assert data["totalUsers"] == 1
    assert data["userGrowth"] == 100
