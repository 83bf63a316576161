from fastapi import status
from sqlalchemy import select

from church import crud
from church.auth import (
    create_access_token,
    create_password_reset_token,
    get_password_hash,
    issue_session_token,
    verify_password,
    verify_token,
)
from church.models import Activity, ActivityAction, User, UserRole, UserStatus

API = "/api/v1"


def test_password_hashing_roundtrip():
    password = "secret123"
    hashed = get_password_hash(password)
    assert hashed != password
    assert verify_password(password, hashed)
    assert not verify_password("wrong", hashed)


def create_member(
    db_session,
    email="user@example.com",
    password="secret123",
    role=UserRole.USER,
    status_=UserStatus.ACTIVE,
):
    return crud.create_user(
        db_session,
        name="Member",
        email=email,
        hashed_password=get_password_hash(password),
        role=role,
        status_=status_,
    )


def test_session_token_carries_identity(db_session):
    user = create_member(db_session)
    claims = verify_token(issue_session_token(user))
    assert claims["id"] == user.id
    assert claims["email"] == user.email
    assert claims["role"] == "user"


def test_verify_token_rejects_garbage_and_foreign_scope(db_session):
    user = create_member(db_session)
    assert verify_token("not-a-token") is None
    assert verify_token(create_password_reset_token(user)) is None
    assert verify_token(create_access_token({"id": user.id}), scope="reset") is None


def test_signup_then_login(client, db_session):
    signup = client.post(
        f"{API}/auth/signup",
        json={"name": "Ruth", "email": "ruth@example.com", "password": "secret123"},
    )
    assert signup.status_code == status.HTTP_201_CREATED
    assert signup.json() == {"message": "User created successfully"}

    login = client.post(
        f"{API}/auth/login", json={"email": "ruth@example.com", "password": "secret123"}
    )
    assert login.status_code == status.HTTP_200_OK
    data = login.json()
    assert data["email"] == "ruth@example.com"
    assert data["role"] == "user"
    assert "password" not in data and "hashedPassword" not in data
    assert any("HttpOnly" in c and "SameSite=strict" in c for c in login.set_cookies)
    assert "auth_token" in client.cookies

    me = client.get(f"{API}/auth/me")
    assert me.status_code == status.HTTP_200_OK
    assert me.json()["email"] == "ruth@example.com"

    actions = db_session.scalars(select(Activity.action)).all()
    assert ActivityAction.SIGNUP in actions
    assert ActivityAction.LOGIN in actions


def test_signup_ignores_role_and_rejects_duplicates(client, db_session):
    payload = {
        "name": "Eve",
        "email": "eve@example.com",
        "password": "secret123",
        "role": "owner",
    }
    assert client.post(f"{API}/auth/signup", json=payload).status_code == 201
    user = crud.get_user_by_email(db_session, "eve@example.com")
    assert user.role == UserRole.USER
    assert user.status == UserStatus.ACTIVE

    again = client.post(f"{API}/auth/signup", json=payload)
    assert again.status_code == status.HTTP_409_CONFLICT
    assert again.json()["message"] == "User with this email already exists"


def test_signup_validation_message(client):
    resp = client.post(
        f"{API}/auth/signup", json={"name": "A", "email": "bad", "password": "123"}
    )
    assert resp.status_code == status.HTTP_400_BAD_REQUEST
    message = resp.json()["message"]
    assert message.startswith("Validation error: ")
    assert "name" in message and "password" in message


def test_login_wrong_password_and_unknown_email(client, db_session):
    create_member(db_session)
    wrong = client.post(
        f"{API}/auth/login", json={"email": "user@example.com", "password": "nope123"}
    )
    assert wrong.status_code == status.HTTP_401_UNAUTHORIZED
    assert wrong.json()["message"] == "Invalid email or password"

    unknown = client.post(
        f"{API}/auth/login", json={"email": "ghost@example.com", "password": "secret123"}
    )
    assert unknown.status_code == status.HTTP_401_UNAUTHORIZED


def test_login_inactive_account_is_forbidden_regardless_of_password(client, db_session):
    create_member(db_session, email="gone@example.com", status_=UserStatus.INACTIVE)
    for password in ("secret123", "wrong-password"):
        resp = client.post(
            f"{API}/auth/login", json={"email": "gone@example.com", "password": password}
        )
        assert resp.status_code == status.HTTP_403_FORBIDDEN
    assert "auth_token" not in client.cookies


def test_deactivated_user_loses_session(client, db_session):
    user = create_member(db_session)
    client.post(f"{API}/auth/login", json={"email": user.email, "password": "secret123"})
    assert client.get(f"{API}/auth/me").status_code == status.HTTP_200_OK

    crud.update_user(db_session, user, {"status": UserStatus.INACTIVE})
    assert client.get(f"{API}/auth/me").status_code == status.HTTP_401_UNAUTHORIZED


def test_invalid_cookie_is_treated_as_anonymous(client):
    client.cookies["auth_token"] = "garbage"
    resp = client.get(f"{API}/events")
    assert resp.status_code == status.HTTP_200_OK
    me = client.get(f"{API}/auth/me")
    assert me.status_code == status.HTTP_401_UNAUTHORIZED
    assert me.json()["message"] == "Unauthorized - Authentication required"


def test_logout_clears_cookie_even_when_anonymous(client, db_session):
    anonymous = client.post(f"{API}/auth/logout")
    assert anonymous.status_code == status.HTTP_200_OK
    assert anonymous.json() == {"message": "Logged out successfully"}

    user = create_member(db_session)
    client.post(f"{API}/auth/login", json={"email": user.email, "password": "secret123"})
    assert "auth_token" in client.cookies
    resp = client.post(f"{API}/auth/logout")
    assert resp.status_code == status.HTTP_200_OK
    assert "auth_token" not in client.cookies
    assert client.get(f"{API}/auth/me").status_code == status.HTTP_401_UNAUTHORIZED


def test_change_password(client, db_session):
    user = create_member(db_session)
    client.post(f"{API}/auth/login", json={"email": user.email, "password": "secret123"})

    wrong = client.post(
        f"{API}/auth/change-password",
        json={"currentPassword": "nope", "newPassword": "newpass123"},
    )
    assert wrong.status_code == status.HTTP_401_UNAUTHORIZED

    ok = client.post(
        f"{API}/auth/change-password",
        json={"currentPassword": "secret123", "newPassword": "newpass123"},
    )
    assert ok.status_code == status.HTTP_200_OK
    db_session.refresh(user)
    assert verify_password("newpass123", user.hashed_password)


def test_password_reset_flow(client, db_session):
    user = create_member(db_session, email="reset@example.com")
    request_resp = client.post(f"{API}/auth/password/reset", json={"email": user.email})
    assert request_resp.status_code == status.HTTP_200_OK

    unknown = client.post(f"{API}/auth/password/reset", json={"email": "nobody@example.com"})
    assert unknown.status_code == status.HTTP_200_OK
    assert unknown.json() == request_resp.json()

    token = create_password_reset_token(user)
    confirm_resp = client.post(
        f"{API}/auth/password/reset/confirm",
        json={"token": token, "newPassword": "newpass123"},
    )
    assert confirm_resp.status_code == status.HTTP_200_OK
    db_session.refresh(user)
    assert verify_password("newpass123", user.hashed_password)


def test_password_reset_rejects_session_token(client, db_session):
    user = create_member(db_session)
    resp = client.post(
        f"{API}/auth/password/reset/confirm",
        json={"token": issue_session_token(user), "newPassword": "newpass123"},
    )
    assert resp.status_code == status.HTTP_400_BAD_REQUEST
    stored = db_session.get(User, user.id)
    assert verify_password("secret123", stored.hashed_password)
