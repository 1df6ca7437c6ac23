"""Signup, login, profile and password reset over HTTP."""

from datetime import timedelta

from sqlalchemy import update

from otakusensei.models import Otp, ResetToken, User
from otakusensei.services.google_oauth import GoogleProfile
from otakusensei.services.users import get_user_by_email

API = "/api/v1"
DEFAULT_PASSWORD = "secret12"


def _signup_body(**overrides) -> dict:
    body = {
        "email": "newbie@example.com",
        "password": "secret12",
        "firstName": "Newbie",
        "lastName": "Reader",
        "phone": "5551234567",
    }
    body.update(overrides)
    return body


async def test_signup_then_verify_creates_user(client, db, mailer):
    response = await client.post(f"{API}/user/signup", json=_signup_body())
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "OTP sent to your email"}
    assert mailer.subjects_for("newbie@example.com") == ["OtakuSensei Signup OTP"]

    otp = await db.get(Otp, "newbie@example.com")
    assert otp is not None and len(otp.otp) == 6

    response = await client.post(f"{API}/user/verify-otp", json={"email": "newbie@example.com", "otp": otp.otp})
    assert response.status_code == 200
    body = response.json()
    assert body["user"]["email"] == "newbie@example.com"
    assert body["user"]["provider"] == "local"
    assert body["user"]["subscription"]["plan"] == "none"
    assert "hashedPassword" not in body["user"]
    assert body["token"]
    assert "token=" in response.headers["set-cookie"]

    # OTP is single use
    again = await client.post(f"{API}/user/verify-otp", json={"email": "newbie@example.com", "otp": otp.otp})
    assert again.status_code == 400


async def test_signup_validation(client):
    cases = [
        (_signup_body(email="not-an-email"), "Invalid email format"),
        (_signup_body(password="12345"), "Password must be between 6 and 12 characters"),
        (_signup_body(password="1234567890123"), "Password must be between 6 and 12 characters"),
        (_signup_body(firstName="Al"), "First name must be at least 3 characters"),
        (_signup_body(phone="12345"), "Invalid phone number"),
        (_signup_body(avatar="ftp://nope"), "Invalid avatar URL"),
    ]
    for body, message in cases:
        response = await client.post(f"{API}/user/signup", json=body)
        assert response.status_code == 400
        assert response.json() == {"success": False, "statusCode": 400, "message": message}


async def test_signup_existing_email_rejected(client, make_user):
    await make_user(email="taken@example.com")

    response = await client.post(f"{API}/user/signup", json=_signup_body(email="taken@example.com"))

    assert response.status_code == 400
    assert response.json()["message"] == "User already exists"


async def test_signup_email_failure_returns_500(client, mailer):
    mailer.fail = True

    response = await client.post(f"{API}/user/signup", json=_signup_body())

    assert response.status_code == 500
    assert response.json()["success"] is False


async def test_verify_otp_wrong_code(client, db):
    await client.post(f"{API}/user/signup", json=_signup_body())
    otp = await db.get(Otp, "newbie@example.com")
    wrong = "111111" if otp.otp != "111111" else "222222"

    response = await client.post(f"{API}/user/verify-otp", json={"email": "newbie@example.com", "otp": wrong})

    assert response.status_code == 400
    assert response.json()["message"] == "OTP verification failed: Invalid OTP"


async def test_verify_otp_expired(client, db, session_maker):
    await client.post(f"{API}/user/signup", json=_signup_body())
    otp = await db.get(Otp, "newbie@example.com")
    async with session_maker() as session:
        await session.execute(
            update(Otp).where(Otp.email == otp.email).values(expires_at=otp.expires_at - timedelta(minutes=10))
        )
        await session.commit()

    response = await client.post(f"{API}/user/verify-otp", json={"email": "newbie@example.com", "otp": otp.otp})

    assert response.status_code == 400
    assert response.json()["message"] == "OTP verification failed: OTP has expired"


async def test_verify_otp_rejects_non_ascii_digits(client, db):
    await client.post(f"{API}/user/signup", json=_signup_body())

    response = await client.post(
        f"{API}/user/verify-otp", json={"email": "newbie@example.com", "otp": "١٢٣٤٥٦"}
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid OTP"
    assert await db.get(Otp, "newbie@example.com") is not None


async def test_reset_password_rejects_non_hex_token(client, make_user):
    await make_user(email="forgot@example.com")
    await client.post(f"{API}/user/forgot-password", json={"email": "forgot@example.com"})
    body = {"email": "forgot@example.com", "newPassword": "fresh12", "confirmNewPassword": "fresh12"}

    for token in ("é" * 64, "Z" * 64, "A" * 64):
        response = await client.post(f"{API}/user/reset-password/{token}", json=body)
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid reset token format"


async def test_login_and_me(client, make_user):
    user = await make_user(email="login@example.com")

    bad = await client.post(f"{API}/user/login", json={"email": "login@example.com", "password": "wrongpw"})
    assert bad.status_code == 400
    assert bad.json()["message"] == "Invalid email or password"

    response = await client.post(f"{API}/user/login", json={"email": "login@example.com", "password": DEFAULT_PASSWORD})
    assert response.status_code == 200
    token = response.json()["token"]

    me = await client.get(f"{API}/user", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["user"]["id"] == user.user_id


async def test_login_google_only_account(client, make_user):
    await make_user(email="google@example.com", password=None, provider="google", google_id="g-1")

    response = await client.post(f"{API}/user/login", json={"email": "google@example.com", "password": "whatever"})

    assert response.status_code == 400
    assert response.json()["message"] == "Use Google login for this account"


async def test_me_requires_token(client):
    missing = await client.get(f"{API}/user")
    invalid = await client.get(f"{API}/user", headers={"Authorization": "Bearer not-a-jwt"})

    assert missing.status_code == 401
    assert missing.json()["message"] == "Unauthorized: No token provided"
    assert invalid.status_code == 401
    assert invalid.json()["message"] == "Forbidden: Invalid or expired token"


async def test_logout_clears_cookie(client):
    response = await client.get(f"{API}/user/logout")

    assert response.status_code == 200
    assert 'token=""' in response.headers["set-cookie"] or "token=;" in response.headers["set-cookie"]


async def test_update_profile(client, make_user, headers_for):
    user = await make_user()
    await make_user(phone="5550000000")

    empty = await client.patch(f"{API}/user/update-profile", json={}, headers=headers_for(user))
    assert empty.status_code == 400
    assert empty.json()["message"] == "No fields to update"

    taken = await client.patch(f"{API}/user/update-profile", json={"phone": "5550000000"}, headers=headers_for(user))
    assert taken.status_code == 400
    assert taken.json()["message"] == "Phone number already in use"

    response = await client.patch(
        f"{API}/user/update-profile",
        json={"firstName": "Renamed", "phone": "5559999999"},
        headers=headers_for(user),
    )
    assert response.status_code == 200
    assert response.json()["data"]["firstName"] == "Renamed"
    assert response.json()["data"]["phone"] == "5559999999"


async def test_update_password(client, make_user, headers_for):
    user = await make_user(email="pw@example.com")

    wrong = await client.patch(
        f"{API}/user/update-password",
        json={"oldPassword": "nope123", "newPassword": "newpass1"},
        headers=headers_for(user),
    )
    assert wrong.status_code == 400
    assert wrong.json()["message"] == "Invalid old password"

    response = await client.patch(
        f"{API}/user/update-password",
        json={"oldPassword": DEFAULT_PASSWORD, "newPassword": "newpass1"},
        headers=headers_for(user),
    )
    assert response.status_code == 200

    login = await client.post(f"{API}/user/login", json={"email": "pw@example.com", "password": "newpass1"})
    assert login.status_code == 200


async def test_forgot_and_reset_password(client, db, make_user, mailer):
    await make_user(email="forgot@example.com", password=None, provider="google", google_id="g-2")

    unknown = await client.post(f"{API}/user/forgot-password", json={"email": "nobody@example.com"})
    assert unknown.status_code == 404

    response = await client.post(f"{API}/user/forgot-password", json={"email": "forgot@example.com"})
    assert response.status_code == 200
    record = await db.get(ResetToken, "forgot@example.com")
    assert len(record.token) == 64
    assert record.token in mailer.sent[-1]["text"]

    short = await client.post(
        f"{API}/user/reset-password/abc",
        json={"email": "forgot@example.com", "newPassword": "fresh12", "confirmNewPassword": "fresh12"},
    )
    assert short.status_code == 400
    assert short.json()["message"] == "Invalid reset token format"

    mismatch = await client.post(
        f"{API}/user/reset-password/{record.token}",
        json={"email": "forgot@example.com", "newPassword": "fresh12", "confirmNewPassword": "fresh13"},
    )
    assert mismatch.status_code == 400
    assert mismatch.json()["message"] == "Passwords do not match"

    reset = await client.post(
        f"{API}/user/reset-password/{record.token}",
        json={"email": "forgot@example.com", "newPassword": "fresh12", "confirmNewPassword": "fresh12"},
    )
    assert reset.status_code == 200

    user = await get_user_by_email(db, "forgot@example.com")
    await db.refresh(user)
    assert user.provider == "hybrid"

    login = await client.post(f"{API}/user/login", json={"email": "forgot@example.com", "password": "fresh12"})
    assert login.status_code == 200

    reused = await client.post(
        f"{API}/user/reset-password/{record.token}",
        json={"email": "forgot@example.com", "newPassword": "other12", "confirmNewPassword": "other12"},
    )
    assert reused.status_code == 400


async def test_google_token_login_links_local_account(client, db, make_user, google):
    local = await make_user(email="linked@example.com")
    google.profiles["id-token-1"] = GoogleProfile(
        google_id="google-123",
        email="linked@example.com",
        first_name="Linked",
        last_name="",
        avatar="",
    )

    response = await client.post(f"{API}/auth/google", json={"token": "id-token-1"})

    assert response.status_code == 200
    assert response.json()["user"]["id"] == local.user_id
    assert response.json()["user"]["provider"] == "hybrid"
    user = await db.get(User, local.user_id)
    assert user.google_id == "google-123"


async def test_google_token_login_creates_user(client, google):
    google.profiles["id-token-2"] = GoogleProfile(
        google_id="google-456",
        email="fresh@example.com",
        first_name="Fresh",
        last_name="Face",
        avatar="https://img.example.com/a.png",
    )

    response = await client.post(f"{API}/auth/google", json={"token": "id-token-2"})
    rejected = await client.post(f"{API}/auth/google", json={"token": "forged"})

    assert response.status_code == 200
    assert response.json()["user"]["provider"] == "google"
    assert rejected.status_code == 400


async def test_google_callback_redirects(client, google):
    google.profiles["code-1"] = GoogleProfile(
        google_id="google-789", email="cb@example.com", first_name="Callback", last_name="", avatar=""
    )

    ok = await client.get(f"{API}/auth/google/callback", params={"code": "code-1"})
    failed = await client.get(f"{API}/auth/google/callback", params={"code": "bad"})

    assert ok.status_code == 302
    assert "token=" in ok.headers["set-cookie"]
    assert failed.status_code == 302
    assert failed.headers["location"].endswith("?error=google_login_failed")
