"""Checkout and verification of subscription payments."""

from sqlalchemy import select

from otakusensei.models import Payment, User
from otakusensei.timeutil import as_utc

API = "/api/v1"


async def _initiate(client, headers, plan_type="monthly"):
    return await client.post(f"{API}/initiate-payment", json={"planType": plan_type}, headers=headers)


async def test_initiate_payment(client, db, gateway, make_user, make_plan, headers_for):
    await make_plan("monthly", price="9.99")
    user = await make_user()

    response = await _initiate(client, headers_for(user))

    assert response.status_code == 200
    body = response.json()
    assert body["clientSecret"] == "pi_test_1_secret"
    assert gateway.created[0]["amount_cents"] == 999
    assert gateway.created[0]["metadata"] == {"userId": user.user_id, "planType": "monthly"}

    payment = await db.get(Payment, body["paymentId"])
    assert payment.status == "pending"
    assert payment.payment_intent_id == "pi_test_1"


async def test_second_pending_payment_rejected(client, make_user, make_plan, headers_for):
    await make_plan("monthly")
    user = await make_user()

    await _initiate(client, headers_for(user))
    response = await _initiate(client, headers_for(user))

    assert response.status_code == 400
    assert response.json()["message"].startswith("You have a pending payment")


async def test_active_subscriber_cannot_buy(client, make_user, make_plan, headers_for):
    await make_plan("monthly")
    user = await make_user(premium_days=5)

    response = await _initiate(client, headers_for(user))

    assert response.status_code == 400
    assert response.json()["message"].startswith("You already have an active premium subscription")


async def test_unknown_or_invalid_plan(client, make_user, headers_for):
    user = await make_user()

    missing = await _initiate(client, headers_for(user), "yearly")
    invalid = await _initiate(client, headers_for(user), "weekly")

    assert missing.status_code == 404
    assert missing.json()["message"] == "Plan yearly not found"
    assert invalid.status_code == 400


async def test_verify_payment_activates_premium(client, session_maker, mailer, make_user, make_plan, headers_for):
    await make_plan("quarterly", price="24.99", duration_days=90)
    user = await make_user()
    payment_id = (await _initiate(client, headers_for(user), "quarterly")).json()["paymentId"]

    response = await client.post(f"{API}/verify-payment", json={"paymentId": payment_id}, headers=headers_for(user))

    assert response.status_code == 200
    assert response.json()["message"] == "Payment verified successfully. You are now a premium user!"
    assert mailer.subjects_for(user.email) == ["OtakuSensei Subscription Confirmed"]

    async with session_maker() as session:
        payment = await session.get(Payment, payment_id)
        stored = await session.get(User, user.user_id)
    assert payment.status == "success"
    assert stored.subscription_plan == "premium"
    assert (as_utc(stored.subscription_end) - as_utc(stored.subscription_start)).days == 90
    assert stored.reminder_sent is False

    again = await client.post(f"{API}/verify-payment", json={"paymentId": payment_id}, headers=headers_for(user))
    assert again.status_code == 400
    assert again.json()["message"] == "Payment already processed"


async def test_verify_failed_payment(client, session_maker, gateway, mailer, make_user, make_plan, headers_for):
    await make_plan("monthly")
    user = await make_user()
    payment_id = (await _initiate(client, headers_for(user))).json()["paymentId"]
    gateway.outcome = "requires_payment_method"

    response = await client.post(f"{API}/verify-payment", json={"paymentId": payment_id}, headers=headers_for(user))

    assert response.status_code == 400
    assert response.json()["message"] == "Payment verification failed"
    assert mailer.sent == []
    async with session_maker() as session:
        payment = await session.get(Payment, payment_id)
        stored = await session.get(User, user.user_id)
    assert payment.status == "failed"
    assert stored.subscription_plan == "none"

    # A failed payment no longer blocks a new checkout
    assert (await _initiate(client, headers_for(user))).status_code == 200


async def test_verify_someone_elses_payment(client, db, make_user, make_plan, headers_for):
    await make_plan("monthly")
    owner = await make_user()
    other = await make_user()
    payment_id = (await _initiate(client, headers_for(owner))).json()["paymentId"]

    foreign = await client.post(f"{API}/verify-payment", json={"paymentId": payment_id}, headers=headers_for(other))
    garbage = await client.post(f"{API}/verify-payment", json={"paymentId": "nope"}, headers=headers_for(other))

    assert foreign.status_code == 404
    assert foreign.json()["message"] == "Payment not found or unauthorized"
    assert garbage.status_code == 404
    pending = await db.execute(select(Payment.status).where(Payment.payment_id == payment_id))
    assert pending.scalar_one() == "pending"


async def test_subscription_plans(client, make_user, make_plan, headers_for):
    await make_plan("yearly", price="99.99", duration_days=365)
    await make_plan("monthly", price="9.99", duration_days=30)
    user = await make_user()

    anonymous = await client.get(f"{API}/get-subscription-plans")
    response = await client.get(f"{API}/get-subscription-plans", headers=headers_for(user))

    assert anonymous.status_code == 401
    assert [p["planType"] for p in response.json()["data"]] == ["monthly", "yearly"]
    assert response.json()["data"][0]["price"] == 9.99


async def test_premium_users_count(client, make_user, headers_for):
    admin = await make_user(role="admin")
    await make_user(premium_days=3)
    await make_user(premium_days=30)
    regular = await make_user()

    forbidden = await client.get(f"{API}/premium-users", headers=headers_for(regular))
    response = await client.get(f"{API}/premium-users", headers=headers_for(admin))
    legacy = await client.get(f"{API}/user-subscription", headers=headers_for(admin))

    assert forbidden.status_code == 403
    assert response.json()["data"] == 2
    assert legacy.json()["data"] == 2
