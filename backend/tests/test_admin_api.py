"""Admin user management and plan pricing."""

from decimal import Decimal

from otakusensei.models import SubscriptionPlan, User

API = "/api/v1"


async def test_get_users_requires_admin(client, make_user, headers_for):
    user = await make_user()

    assert (await client.get(f"{API}/admin/getusers")).status_code == 401
    response = await client.get(f"{API}/admin/getusers", headers=headers_for(user))
    assert response.status_code == 403
    assert response.json()["message"] == "Unauthorized: Admin access required"


async def test_get_users_paginated(client, make_user, headers_for):
    admin = await make_user(email="admin@example.com", role="admin")
    for name in ("Cara", "Abe", "Bo"):
        await make_user(first_name=name)

    response = await client.get(
        f"{API}/admin/getusers",
        params={"sortBy": "firstName", "sortOrder": "asc", "limit": 2, "role": "user"},
        headers=headers_for(admin),
    )

    data = response.json()["data"]
    assert [u["firstName"] for u in data["users"]] == ["Abe", "Bo"]
    assert data["pagination"] == {"total": 3, "page": 1, "limit": 2, "totalPages": 2}
    assert "hashedPassword" not in data["users"][0]


async def test_get_user_by_id(client, make_user, headers_for):
    admin = await make_user(role="admin")
    user = await make_user(email="someone@example.com")

    found = await client.get(f"{API}/admin/getUserById/{user.user_id}", headers=headers_for(admin))
    missing = await client.get(f"{API}/admin/getUserById/{'d' * 32}", headers=headers_for(admin))
    malformed = await client.get(f"{API}/admin/getUserById/42", headers=headers_for(admin))
    self_service = await client.get(f"{API}/admin/getUserById/{user.user_id}", headers=headers_for(user))

    assert found.json()["data"]["email"] == "someone@example.com"
    assert missing.status_code == 404
    assert malformed.json()["message"] == "Invalid User ID"
    assert self_service.status_code == 403


async def test_update_user_role(client, session_maker, make_user, headers_for):
    admin = await make_user(role="admin")
    user = await make_user()
    url = f"{API}/admin/updateUserRole/{user.user_id}"

    promoted = await client.patch(url, json={"role": "admin"}, headers=headers_for(admin))
    invalid = await client.patch(url, json={"role": "owner"}, headers=headers_for(admin))
    own = await client.patch(f"{API}/admin/updateUserRole/{admin.user_id}", json={"role": "user"}, headers=headers_for(admin))

    assert promoted.status_code == 200
    assert promoted.json()["data"]["role"] == "admin"
    assert invalid.status_code == 400
    assert own.status_code == 403
    assert own.json()["message"] == "You cannot change your own role"

    async with session_maker() as session:
        assert (await session.get(User, user.user_id)).role == "admin"
        assert (await session.get(User, admin.user_id)).role == "admin"


async def test_set_subscription_plan_upserts(client, session_maker, make_user, headers_for):
    admin = await make_user(role="admin")

    created = await client.post(
        f"{API}/admin/setSubscriptionPlan",
        json={"planType": "monthly", "price": 9.99, "durationDays": 30},
        headers=headers_for(admin),
    )
    updated = await client.post(
        f"{API}/update-subscription",
        json={"planType": "monthly", "price": 7.5, "durationDays": 31},
        headers=headers_for(admin),
    )

    assert created.json()["message"] == "Plan monthly updated successfully"
    assert updated.json()["data"]["price"] == 7.5
    async with session_maker() as session:
        plan = await session.get(SubscriptionPlan, "monthly")
    assert plan.price == Decimal("7.50")
    assert plan.duration_days == 31


async def test_set_subscription_plan_validation(client, make_user, headers_for):
    admin = await make_user(role="admin")
    user = await make_user()
    body = {"planType": "monthly", "price": 5, "durationDays": 30}

    bad_price = await client.post(f"{API}/admin/setSubscriptionPlan", json={**body, "price": 0}, headers=headers_for(admin))
    bad_type = await client.post(f"{API}/admin/setSubscriptionPlan", json={**body, "planType": "lifetime"}, headers=headers_for(admin))
    not_admin = await client.post(f"{API}/update-subscription", json=body, headers=headers_for(user))

    assert bad_price.status_code == 400
    assert bad_type.status_code == 400
    assert not_admin.status_code == 403
