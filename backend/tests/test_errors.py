"""Error envelope and operational endpoints."""

API = "/api/v1"


async def test_not_found_envelope(client):
    response = await client.get(f"{API}/comic/{'e' * 32}")

    assert response.status_code == 404
    assert response.json() == {"success": False, "statusCode": 404, "message": "Comic not found"}


async def test_unknown_route_envelope(client):
    response = await client.get(f"{API}/does-not-exist")

    assert response.status_code == 404
    assert response.json()["success"] is False


async def test_unauthenticated_envelope(client):
    response = await client.get(f"{API}/user")

    assert response.status_code == 401
    assert response.json()["statusCode"] == 401
    assert response.json()["success"] is False


async def test_validation_envelope(client):
    response = await client.post(f"{API}/user/forgot-password", json={"email": "not-an-email"})

    assert response.status_code == 400
    assert response.json()["statusCode"] == 400
    assert response.json()["message"]


async def test_invalid_token_rejected(client):
    response = await client.get(f"{API}/user", headers={"Authorization": "Bearer garbage"})

    assert response.status_code == 401


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


async def test_root(client):
    response = await client.get("/")

    assert response.json()["version"] == "1.0.0"
