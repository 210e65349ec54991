from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from sproutie.models.user import User
from sproutie.schemas.user import UserCreate
from sproutie.services.user_service import create_user


def _auth(uid: str) -> dict:
    return {"Authorization": f"Bearer {uid}"}


async def _register(client: AsyncClient, uid: str, email: str, **extra):
    payload = {"firebaseUid": uid, "email": email, **extra}
    return await client.post("/api/v1/users", json=payload, headers=_auth(uid))


async def test_create_user(client: AsyncClient):
    res = await _register(client, "uid-alice", "Alice@Example.com", displayName="Alice")
    assert res.status_code == 201
    body = res.json()
    assert body["success"] is True
    assert body["message"] == "User created successfully"
    user = body["user"]
    assert user["firebaseUid"] == "uid-alice"
    assert user["email"] == "alice@example.com"
    assert user["displayName"] == "Alice"
    # Taken from the verified token, not the request body
    assert user["emailVerified"] is True
    assert "id" in user
    assert "createdAt" in user
    assert "isActive" not in user
    assert "updatedAt" not in user


async def test_create_then_get_user(client: AsyncClient):
    await _register(client, "uid-bob", "bob@example.com")
    res = await client.get("/api/v1/users/uid-bob", headers=_auth("uid-bob"))
    assert res.status_code == 200
    user = res.json()["user"]
    assert user["firebaseUid"] == "uid-bob"
    assert user["email"] == "bob@example.com"
    assert user["emailVerified"] is True


async def test_create_user_twice_conflicts(client: AsyncClient):
    first = await _register(client, "uid-carol", "carol@example.com")
    assert first.status_code == 201
    second = await _register(client, "uid-carol", "carol@example.com")
    assert second.status_code == 409
    assert second.json() == {"error": "User already exists"}


async def test_create_user_missing_email(client: AsyncClient):
    res = await client.post(
        "/api/v1/users", json={"firebaseUid": "uid-dave"}, headers=_auth("uid-dave")
    )
    assert res.status_code == 400
    assert "email" in res.json()["error"]


async def test_create_user_missing_uid(client: AsyncClient):
    res = await client.post(
        "/api/v1/users", json={"email": "dave@example.com"}, headers=_auth("uid-dave")
    )
    assert res.status_code == 400
    assert "error" in res.json()


async def test_create_user_for_someone_else_is_forbidden(client: AsyncClient):
    res = await client.post(
        "/api/v1/users",
        json={"firebaseUid": "uid-victim", "email": "victim@example.com"},
        headers=_auth("uid-mallory"),
    )
    assert res.status_code == 403


async def test_create_user_unauthenticated(client: AsyncClient):
    res = await client.post("/api/v1/users", json={"firebaseUid": "uid-x", "email": "x@example.com"})
    assert res.status_code == 401
    assert res.json() == {"error": "Authentication required"}


async def test_get_unknown_user(client: AsyncClient):
    res = await client.get("/api/v1/users/uid-nobody", headers=_auth("uid-eve"))
    assert res.status_code == 404
    assert res.json() == {"error": "User not found"}


async def test_get_me(client: AsyncClient):
    await _register(client, "uid-frank", "frank@example.com", displayName="Frank")
    res = await client.get("/api/v1/users/me", headers=_auth("uid-frank"))
    assert res.status_code == 200
    assert res.json()["user"]["displayName"] == "Frank"


async def test_patch_me(client: AsyncClient):
    await _register(client, "uid-grace", "grace@example.com", displayName="Grace")
    res = await client.patch(
        "/api/v1/users/me",
        json={"displayName": "Grace H."},
        headers=_auth("uid-grace"),
    )
    assert res.status_code == 200
    assert res.json()["user"]["displayName"] == "Grace H."


async def test_patch_me_ignores_client_email_verified(client: AsyncClient):
    await _register(client, "uid-grace", "grace@example.com", displayName="Grace")
    res = await client.patch(
        "/api/v1/users/me",
        json={"emailVerified": False},
        headers=_auth("uid-grace"),
    )
    assert res.status_code == 200
    user = res.json()["user"]
    # Partial update keeps the display name
    assert user["displayName"] == "Grace"
    assert user["emailVerified"] is True


async def test_patch_me_syncs_email_verified_from_token(client: AsyncClient, db: AsyncSession):
    db.add(User(firebase_uid="uid-heidi", email="heidi@example.com", email_verified=False))
    await db.commit()

    res = await client.patch("/api/v1/users/me", json={}, headers=_auth("uid-heidi"))
    assert res.status_code == 200
    assert res.json()["user"]["emailVerified"] is True


async def test_create_user_strips_uid(client: AsyncClient):
    res = await client.post(
        "/api/v1/users",
        json={"firebaseUid": "  uid-ivan ", "email": "ivan@example.com"},
        headers=_auth("uid-ivan"),
    )
    assert res.status_code == 201
    assert res.json()["user"]["firebaseUid"] == "uid-ivan"


async def test_create_user_blank_uid(client: AsyncClient):
    res = await client.post(
        "/api/v1/users", json={"firebaseUid": "   ", "email": "x@example.com"}, headers=_auth("uid-x")
    )
    assert res.status_code == 400


async def test_inactive_user_is_hidden(client: AsyncClient, db: AsyncSession):
    db.add(User(firebase_uid="uid-judy", email="judy@example.com", is_active=False))
    await db.commit()

    res = await client.get("/api/v1/users/uid-judy", headers=_auth("uid-judy"))
    assert res.status_code == 404
    assert res.json() == {"error": "User not found"}

    # The subject id stays taken
    again = await _register(client, "uid-judy", "judy@example.com")
    assert again.status_code == 409


async def test_create_user_service_keeps_body_flag_without_token(db: AsyncSession):
    user = await create_user(
        db, UserCreate(firebase_uid="uid-kim", email="kim@example.com", email_verified=True)
    )
    assert user.email_verified is True


async def test_get_me_without_profile(client: AsyncClient):
    res = await client.get("/api/v1/users/me", headers=_auth("uid-unregistered"))
    assert res.status_code == 404
