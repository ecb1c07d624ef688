from fastapi import status

from src.vaxtrack.services.users.service import user_service


async def test_sync_creates_profile_from_token_claims(client, auth_headers):
    resp = await client.post("/api/v1/auth/sync", json={}, headers=auth_headers("sub-1"))
    assert resp.status_code == status.HTTP_200_OK
    body = resp.json()
    assert body["email"] == "sub-1@example.com"
    assert body["first_name"] == "New"
    assert body["last_name"] == "User"
    assert body["full_name"] == "New User"
    assert body["role"] == "parent"
    assert body["preferences"] == {"email": True, "sms": False, "push": True}


async def test_sync_is_idempotent_and_updates_fields(client, auth_headers, make_user):
    first = await make_user("sub-1")
    resp = await client.post(
        "/api/v1/auth/sync",
        json={"email": "New.Address@Example.com", "first_name": "Grace"},
        headers=auth_headers("sub-1"),
    )
    assert resp.status_code == status.HTTP_200_OK
    second = resp.json()
    assert second["id"] == first["id"]
    assert second["email"] == "new.address@example.com"
    assert second["first_name"] == "Grace"
    assert second["last_name"] == "Lovelace"


async def test_sync_rejects_email_owned_by_another_subject(client, auth_headers, make_user):
    await make_user("sub-1", email="shared@example.com")
    resp = await client.post(
        "/api/v1/auth/sync",
        json={"email": "shared@example.com"},
        headers=auth_headers("sub-2"),
    )
    assert resp.status_code == status.HTTP_400_BAD_REQUEST


async def test_missing_or_invalid_token_is_unauthorized(client):
    assert (await client.get("/api/v1/auth/me")).status_code == status.HTTP_401_UNAUTHORIZED
    resp = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer garbage"})
    assert resp.status_code == status.HTTP_401_UNAUTHORIZED
    assert resp.json()["detail"] == "Invalid or expired token"


async def test_valid_token_without_profile_is_unauthorized(client, auth_headers):
    resp = await client.get("/api/v1/auth/me", headers=auth_headers("never-synced"))
    assert resp.status_code == status.HTTP_401_UNAUTHORIZED


async def test_me_and_profile_update(client, auth_headers, make_user):
    user = await make_user("sub-1")

    me = await client.get("/api/v1/auth/me", headers=auth_headers("sub-1"))
    assert me.status_code == status.HTTP_200_OK
    assert me.json()["id"] == user["id"]

    resp = await client.put(
        "/api/v1/auth/profile",
        json={
            "phone": "+15550100",
            "address": {"city": "Nairobi", "country": "Kenya"},
            "preferences": {"email": False, "sms": True, "push": True},
        },
        headers=auth_headers("sub-1"),
    )
    assert resp.status_code == status.HTTP_200_OK
    body = resp.json()
    assert body["phone"] == "+15550100"
    assert body["address"]["city"] == "Nairobi"
    assert body["preferences"]["sms"] is True
    assert body["preferences"]["email"] is False
    # Untouched fields are preserved.
    assert body["first_name"] == "Ada"


async def test_profile_update_validates_names(client, auth_headers, make_user):
    await make_user("sub-1")
    resp = await client.put("/api/v1/auth/profile", json={"first_name": ""}, headers=auth_headers("sub-1"))
    assert resp.status_code == 422


async def test_deleted_account_is_deactivated_not_removed(client, auth_headers, make_user):
    user = await make_user("sub-1")

    resp = await client.delete("/api/v1/auth/account", headers=auth_headers("sub-1"))
    assert resp.status_code == status.HTTP_200_OK

    stored = user_service.get_user_by_subject("sub-1")
    assert stored is not None
    assert str(stored.id) == user["id"]
    assert stored.is_active is False

    me = await client.get("/api/v1/auth/me", headers=auth_headers("sub-1"))
    assert me.status_code == status.HTTP_401_UNAUTHORIZED
