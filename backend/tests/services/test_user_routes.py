"""User Routes — profile merges, API keys, admin role/status changes, wallet history."""

from dynamicvault.services.user_service import is_api_key_active, merge_profile
from dynamicvault.schemas.user import ProfileUpdate


# ─── Profile ─────────────────────────────────────────────────────

async def test_get_profile(client, member):
    res = await client.get("/api/users/profile", headers=member.headers)
    assert res.status_code == 200
    user = res.json()["user"]
    assert user["walletAddress"] == member.wallet
    assert user["roles"] == ["user"]
    assert user["lastLogin"] is not None
    assert "nonce" not in user


async def test_profile_update_merges_fields(client, member):
    await client.put(
        "/api/users/profile",
        json={"username": "alice", "email": "alice@vaultmail.io"},
        headers=member.headers,
    )
    res = await client.patch(
        "/api/users/profile",
        json={"notificationPreferences": {"priceUpdates": False}},
        headers=member.headers,
    )
    assert res.status_code == 200
    profile = res.json()["user"]["profileInfo"]
    assert profile["username"] == "alice"
    assert profile["email"] == "alice@vaultmail.io"
    assert profile["notificationPreferences"]["priceUpdates"] is False
    assert profile["notificationPreferences"]["transactions"] is True


async def test_profile_update_rejects_bad_email(client, member):
    res = await client.put(
        "/api/users/profile", json={"email": "nope"}, headers=member.headers,
    )
    assert res.status_code == 400


def test_merge_profile_keeps_untouched_fields():
    merged = merge_profile(
        {"username": "bob", "avatarUrl": "https://x.test/a.png"},
        ProfileUpdate.model_validate({"username": "robert"}),
    )
    assert merged["username"] == "robert"
    assert merged["avatarUrl"] == "https://x.test/a.png"
    assert merged["notificationPreferences"]["emailNotifications"] is False


def test_is_api_key_active():
    assert is_api_key_active({"expiresAt": "2999-01-01T00:00:00+00:00"})
    assert not is_api_key_active({"expiresAt": "2000-01-01T00:00:00+00:00"})
    assert is_api_key_active({})


# ─── API keys ────────────────────────────────────────────────────

async def test_api_keys_require_admin_or_oracle(client, member):
    res = await client.post(
        "/api/users/api-keys",
        json={"keyName": "ci-key", "permissions": ["read"]},
        headers=member.headers,
    )
    assert res.status_code == 403


async def test_api_key_lifecycle(client, oracle):
    created = await client.post(
        "/api/users/api-keys",
        json={"keyName": "ci-key", "permissions": ["read"], "expiresInDays": 7},
        headers=oracle.headers,
    )
    assert created.status_code == 201
    key = created.json()["apiKey"]
    assert len(key["key"]) == 64
    assert key["isActive"] is True

    listed = await client.get("/api/users/api-keys", headers=oracle.headers)
    keys = listed.json()["apiKeys"]
    assert [k["name"] for k in keys] == ["ci-key"]
    assert "key" not in keys[0]

    duplicate = await client.post(
        "/api/users/api-keys",
        json={"keyName": "ci-key", "permissions": []},
        headers=oracle.headers,
    )
    assert duplicate.status_code == 409

    revoked = await client.delete("/api/users/api-keys/ci-key", headers=oracle.headers)
    assert revoked.status_code == 200
    missing = await client.delete("/api/users/api-keys/ci-key", headers=oracle.headers)
    assert missing.status_code == 404


# ─── Admin ───────────────────────────────────────────────────────

async def test_admin_sets_roles(client, admin, member):
    res = await client.put(
        f"/api/users/{member.wallet}/roles",
        json={"roles": ["user", "oracle"]},
        headers=admin.headers,
    )
    assert res.status_code == 200
    assert res.json()["user"]["roles"] == ["oracle", "user"]


async def test_roles_endpoint_is_admin_only(client, member):
    res = await client.put(
        f"/api/users/{member.wallet}/roles",
        json={"roles": ["admin"]},
        headers=member.headers,
    )
    assert res.status_code == 403


async def test_roles_for_unknown_wallet(client, admin):
    res = await client.put(
        f"/api/users/0x{'9' * 40}/roles", json={"roles": ["user"]},
        headers=admin.headers,
    )
    assert res.status_code == 404


async def test_status_rejects_unknown_value(client, admin, member):
    res = await client.put(
        f"/api/users/{member.wallet}/status", json={"status": "banned"},
        headers=admin.headers,
    )
    assert res.status_code == 400


# ─── Wallet history ──────────────────────────────────────────────

async def test_wallet_transactions_match_buyer_or_seller(
    client, admin, seed_asset,
):
    alice, bob, carol = "0x" + "a1" * 20, "0x" + "b2" * 20, "0x" + "c3" * 20
    await seed_asset(1, alice)
    await seed_asset(2, carol)
    await client.post("/api/transactions/sale", json={
        "tokenId": 1, "price": 1.0, "priceUsd": 3000.0, "seller": alice, "buyer": bob,
    }, headers=admin.headers)
    await client.post("/api/transactions/sale", json={
        "tokenId": 2, "price": 1.0, "priceUsd": 3000.0, "seller": carol, "buyer": alice,
    }, headers=admin.headers)

    res = await client.get(f"/api/users/{alice}/transactions")
    assert res.status_code == 200
    body = res.json()
    assert body["pagination"]["total"] == 2
    roles = {(t["tokenId"], t["isBuyer"], t["isSeller"]) for t in body["transactions"]}
    assert roles == {(1, False, True), (2, True, False)}
    by_token = {t["tokenId"]: t["counterparty"] for t in body["transactions"]}
    assert by_token == {1: bob, 2: carol}


async def test_wallet_transactions_bad_date(client):
    res = await client.get(
        f"/api/users/0x{'a' * 40}/transactions", params={"startDate": "soon"},
    )
    assert res.status_code == 400
