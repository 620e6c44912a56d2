"""Asset Routes — catalogue listing, creation, detail, metadata, deletion.

Invariants:
    - Absent filters are not applied (unlisted assets appear by default)
    - Fetching an asset counts a view
    - Metadata edits: owner, admin, or oracle only
    - Deleting an asset removes its price history and predictions but keeps
      the ledger rows, detached
"""

from sqlalchemy import func, select

from dynamicvault.models.oracle_prediction import OraclePrediction
from dynamicvault.models.price_history import PriceHistory
from dynamicvault.models.transaction import Transaction

OWNER = "0x" + "0a" * 20


# ─── Create ──────────────────────────────────────────────────────

async def test_create_asset(client, admin, asset_body):
    res = await client.post(
        "/api/assets", json=asset_body(7, OWNER), headers=admin.headers,
    )
    assert res.status_code == 201
    assert res.json()["asset"]["tokenId"] == 7

    detail = (await client.get("/api/assets/7")).json()["asset"]
    assert detail["ownership"]["currentOwner"] == OWNER
    assert detail["currentPrice"]["valueUsd"] == 6000.0
    assert detail["marketStatus"]["isListed"] is False


async def test_create_duplicate_token_is_conflict(client, admin, asset_body):
    await client.post("/api/assets", json=asset_body(7, OWNER), headers=admin.headers)
    res = await client.post(
        "/api/assets", json=asset_body(7, OWNER), headers=admin.headers,
    )
    assert res.status_code == 409


async def test_create_requires_admin_or_oracle(client, member, asset_body):
    res = await client.post(
        "/api/assets", json=asset_body(7, OWNER), headers=member.headers,
    )
    assert res.status_code == 403


async def test_create_validates_body(client, oracle, asset_body):
    res = await client.post(
        "/api/assets", json=asset_body(7, "bob"), headers=oracle.headers,
    )
    assert res.status_code == 400
    fields = [d["field"] for d in res.json()["error"]["details"]]
    assert any("currentOwner" in f for f in fields)


# ─── List & stats ────────────────────────────────────────────────

async def test_list_without_filters_returns_everything(client, seed_asset):
    await seed_asset(1, OWNER, is_listed=True, listing_price=3.0)
    await seed_asset(2, OWNER)

    res = await client.get("/api/assets")
    body = res.json()
    assert body["pagination"] == {"total": 2, "page": 1, "totalPages": 1}
    assert {a["tokenId"] for a in body["assets"]} == {1, 2}


async def test_list_filters(client, seed_asset):
    await seed_asset(1, OWNER, is_listed=True, price_value=1.0)
    await seed_asset(2, OWNER, price_value=5.0, asset_type="real-estate")
    await seed_asset(3, "0x" + "0b" * 20, price_value=9.0)

    listed = (await client.get("/api/assets", params={"isListed": "true"})).json()
    assert [a["tokenId"] for a in listed["assets"]] == [1]

    priced = (await client.get(
        "/api/assets", params={"priceMin": 2, "priceMax": 8},
    )).json()
    assert [a["tokenId"] for a in priced["assets"]] == [2]

    typed = (await client.get("/api/assets", params={"assetType": "real-estate"})).json()
    assert [a["tokenId"] for a in typed["assets"]] == [2]

    owned = (await client.get("/api/assets", params={"currentOwner": "0x" + "0A" * 20})).json()
    assert {a["tokenId"] for a in owned["assets"]} == {1, 2}


async def test_list_sort_and_paginate(client, seed_asset):
    for token_id, price in [(1, 3.0), (2, 1.0), (3, 2.0)]:
        await seed_asset(token_id, OWNER, price_value=price)

    res = await client.get("/api/assets", params={
        "sortBy": "price", "sortDirection": "asc", "limit": 2, "page": 1,
    })
    body = res.json()
    assert [a["tokenId"] for a in body["assets"]] == [2, 3]
    assert body["pagination"]["totalPages"] == 2

    page_two = (await client.get("/api/assets", params={
        "sortBy": "price", "sortDirection": "asc", "limit": 2, "page": 2,
    })).json()
    assert [a["tokenId"] for a in page_two["assets"]] == [1]


async def test_list_rejects_unknown_sort_and_large_limit(client):
    assert (await client.get("/api/assets", params={"sortBy": "owner"})).status_code == 400
    assert (await client.get("/api/assets", params={"limit": 500})).status_code == 400


async def test_stats(client, seed_asset):
    await seed_asset(1, OWNER, is_listed=True)
    await seed_asset(2, OWNER, is_verified=True, asset_type="wine")
    await seed_asset(3, OWNER)

    stats = (await client.get("/api/assets/stats")).json()
    assert stats == {
        "total": 3, "byType": {"art": 2, "wine": 1}, "listed": 1, "verified": 1,
    }


# ─── Detail ──────────────────────────────────────────────────────

async def test_get_counts_views(client, seed_asset):
    await seed_asset(1, OWNER)
    await client.get("/api/assets/1")
    detail = (await client.get("/api/assets/1")).json()["asset"]
    assert detail["stats"]["viewCount"] == 2


async def test_get_unknown_asset(client):
    res = await client.get("/api/assets/999")
    assert res.status_code == 404
    assert res.json()["error"]["code"] == "RESOURCE_NOT_FOUND"


async def test_get_rejects_non_positive_token(client):
    assert (await client.get("/api/assets/0")).status_code == 400


# ─── Metadata ────────────────────────────────────────────────────

async def test_owner_updates_metadata(client, login, seed_asset):
    owner = await login()
    await seed_asset(1, owner.wallet)

    res = await client.patch("/api/assets/1", json={
        "creator": "J. Doe",
        "materials": ["oil", "canvas"],
        "provenance": [{"owner": "Gallery", "period": "1950-1990"}],
    }, headers=owner.headers)
    assert res.status_code == 200
    metadata = res.json()["asset"]["metadata"]
    assert metadata["creator"] == "J. Doe"
    assert metadata["provenance"][0]["documentation"] == ""


async def test_stranger_cannot_update_metadata(client, member, seed_asset):
    await seed_asset(1, OWNER)
    res = await client.patch(
        "/api/assets/1", json={"creator": "me"}, headers=member.headers,
    )
    assert res.status_code == 403


async def test_oracle_may_update_metadata(client, oracle, seed_asset):
    await seed_asset(1, OWNER)
    res = await client.patch(
        "/api/assets/1", json={"condition": "mint"}, headers=oracle.headers,
    )
    assert res.status_code == 200


# ─── Delete ──────────────────────────────────────────────────────

async def test_delete_removes_dependents_and_detaches_ledger(
    client, admin, oracle, seed_asset, test_db,
):
    await seed_asset(1, OWNER)
    await client.put(
        "/api/assets/1/price", json={"price": 3.0, "priceUsd": 9000.0},
        headers=admin.headers,
    )
    await client.post("/api/oracle/predictions", json={
        "tokenId": 1, "predictedPrice": 3.5, "confidenceScore": 80,
        "dataSourcesUsed": ["feed"], "modelVersion": "v1", "featureImportance": [],
    }, headers=oracle.headers)
    await client.post("/api/transactions/mint", json={
        "tokenId": 1, "minter": OWNER,
    }, headers=admin.headers)

    res = await client.delete("/api/assets/1", headers=admin.headers)
    assert res.status_code == 200

    assert await test_db.scalar(select(func.count()).select_from(PriceHistory)) == 0
    assert await test_db.scalar(select(func.count()).select_from(OraclePrediction)) == 0
    tx = await test_db.scalar(select(Transaction))
    assert tx.asset_id is None
    assert tx.token_id == 1
    assert (await client.get("/api/assets/1")).status_code == 404


async def test_delete_is_admin_only(client, oracle, seed_asset):
    await seed_asset(1, OWNER)
    assert (await client.delete("/api/assets/1", headers=oracle.headers)).status_code == 403
