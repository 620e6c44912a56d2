"""Transaction Routes — ledger queries, stats, and recording of mints, sales, offers.

Invariants:
    - A sale transfers ownership and withdraws any listing
    - A reused transaction hash is a 409
    - Blockchain data kept only when hash and block number are both given
"""

from uuid import uuid4

SELLER = "0x" + "5e" * 20
BUYER = "0x" + "b7" * 20
TX_HASH = "0x" + "ab" * 32


async def test_record_sale_transfers_ownership(client, admin, seed_asset):
    await seed_asset(1, SELLER, is_listed=True, listing_price=3.0)

    res = await client.post("/api/transactions/sale", json={
        "tokenId": 1, "price": 3.0, "priceUsd": 9000.0,
        "seller": SELLER, "buyer": BUYER, "platformFee": 0.075,
        "transactionHash": TX_HASH, "blockNumber": 1200,
    }, headers=admin.headers)
    assert res.status_code == 201
    tx = res.json()["transaction"]
    assert tx["type"] == "sell"
    assert tx["status"] == "completed"
    assert tx["blockchain"]["transactionHash"] == TX_HASH
    assert tx["asset"]["name"] == "Asset 1"

    asset = (await client.get("/api/assets/1")).json()["asset"]
    assert asset["ownership"]["currentOwner"] == BUYER
    assert asset["marketStatus"]["isListed"] is False


async def test_duplicate_hash_is_conflict(client, admin, seed_asset):
    await seed_asset(1, SELLER)
    body = {
        "tokenId": 1, "minter": SELLER,
        "transactionHash": TX_HASH, "blockNumber": 5,
    }
    assert (await client.post("/api/transactions/mint", json=body, headers=admin.headers)).status_code == 201
    again = await client.post("/api/transactions/mint", json=body, headers=admin.headers)
    assert again.status_code == 409


async def test_hash_without_block_is_not_stored(client, oracle, seed_asset):
    await seed_asset(1, SELLER)
    res = await client.post("/api/transactions/mint", json={
        "tokenId": 1, "minter": SELLER, "transactionHash": TX_HASH,
    }, headers=oracle.headers)
    tx = res.json()["transaction"]
    assert tx["blockchain"] is None
    assert tx["buyer"] == SELLER
    assert tx["price"] is None


async def test_offer_is_pending_and_counted(client, admin, seed_asset):
    await seed_asset(1, SELLER)
    res = await client.post("/api/transactions/offer", json={
        "tokenId": 1, "price": 1.0, "priceUsd": 3000.0,
        "seller": SELLER, "buyer": BUYER,
    }, headers=admin.headers)
    assert res.json()["transaction"]["status"] == "pending"
    asset = (await client.get("/api/assets/1")).json()["asset"]
    assert asset["stats"]["offerCount"] == 1


async def test_recording_requires_role(client, member, seed_asset):
    await seed_asset(1, SELLER)
    res = await client.post("/api/transactions/mint", json={
        "tokenId": 1, "minter": SELLER,
    }, headers=member.headers)
    assert res.status_code == 403


async def test_recording_unknown_asset(client, admin):
    res = await client.post("/api/transactions/mint", json={
        "tokenId": 42, "minter": SELLER,
    }, headers=admin.headers)
    assert res.status_code == 404


async def test_list_filters_are_optional(client, admin, seed_asset):
    await seed_asset(1, SELLER)
    await seed_asset(2, SELLER)
    await client.post("/api/transactions/mint", json={"tokenId": 1, "minter": SELLER}, headers=admin.headers)
    await client.post("/api/transactions/offer", json={
        "tokenId": 2, "price": 1.0, "priceUsd": 3000.0, "seller": SELLER, "buyer": BUYER,
    }, headers=admin.headers)

    everything = (await client.get("/api/transactions")).json()
    assert everything["pagination"]["total"] == 2

    offers = (await client.get("/api/transactions", params={"type": "offer"})).json()
    assert [t["tokenId"] for t in offers["transactions"]] == [2]

    by_token = (await client.get("/api/transactions", params={"tokenId": 1})).json()
    assert [t["type"] for t in by_token["transactions"]] == ["mint"]

    pending = (await client.get("/api/transactions", params={"status": "pending"})).json()
    assert pending["pagination"]["total"] == 1

    by_buyer = (await client.get(
        "/api/transactions", params={"buyer": BUYER.upper().replace("0X", "0x")},
    )).json()
    assert by_buyer["pagination"]["total"] == 1


async def test_list_rejects_bad_filters(client):
    assert (await client.get("/api/transactions", params={"type": "gift"})).status_code == 400
    assert (await client.get("/api/transactions", params={"startDate": "x"})).status_code == 400


async def test_stats(client, admin, seed_asset):
    await seed_asset(1, SELLER)
    await seed_asset(2, SELLER)
    for token_id, price in [(1, 2.0), (2, 3.0)]:
        await client.post("/api/transactions/sale", json={
            "tokenId": token_id, "price": price, "priceUsd": price * 3000,
            "seller": SELLER, "buyer": BUYER,
        }, headers=admin.headers)
    await client.post("/api/transactions/offer", json={
        "tokenId": 1, "price": 1.0, "priceUsd": 3000.0, "seller": BUYER, "buyer": SELLER,
    }, headers=admin.headers)

    stats = (await client.get("/api/transactions/stats", params={"period": "week"})).json()
    assert stats["totalCount"] == 2
    assert stats["totalVolume"] == 5.0
    assert stats["salesByType"] == {"sell": 2}
    assert len(stats["recentTransactions"]) == 2


async def test_get_update_and_delete(client, admin, oracle, seed_asset):
    await seed_asset(1, SELLER)
    created = (await client.post("/api/transactions/offer", json={
        "tokenId": 1, "price": 1.0, "priceUsd": 3000.0, "seller": SELLER, "buyer": BUYER,
    }, headers=admin.headers)).json()["transaction"]

    fetched = await client.get(f"/api/transactions/{created['id']}")
    assert fetched.json()["transaction"]["id"] == created["id"]

    updated = await client.patch(
        f"/api/transactions/{created['id']}/status",
        json={"status": "completed", "transactionHash": TX_HASH, "blockNumber": 9},
        headers=oracle.headers,
    )
    assert updated.status_code == 200
    assert updated.json()["transaction"]["status"] == "completed"
    assert updated.json()["transaction"]["blockchain"]["blockNumber"] == 9

    assert (await client.delete(
        f"/api/transactions/{created['id']}", headers=oracle.headers,
    )).status_code == 403
    assert (await client.delete(
        f"/api/transactions/{created['id']}", headers=admin.headers,
    )).status_code == 200
    assert (await client.get(f"/api/transactions/{created['id']}")).status_code == 404


async def test_unknown_and_malformed_ids(client):
    assert (await client.get(f"/api/transactions/{uuid4()}")).status_code == 404
    assert (await client.get("/api/transactions/not-a-uuid")).status_code == 400
