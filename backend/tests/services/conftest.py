"""Service test fixtures — async DB, FastAPI test client, and signed-in wallets.

Invariants:
    - Every test gets a fresh file-backed SQLite database (tmp_path)
    - get_db dependency overridden to use test DB session
    - db_manager patched so the readiness check sees the test engine
    - Wallets sign in through the real nonce/verify flow (no token forging)

Design Decisions:
    - SQLite file: fast, no external dependency, sufficient for route tests
      (PostgreSQL-specific features not exercised here)
    - File-backed, no StaticPool: each session gets its own connection, so
      concurrent sessions do not roll back one another
    - Roles are written to the user row before verify so the access token
      carries them
"""

from dataclasses import dataclass

import pytest
from eth_account import Account
from eth_account.messages import encode_defunct
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine

import dynamicvault.infrastructure.database as db_module
from dynamicvault.core.clock import utcnow
from dynamicvault.db.session import (
    create_schema, create_session_factory, drop_schema,
)
from dynamicvault.infrastructure.database import DatabaseSessionManager, get_db
from dynamicvault.main import app
from dynamicvault.models.asset import Asset
from dynamicvault.models.user import User


@pytest.fixture
async def test_engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path}/test.db", echo=False,
        connect_args={"timeout": 30},
    )
    await create_schema(engine)
    yield engine
    await drop_schema(engine)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return create_session_factory(test_engine)


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
async def client(test_engine, test_session_factory):
    """FastAPI test client with DB dependency overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager


# ─── Wallets ─────────────────────────────────────────────────────

@dataclass
class SignedIn:
    account: object
    wallet: str
    access_token: str
    refresh_token: str

    @property
    def headers(self) -> dict:
        return {"Authorization": f"Bearer {self.access_token}"}


def sign(message: str, account) -> str:
    signed = Account.sign_message(encode_defunct(text=message), private_key=account.key)
    return "0x" + bytes(signed.signature).hex()


@pytest.fixture
def signer():
    """EIP-191 signer: signer(message, account) -> 0x-prefixed signature."""
    return sign


async def set_roles(session_factory, wallet: str, roles: list[str]) -> None:
    async with session_factory() as session:
        user = await session.scalar(select(User).where(User.wallet_address == wallet))
        user.roles = list(roles)
        await session.commit()


@pytest.fixture
def login(client, test_session_factory):
    """Sign a wallet in via /nonce + /verify. Returns SignedIn."""

    async def _login(roles: list[str] | None = None, account=None) -> SignedIn:
        account = account or Account.create()
        res = await client.get(
            "/api/auth/nonce", params={"walletAddress": account.address},
        )
        assert res.status_code == 200, res.text
        challenge = res.json()
        wallet = challenge["walletAddress"]
        if roles:
            await set_roles(test_session_factory, wallet, roles)
        res = await client.post("/api/auth/verify", json={
            "walletAddress": account.address,
            "signature": sign(challenge["message"], account),
            "message": challenge["message"],
        })
        assert res.status_code == 200, res.text
        tokens = res.json()
        return SignedIn(
            account=account,
            wallet=wallet,
            access_token=tokens["accessToken"],
            refresh_token=tokens["refreshToken"],
        )

    return _login


@pytest.fixture
async def admin(login):
    return await login(["user", "admin"])


@pytest.fixture
async def oracle(login):
    return await login(["user", "oracle"])


@pytest.fixture
async def member(login):
    return await login()


# ─── Assets ──────────────────────────────────────────────────────

def _asset_body(token_id: int, owner: str, **overrides) -> dict:
    body = {
        "tokenId": token_id,
        "contractAddress": "0x" + "12" * 20,
        "name": f"Asset {token_id}",
        "assetType": "art",
        "description": "Oil on canvas",
        "currentPrice": {"value": 2.0, "valueUsd": 6000.0},
        "ownership": {"currentOwner": owner},
    }
    body.update(overrides)
    return body


@pytest.fixture
def asset_body():
    """Builder for POST /api/assets bodies."""
    return _asset_body


@pytest.fixture
def seed_asset(test_session_factory):
    """Insert an asset row directly. Returns the Asset."""

    async def _seed(token_id: int, owner: str, **fields) -> Asset:
        now = utcnow()
        values = dict(
            token_id=token_id,
            contract_address="0x" + "12" * 20,
            name=f"Asset {token_id}",
            asset_type="art",
            description="",
            asset_metadata={},
            media={},
            price_value=2.0,
            price_value_usd=6000.0,
            price_updated_at=now,
            is_listed=False,
            current_owner=owner.lower(),
            owner_since=now,
            is_verified=False,
        )
        values.update(fields)
        asset = Asset(**values)
        async with test_session_factory() as session:
            session.add(asset)
            await session.commit()
        return asset

    return _seed
