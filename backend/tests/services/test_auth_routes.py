"""Auth Routes — wallet challenge/response sign-in, refresh, logout, sessions.

Invariants:
    - A nonce is single use: replaying a verified signature fails, also when
      the two verifies race
    - Expired sessions refuse both refresh and bearer calls
    - Expired or foreign nonces are refused with distinct error codes
    - Logout revokes the access token, not just the refresh token
    - isCurrentSession marks exactly the session behind the caller's token
"""

import asyncio
from datetime import timedelta

import pytest
from eth_account import Account
from sqlalchemy import func, select, update

from dynamicvault.config import get_settings
from dynamicvault.core.clock import utcnow
from dynamicvault.core.errors import AuthenticationError
from dynamicvault.models.auth_session import AuthSession
from dynamicvault.models.user import User
from dynamicvault.services.auth_service import AuthService


def _code(res) -> str:
    return res.json()["error"]["code"]


async def _challenge(client, account) -> dict:
    res = await client.get("/api/auth/nonce", params={"walletAddress": account.address})
    assert res.status_code == 200
    return res.json()


# ─── Nonce ───────────────────────────────────────────────────────

async def test_nonce_creates_user_with_default_role(client, test_db):
    account = Account.create()
    body = await _challenge(client, account)

    assert body["walletAddress"] == account.address.lower()
    assert body["nonce"] in body["message"]
    user = await test_db.scalar(
        select(User).where(User.wallet_address == account.address.lower()),
    )
    assert user.roles == ["user"]
    assert user.nonce == body["nonce"]


async def test_nonce_rotates_on_each_request(client):
    account = Account.create()
    first = await _challenge(client, account)
    second = await _challenge(client, account)
    assert first["nonce"] != second["nonce"]


async def test_nonce_rejects_malformed_wallet(client):
    res = await client.get("/api/auth/nonce", params={"walletAddress": "0x1234"})
    assert res.status_code == 400
    assert _code(res) == "VALIDATION_ERROR"


# ─── Verify ──────────────────────────────────────────────────────

async def test_verify_issues_token_pair(client, signer):
    account = Account.create()
    challenge = await _challenge(client, account)
    res = await client.post("/api/auth/verify", json={
        "walletAddress": account.address,
        "signature": signer(challenge["message"], account),
        "message": challenge["message"],
    })
    assert res.status_code == 200
    body = res.json()
    assert body["accessToken"]
    assert len(body["refreshToken"]) == 80
    assert body["expiresIn"] == "15m"


async def test_verify_replay_is_rejected(client, signer):
    account = Account.create()
    challenge = await _challenge(client, account)
    payload = {
        "walletAddress": account.address,
        "signature": signer(challenge["message"], account),
        "message": challenge["message"],
    }
    assert (await client.post("/api/auth/verify", json=payload)).status_code == 200

    replay = await client.post("/api/auth/verify", json=payload)
    assert replay.status_code == 401
    assert _code(replay) == "NONCE_MISMATCH"


async def test_verify_without_challenge(client, signer):
    account = Account.create()
    res = await client.post("/api/auth/verify", json={
        "walletAddress": account.address,
        "signature": signer("hello", account),
        "message": "hello",
    })
    assert res.status_code == 401
    assert _code(res) == "NONCE_NOT_FOUND"


async def test_verify_expired_nonce(client, signer, test_session_factory):
    account = Account.create()
    challenge = await _challenge(client, account)
    async with test_session_factory() as session:
        user = await session.scalar(
            select(User).where(User.wallet_address == challenge["walletAddress"]),
        )
        user.nonce_expiry = utcnow() - timedelta(minutes=1)
        await session.commit()

    res = await client.post("/api/auth/verify", json={
        "walletAddress": account.address,
        "signature": signer(challenge["message"], account),
        "message": challenge["message"],
    })
    assert res.status_code == 401
    assert _code(res) == "NONCE_EXPIRED"


async def test_verify_signature_from_other_wallet(client, signer):
    account, impostor = Account.create(), Account.create()
    challenge = await _challenge(client, account)
    res = await client.post("/api/auth/verify", json={
        "walletAddress": account.address,
        "signature": signer(challenge["message"], impostor),
        "message": challenge["message"],
    })
    assert res.status_code == 401
    assert _code(res) == "INVALID_SIGNATURE"


async def test_verify_records_session_metadata(client, signer, test_db):
    account = Account.create()
    challenge = await _challenge(client, account)
    await client.post(
        "/api/auth/verify",
        json={
            "walletAddress": account.address,
            "signature": signer(challenge["message"], account),
            "message": challenge["message"],
        },
        headers={"User-Agent": "wallet-test/1.0", "X-Forwarded-For": "203.0.113.9, 10.0.0.1"},
    )
    session = await test_db.scalar(
        select(AuthSession).where(AuthSession.wallet_address == account.address.lower()),
    )
    assert session.user_agent == "wallet-test/1.0"
    assert session.ip_address == "203.0.113.9"
    assert session.is_valid


# ─── Bearer auth ─────────────────────────────────────────────────

async def test_missing_token(client):
    res = await client.get("/api/auth/sessions")
    assert res.status_code == 401
    assert _code(res) == "MISSING_TOKEN"


async def test_garbage_token(client):
    res = await client.get(
        "/api/auth/sessions", headers={"Authorization": "Bearer nope"},
    )
    assert res.status_code == 401
    assert _code(res) == "INVALID_TOKEN"


# ─── Refresh ─────────────────────────────────────────────────────

async def test_refresh_issues_new_access_token(client, member):
    res = await client.post(
        "/api/auth/refresh", json={"refreshToken": member.refresh_token},
    )
    assert res.status_code == 200
    token = res.json()["accessToken"]
    profile = await client.get(
        "/api/users/profile", headers={"Authorization": f"Bearer {token}"},
    )
    assert profile.status_code == 200


async def test_refresh_with_unknown_token(client):
    res = await client.post("/api/auth/refresh", json={"refreshToken": "ab" * 40})
    assert res.status_code == 401
    assert _code(res) == "INVALID_REFRESH_TOKEN"


# ─── Logout & sessions ───────────────────────────────────────────

async def test_logout_revokes_access_token(client, member):
    res = await client.post("/api/auth/logout", headers=member.headers)
    assert res.status_code == 200

    after = await client.get("/api/auth/sessions", headers=member.headers)
    assert after.status_code == 401
    assert _code(after) == "SESSION_INVALID"

    refresh = await client.post(
        "/api/auth/refresh", json={"refreshToken": member.refresh_token},
    )
    assert refresh.status_code == 401


async def test_logout_all_ends_every_session(client, login):
    first = await login()
    second = await login(account=first.account)

    res = await client.delete("/api/auth/logout", headers=first.headers)
    assert res.status_code == 200
    assert res.json()["sessionsEnded"] == 2
    assert (await client.get("/api/auth/sessions", headers=second.headers)).status_code == 401


async def test_sessions_mark_current(client, login):
    first = await login()
    await login(account=first.account)

    res = await client.get("/api/auth/sessions", headers=first.headers)
    sessions = res.json()["sessions"]
    assert len(sessions) == 2
    assert sum(s["isCurrentSession"] for s in sessions) == 1


async def test_cleanup_requires_admin(client, member):
    res = await client.post("/api/auth/sessions/cleanup", headers=member.headers)
    assert res.status_code == 403


async def test_cleanup_removes_invalidated_sessions(client, login, admin):
    gone = await login()
    await client.post("/api/auth/logout", headers=gone.headers)

    res = await client.post("/api/auth/sessions/cleanup", headers=admin.headers)
    assert res.status_code == 200
    assert res.json()["deleted"] == 1


# ─── Suspension ──────────────────────────────────────────────────

async def test_suspended_user_is_refused(client, admin, member):
    res = await client.put(
        f"/api/users/{member.wallet}/status",
        json={"status": "suspended"},
        headers=admin.headers,
    )
    assert res.status_code == 200

    denied = await client.get("/api/users/profile", headers=member.headers)
    assert denied.status_code == 403


async def test_suspended_user_cannot_refresh(client, admin, member):
    await client.put(
        f"/api/users/{member.wallet}/status",
        json={"status": "suspended"},
        headers=admin.headers,
    )
    res = await client.post(
        "/api/auth/refresh", json={"refreshToken": member.refresh_token},
    )
    assert res.status_code == 403


# ─── Session expiry ──────────────────────────────────────────────

async def _expire_sessions(session_factory, wallet: str) -> None:
    async with session_factory() as session:
        await session.execute(
            update(AuthSession)
            .where(AuthSession.wallet_address == wallet)
            .values(expires_at=utcnow() - timedelta(minutes=1)),
        )
        await session.commit()


async def test_refresh_with_expired_session(client, member, test_session_factory):
    await _expire_sessions(test_session_factory, member.wallet)
    res = await client.post(
        "/api/auth/refresh", json={"refreshToken": member.refresh_token},
    )
    assert res.status_code == 401
    assert _code(res) == "INVALID_REFRESH_TOKEN"


async def test_bearer_with_expired_session(client, member, test_session_factory):
    await _expire_sessions(test_session_factory, member.wallet)
    res = await client.get("/api/auth/sessions", headers=member.headers)
    assert res.status_code == 401
    assert _code(res) == "SESSION_INVALID"


# ─── Concurrent verify ───────────────────────────────────────────

async def test_racing_verifies_succeed_once(client, signer):
    account = Account.create()
    challenge = await _challenge(client, account)
    payload = {
        "walletAddress": account.address,
        "signature": signer(challenge["message"], account),
        "message": challenge["message"],
    }

    results = await asyncio.gather(
        client.post("/api/auth/verify", json=payload),
        client.post("/api/auth/verify", json=payload),
    )
    assert sorted(r.status_code for r in results) == [200, 401]


async def test_verify_with_stale_nonce_read(client, signer, test_session_factory):
    account = Account.create()
    challenge = await _challenge(client, account)
    payload = {
        "walletAddress": account.address,
        "signature": signer(challenge["message"], account),
        "message": challenge["message"],
    }

    async with test_session_factory() as late:
        # Loads the user while the nonce is still the issued one.
        await late.scalar(
            select(User).where(User.wallet_address == challenge["walletAddress"]),
        )
        assert (await client.post("/api/auth/verify", json=payload)).status_code == 200

        with pytest.raises(AuthenticationError) as exc:
            await AuthService(late, get_settings()).verify_and_login(
                account.address, payload["signature"], payload["message"],
            )
    assert exc.value.code == "NONCE_MISMATCH"

    async with test_session_factory() as check:
        sessions = await check.scalar(
            select(func.count()).select_from(AuthSession)
            .where(AuthSession.wallet_address == challenge["walletAddress"]),
        )
    assert sessions == 1
