"""Tokens — nonces, refresh tokens, API keys, and JWT access tokens.

Invariants:
    - Secrets are generated with `secrets` (CSPRNG), hex-encoded
    - Only sha256 digests of refresh tokens and API keys are ever persisted
    - decode_access_token returns None for any invalid/expired token (never raises)
    - Access token claims: walletAddress, roles, sessionId, iat, exp

Design Decisions:
    - PyJWT HS256: symmetric secret from settings, algorithm pinned on decode
      (prevents alg=none / algorithm confusion)
    - camelCase claim names kept so existing wallet clients can read them
"""

import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt

logger = logging.getLogger(__name__)

NONCE_BYTES = 32
REFRESH_TOKEN_BYTES = 40
API_KEY_BYTES = 32


@dataclass(frozen=True)
class AccessTokenClaims:
    """Decoded access token payload."""
    wallet_address: str
    roles: list[str]
    session_id: str


def generate_nonce() -> str:
    return secrets.token_hex(NONCE_BYTES)


def generate_refresh_token() -> str:
    return secrets.token_hex(REFRESH_TOKEN_BYTES)


def generate_api_key() -> str:
    return secrets.token_hex(API_KEY_BYTES)


def hash_secret(value: str) -> str:
    """sha256 hex digest — storage form of refresh tokens and API keys."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def issue_access_token(
    claims: AccessTokenClaims,
    secret: str,
    expires_in: timedelta,
    algorithm: str = "HS256",
    now: datetime | None = None,
) -> str:
    """Sign a short-lived access token."""
    issued_at = now or datetime.now(timezone.utc)
    payload = {
        "walletAddress": claims.wallet_address,
        "roles": list(claims.roles),
        "sessionId": claims.session_id,
        "iat": issued_at,
        "exp": issued_at + expires_in,
    }
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_access_token(
    token: str, secret: str, algorithm: str = "HS256",
) -> AccessTokenClaims | None:
    """Verify signature and expiry; None if the token is unusable."""
    try:
        payload = jwt.decode(
            token, secret, algorithms=[algorithm],
            options={"require": ["exp", "iat"]},
        )
    except jwt.ExpiredSignatureError:
        logger.info("Access token expired")
        return None
    except jwt.InvalidTokenError as e:
        logger.warning(f"Invalid access token: {e}")
        return None

    wallet_address = payload.get("walletAddress")
    session_id = payload.get("sessionId")
    roles = payload.get("roles")
    if not isinstance(wallet_address, str) or not isinstance(session_id, str):
        logger.warning("Access token missing walletAddress/sessionId claims")
        return None
    if not isinstance(roles, list):
        roles = []
    return AccessTokenClaims(
        wallet_address=wallet_address,
        roles=[str(r) for r in roles],
        session_id=session_id,
    )
