"""Wallet Signatures — EIP-191 personal_sign recovery and challenge checks.

Invariants:
    - Address comparison is case-insensitive (checksum casing never matters)
    - Malformed signatures verify as False, never raise
    - A challenge message is acceptable only if it embeds the issued nonce

Design Decisions:
    - eth_account.recover_message over hand-rolled secp256k1: same call the wallet
      libraries use, handles v=27/28 and 0/1 encodings
"""

import logging

from eth_account import Account
from eth_account.messages import encode_defunct

logger = logging.getLogger(__name__)


def recover_signer(message: str, signature: str) -> str:
    """Recover the checksummed address that produced `signature` over `message`."""
    return Account.recover_message(encode_defunct(text=message), signature=signature)


def verify_signature(message: str, signature: str, wallet_address: str) -> bool:
    """True if `wallet_address` signed `message`."""
    try:
        recovered = recover_signer(message, signature)
    except Exception as e:
        logger.warning(
            f"Signature recovery failed: {e}",
            extra={"wallet_address": wallet_address.lower()},
        )
        return False
    return recovered.lower() == wallet_address.lower()


def build_sign_in_message(wallet_address: str, nonce: str) -> str:
    """Canonical challenge text clients are expected to sign."""
    return (
        "Sign in to DynamicVault\n\n"
        f"Wallet: {wallet_address.lower()}\n"
        f"Nonce: {nonce}"
    )


def message_contains_nonce(message: str, nonce: str | None) -> bool:
    return bool(nonce) and nonce in message
