"""Wallet Signatures — verifies EIP-191 recovery against a locally generated key."""

from eth_account import Account
from eth_account.messages import encode_defunct

from dynamicvault.core.wallet_signature import (
    build_sign_in_message, message_contains_nonce, recover_signer,
    verify_signature,
)


def _sign(message: str, account) -> str:
    signed = Account.sign_message(encode_defunct(text=message), private_key=account.key)
    return "0x" + bytes(signed.signature).hex()


def test_recover_signer_returns_signing_address():
    account = Account.create()
    assert recover_signer("hello", _sign("hello", account)) == account.address


def test_verify_signature_is_case_insensitive():
    account = Account.create()
    signature = _sign("hello", account)
    assert verify_signature("hello", signature, account.address.lower())
    assert verify_signature("hello", signature, account.address)


def test_verify_signature_rejects_other_wallet():
    signer, other = Account.create(), Account.create()
    assert not verify_signature("hello", _sign("hello", signer), other.address)


def test_verify_signature_rejects_tampered_message():
    account = Account.create()
    assert not verify_signature("hello!", _sign("hello", account), account.address)


def test_malformed_signature_is_false_not_error():
    account = Account.create()
    assert not verify_signature("hello", "0xdeadbeef", account.address)


def test_sign_in_message_embeds_lowercase_wallet_and_nonce():
    message = build_sign_in_message("0xABCDEF" + "0" * 34, "n0nce")
    assert "0xabcdef" in message
    assert message_contains_nonce(message, "n0nce")


def test_message_contains_nonce_requires_a_nonce():
    assert not message_contains_nonce("anything", None)
    assert not message_contains_nonce("anything", "")
    assert not message_contains_nonce("nonce: abc", "xyz")
