"""Domain Types — wallet address format and enum values.

Tests:
    - WALLET_ADDRESS_PATTERN accepts 0x + 40 hex in either case, nothing else
    - Enums serialize to the strings stored in the database
    - The module exposes only the pattern and enums (no unused aliases)
"""

import re
from enum import Enum

import pytest

import dynamicvault.core.domain_types as domain_types
from dynamicvault.core.domain_types import (
    WALLET_ADDRESS_PATTERN, PredictionStatus, PriceSourceType, Role,
    TransactionType,
)


@pytest.mark.parametrize("address", ["0x" + "ab" * 20, "0x" + "AB" * 20, "0x" + "0" * 40])
def test_wallet_pattern_accepts(address):
    assert re.match(WALLET_ADDRESS_PATTERN, address)


@pytest.mark.parametrize("address", ["", "0x1234", "ab" * 21, "0x" + "g" * 40, "0x" + "a" * 41])
def test_wallet_pattern_rejects(address):
    assert not re.match(WALLET_ADDRESS_PATTERN, address)


def test_enum_values():
    assert Role.ORACLE.value == "oracle"
    assert PriceSourceType.AI_ORACLE.value == "ai-oracle"
    assert TransactionType.OFFER_ACCEPT.value == "offer_accept"
    assert PredictionStatus("pending") is PredictionStatus.PENDING


def test_public_names_are_pattern_and_enums():
    public = {
        name: value for name, value in vars(domain_types).items()
        if not name.startswith("_") and name != "Enum"
    }
    extras = [
        name for name, value in public.items()
        if name != "WALLET_ADDRESS_PATTERN"
        and not (isinstance(value, type) and issubclass(value, Enum))
    ]
    assert extras == []
