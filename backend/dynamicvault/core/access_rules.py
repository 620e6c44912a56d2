"""Access Rules — pure role and ownership checks, plus pagination math.

Invariants:
    - Role checks are "any of": holding one required role is enough
    - An empty requirement always passes
    - Ownership compares wallet addresses case-insensitively
"""

import math
from collections.abc import Iterable

from dynamicvault.core.domain_types import Role

ASSET_MANAGERS = (Role.ADMIN, Role.ORACLE)


def has_any_role(user_roles: Iterable[str], required: Iterable[Role | str]) -> bool:
    required_values = {r.value if isinstance(r, Role) else r for r in required}
    if not required_values:
        return True
    return any(role in required_values for role in user_roles)


def is_owner(wallet_address: str, owner_address: str | None) -> bool:
    return bool(owner_address) and wallet_address.lower() == owner_address.lower()


def can_edit_asset(
    wallet_address: str, user_roles: Iterable[str], owner_address: str | None,
) -> bool:
    """Owner, admin, or oracle may edit asset metadata."""
    return is_owner(wallet_address, owner_address) or has_any_role(
        user_roles, ASSET_MANAGERS,
    )


def total_pages(total: int, limit: int) -> int:
    if limit <= 0:
        return 0
    return math.ceil(total / limit)


def page_offset(page: int, limit: int) -> int:
    return max(page - 1, 0) * limit
