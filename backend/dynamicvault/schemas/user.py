"""User Schemas — profile updates, API keys, and admin role/status changes.

Invariants:
    - ProfileUpdate carries only the fields the caller sent (exclude_unset on dump)
    - Roles and status restricted to Role / UserStatus values
"""

from pydantic import EmailStr, Field, HttpUrl, PositiveInt

from dynamicvault.core.domain_types import Role, UserStatus
from dynamicvault.schemas.base import CamelModel

DEFAULT_NOTIFICATION_PREFERENCES = {
    "priceUpdates": True,
    "transactions": True,
    "marketEvents": True,
    "emailNotifications": False,
}


class NotificationPreferences(CamelModel):
    price_updates: bool | None = None
    transactions: bool | None = None
    market_events: bool | None = None
    email_notifications: bool | None = None


class ProfileUpdate(CamelModel):
    username: str | None = Field(None, min_length=1, max_length=50)
    email: EmailStr | None = None
    avatar_url: HttpUrl | None = None
    notification_preferences: NotificationPreferences | None = None


class RolesUpdate(CamelModel):
    roles: list[Role] = Field(min_length=1)


class StatusUpdate(CamelModel):
    status: UserStatus


class ApiKeyCreate(CamelModel):
    key_name: str = Field(min_length=3, max_length=100)
    permissions: list[str]
    expires_in_days: PositiveInt = 30
