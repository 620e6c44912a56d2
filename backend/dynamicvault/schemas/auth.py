"""Auth Schemas — wallet sign-in, token refresh, and token responses."""

from pydantic import Field

from dynamicvault.schemas.base import CamelModel, WalletAddressStr


class VerifyRequest(CamelModel):
    wallet_address: WalletAddressStr
    signature: str = Field(min_length=1)
    message: str = Field(min_length=1)


class RefreshRequest(CamelModel):
    refresh_token: str = Field(min_length=1)


class NonceResponse(CamelModel):
    wallet_address: str
    nonce: str
    message: str


class TokenPairResponse(CamelModel):
    access_token: str
    refresh_token: str
    expires_in: str


class AccessTokenResponse(CamelModel):
    access_token: str
    expires_in: str
