"""Shared schema building blocks — camelCase base model and wallet address type."""

from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from dynamicvault.core.domain_types import WALLET_ADDRESS_PATTERN


class CamelModel(BaseModel):
    """Accepts camelCase keys (and snake_case for internal callers)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


WalletAddressStr = Annotated[
    str,
    Field(pattern=WALLET_ADDRESS_PATTERN),
    AfterValidator(str.lower),
]

TransactionHashStr = Annotated[str, Field(min_length=1, max_length=66)]
