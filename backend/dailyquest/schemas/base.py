from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from dailyquest.services.signature_service import is_valid_wallet_address


def validate_wallet_address(value: str | None) -> str | None:
    """Reject anything that is not a base58 Ed25519 public key."""
    if value is None:
        return None
    if not is_valid_wallet_address(value):
        raise ValueError("Invalid wallet address")
    return value


class CamelModel(BaseModel):
    """Game clients speak camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
