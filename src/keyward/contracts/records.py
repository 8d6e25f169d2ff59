"""Records persisted by the core services.

These models are the on-disk shape of vault and alias entries. They are
validated on every read because the state store is a trust boundary: a
file edited by hand (or written by an older release) must not crash an
unrelated listing. Callers treat a record that fails validation as absent.
"""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from keyward.contracts.enums import AliasType, CredentialType, KeyAlgorithm, Network


def utc_now() -> datetime:
    """Timestamp used for created_at/updated_at fields."""
    return datetime.now(UTC)


class _Record(BaseModel):
    """Base for persisted records: immutable, unknown fields rejected."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    def to_state(self) -> dict[str, Any]:
        """Convert to a JSON-safe dict for the state store."""
        return self.model_dump(mode="json")


class CredentialRecord(_Record):
    """Public metadata for a stored key.

    Never contains secret material; safe to list and export.
    """

    key_ref_id: str
    type: CredentialType
    public_key: str
    key_algorithm: KeyAlgorithm
    labels: tuple[str, ...] = ()


class CredentialSecret(_Record):
    """Secret material for a stored key, kept in its own namespace.

    Exactly one of private_key / provider_handle is set: local keys carry
    the raw key, hardware or KMS-backed keys carry an opaque handle.
    """

    key_algorithm: KeyAlgorithm
    private_key: str | None = None
    provider_handle: str | None = None
    created_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode="after")
    def validate_single_source(self) -> "CredentialSecret":
        """Exactly one of private_key / provider_handle must be present."""
        if (self.private_key is None) == (self.provider_handle is None):
            raise ValueError(
                "exactly one of private_key or provider_handle must be set"
            )
        return self


class KeyReference(_Record):
    """What the vault hands back after import or generation."""

    key_ref_id: str
    public_key: str


class OperatorMapping(_Record):
    """Default signer for one network."""

    account_id: str
    key_ref_id: str


class AliasRecord(_Record):
    """A human-chosen name resolved per network and entity type."""

    alias: str = Field(min_length=1)
    network: Network
    type: AliasType
    entity_id: str | None = None
    key_ref_id: str | None = None
    public_key: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
