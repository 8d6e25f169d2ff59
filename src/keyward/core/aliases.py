# src/keyward/core/aliases.py
"""Alias registry: human-chosen names for network-scoped entities.

An alias is unique per (alias, network, type). Registration never
overwrites; callers remove first. Entity ids are not portable between
networks, so resolution is always exact and never crosses networks.
"""

from __future__ import annotations

from pydantic import ValidationError

from keyward.contracts.enums import AliasType, Network, RefKind
from keyward.contracts.errors import (
    AliasInUseError,
    DuplicateAliasError,
    UnknownKeyReferenceError,
)
from keyward.contracts.records import AliasRecord, utc_now
from keyward.core.logging import get_logger
from keyward.core.state.store import NamespacedState, StateStore
from keyward.core.vault import CredentialVault

logger = get_logger(__name__)

ALIASES_NAMESPACE = "aliases"

# Checked in order; anything unprefixed is an alias
_REF_PREFIXES: tuple[tuple[str, RefKind], ...] = (
    ("keyRef:", RefKind.KEY_REF),
    ("pub:", RefKind.PUBLIC_KEY),
    ("acc:", RefKind.ACCOUNT),
    ("token:", RefKind.TOKEN),
    ("alias:", RefKind.ALIAS),
)


def parse_ref(ref: str) -> tuple[RefKind, str]:
    """Split a reference string into its kind and value.

    >>> parse_ref("acc:0.0.1234")
    (<RefKind.ACCOUNT: 'acc'>, '0.0.1234')
    >>> parse_ref("bob")
    (<RefKind.ALIAS: 'alias'>, 'bob')
    """
    for prefix, kind in _REF_PREFIXES:
        if ref.startswith(prefix):
            return kind, ref[len(prefix) :]
    return RefKind.ALIAS, ref


def _storage_key(alias: str, network: Network, alias_type: AliasType) -> str:
    return f"{network.value}:{alias_type.value}:{alias}"


class AliasRegistry:
    """Maps (alias, network, type) to entity ids and optional key references.

    When a vault is supplied, key references on registered records must
    name credentials the vault holds.
    """

    def __init__(self, store: StateStore, vault: CredentialVault | None = None) -> None:
        self._state = NamespacedState(store, ALIASES_NAMESPACE)
        self._vault = vault

    def register(self, record: AliasRecord) -> AliasRecord:
        """Store a new alias.

        Returns:
            The record as stored (with updated_at set)

        Raises:
            DuplicateAliasError: If (alias, network, type) already exists
            UnknownKeyReferenceError: If key_ref_id names no stored credential
        """
        key = _storage_key(record.alias, record.network, record.type)
        if self._read(key) is not None:
            raise DuplicateAliasError(record.alias, record.network.value, record.type.value)

        if (
            record.key_ref_id is not None
            and self._vault is not None
            and self._vault.get_record(record.key_ref_id) is None
        ):
            raise UnknownKeyReferenceError(record.key_ref_id)

        stored = record.model_copy(update={"updated_at": utc_now()})
        self._state.set(key, stored.to_state())
        logger.debug(
            "Alias registered",
            alias=record.alias,
            network=record.network.value,
            type=record.type.value,
        )
        return stored

    def resolve(
        self, alias: str, alias_type: AliasType | str, network: Network | str
    ) -> AliasRecord | None:
        """Exact match on all three fields, or None."""
        return self._read(_storage_key(alias, Network(network), AliasType(alias_type)))

    def resolve_ref(
        self, ref: str, alias_type: AliasType | str, network: Network | str
    ) -> AliasRecord | None:
        """Resolve a prefixed reference. Only alias references resolve."""
        kind, value = parse_ref(ref)
        if kind != RefKind.ALIAS or not value:
            return None
        return self.resolve(value, alias_type, network)

    def list(
        self,
        network: Network | str | None = None,
        alias_type: AliasType | str | None = None,
    ) -> list[AliasRecord]:
        """All valid records, optionally filtered by network and type."""
        wanted_network = Network(network) if network is not None else None
        wanted_type = AliasType(alias_type) if alias_type is not None else None
        records = []
        for key in self._state.keys():
            record = self._read(key)
            if record is None:
                continue
            if wanted_network is not None and record.network != wanted_network:
                continue
            if wanted_type is not None and record.type != wanted_type:
                continue
            records.append(record)
        return records

    def remove(self, alias: str, network: Network | str) -> None:
        """Remove the alias on a network for every entity type. Idempotent."""
        network = Network(network)
        for alias_type in AliasType:
            key = _storage_key(alias, network, alias_type)
            if self._state.has(key):
                self._state.delete(key)
                logger.debug(
                    "Alias removed",
                    alias=alias,
                    network=network.value,
                    type=alias_type.value,
                )

    def available_or_raise(self, alias: str, network: Network | str) -> None:
        """Guard used before registration.

        Raises:
            AliasInUseError: If the name is taken on network by any entity type
        """
        network = Network(network)
        for alias_type in AliasType:
            if self._read(_storage_key(alias, network, alias_type)) is not None:
                raise AliasInUseError(alias, network.value, alias_type.value)

    def _read(self, key: str) -> AliasRecord | None:
        value = self._state.get(key)
        if value is None:
            return None
        try:
            return AliasRecord.model_validate(value)
        except ValidationError as e:
            logger.warning(
                "Invalid alias record treated as absent",
                key=key,
                errors=e.error_count(),
            )
            return None
