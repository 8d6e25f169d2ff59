"""Credential vault.

Keeps key material out of plugin hands. Plugins (and the signing
collaborator) work with opaque key references:

- CredentialRecord (public metadata) lives in the `vault-credentials`
  namespace and is safe to list or export.
- CredentialSecret (private key or provider handle) lives in the separate
  `vault-secrets` namespace and is only read back inside this module.
- Per-network operator mappings live in `vault-operators`.

Unknown key references are an expected outcome, not an error: lookups
return None and removal is a no-op.
"""

from __future__ import annotations

import secrets
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ValidationError

from keyward.contracts.enums import CredentialType, KeyAlgorithm, Network
from keyward.contracts.errors import KeyMaterialUnavailableError
from keyward.contracts.records import (
    CredentialRecord,
    CredentialSecret,
    KeyReference,
    OperatorMapping,
)
from keyward.core.logging import get_logger
from keyward.core.state.store import NamespacedState, StateStore
from keyward.core.vault.keys import (
    generate_private_key,
    parse_private_key,
    public_key_hex,
    raw_private_key_hex,
    sign_message,
)

logger = get_logger(__name__)

CREDENTIALS_NAMESPACE = "vault-credentials"
SECRETS_NAMESPACE = "vault-secrets"
OPERATORS_NAMESPACE = "vault-operators"

KEY_REF_PREFIX = "kr"


def _new_key_ref_id() -> str:
    """Random opaque identifier, unrelated to any key or account value."""
    return f"{KEY_REF_PREFIX}_{secrets.token_hex(8)}"


def _parse_record(model: type[BaseModel], value: Any, *, key: str) -> Any:
    """Validate a stored value; invalid records are logged and treated as absent."""
    if value is None:
        return None
    try:
        return model.model_validate(value)
    except ValidationError as e:
        logger.warning(
            "Invalid vault record treated as absent",
            record_type=model.__name__,
            key=key,
            errors=e.error_count(),
        )
        return None


class SignerHandle:
    """Opaque signing capability for one key reference.

    Handed to the signing collaborator instead of key material. The secret
    is read from the vault on every sign() call and never stored on the
    handle, so a handle for a removed key stops working.
    """

    __slots__ = ("_key_ref_id", "_public_key", "_key_algorithm", "_read_secret")

    def __init__(
        self,
        record: CredentialRecord,
        read_secret: Callable[[str], CredentialSecret | None],
    ) -> None:
        self._key_ref_id = record.key_ref_id
        self._public_key = record.public_key
        self._key_algorithm = record.key_algorithm
        self._read_secret = read_secret

    def __repr__(self) -> str:
        return f"SignerHandle(key_ref_id={self._key_ref_id!r})"

    @property
    def key_ref_id(self) -> str:
        return self._key_ref_id

    @property
    def public_key(self) -> str:
        return self._public_key

    @property
    def key_algorithm(self) -> KeyAlgorithm:
        return self._key_algorithm

    def sign(self, message: bytes) -> bytes:
        """Sign message bytes with the referenced key.

        Raises:
            KeyMaterialUnavailableError: If the key was removed or is not held locally
        """
        secret = self._read_secret(self._key_ref_id)
        if secret is None:
            raise KeyMaterialUnavailableError(self._key_ref_id, "key has been removed")
        if secret.private_key is None:
            raise KeyMaterialUnavailableError(
                self._key_ref_id, "key material is held by an external provider"
            )
        return sign_message(
            parse_private_key(secret.private_key, self._key_algorithm), message
        )


class CredentialVault:
    """Reference-only credential store built on the state store."""

    def __init__(self, store: StateStore) -> None:
        self._records = NamespacedState(store, CREDENTIALS_NAMESPACE)
        self._secrets = NamespacedState(store, SECRETS_NAMESPACE)
        self._operators = NamespacedState(store, OPERATORS_NAMESPACE)

    # === Key material ===

    def import_private_key(
        self,
        secret: str,
        labels: list[str] | None = None,
        *,
        key_algorithm: KeyAlgorithm = KeyAlgorithm.ECDSA,
    ) -> KeyReference:
        """Store a private key and return its reference.

        Importing a key whose public key is already held returns the
        existing reference instead of storing a second copy.

        Raises:
            InvalidKeyError: If the key material cannot be parsed
        """
        key_algorithm = KeyAlgorithm(key_algorithm)
        private_key = parse_private_key(secret, key_algorithm)
        public_key = public_key_hex(private_key)

        existing = self.find_by_public_key(public_key)
        if existing is not None:
            logger.debug("Key already held", key_ref_id=existing)
            return KeyReference(key_ref_id=existing, public_key=public_key)

        key_ref_id = _new_key_ref_id()
        while self._records.has(key_ref_id) or self._secrets.has(key_ref_id):
            key_ref_id = _new_key_ref_id()

        # Secret first: a record is never listed without its key material
        self._secrets.set(
            key_ref_id,
            CredentialSecret(
                key_algorithm=key_algorithm,
                private_key=raw_private_key_hex(private_key),
            ).to_state(),
        )
        self._records.set(
            key_ref_id,
            CredentialRecord(
                key_ref_id=key_ref_id,
                type=CredentialType.LOCAL_PRIVATE_KEY,
                public_key=public_key,
                key_algorithm=key_algorithm,
                labels=tuple(labels or ()),
            ).to_state(),
        )
        logger.info("Credential stored", key_ref_id=key_ref_id, algorithm=key_algorithm.value)
        return KeyReference(key_ref_id=key_ref_id, public_key=public_key)

    def create_local_private_key(
        self,
        labels: list[str] | None = None,
        *,
        key_algorithm: KeyAlgorithm = KeyAlgorithm.ECDSA,
    ) -> KeyReference:
        """Generate a new key and store it through the import path."""
        key_algorithm = KeyAlgorithm(key_algorithm)
        return self.import_private_key(
            generate_private_key(key_algorithm), labels, key_algorithm=key_algorithm
        )

    # === Lookups ===

    def get_record(self, key_ref_id: str) -> CredentialRecord | None:
        """Metadata for a key reference, or None if unknown."""
        return _parse_record(CredentialRecord, self._records.get(key_ref_id), key=key_ref_id)

    def get_public_key(self, key_ref_id: str) -> str | None:
        record = self.get_record(key_ref_id)
        return record.public_key if record else None

    def find_by_public_key(self, public_key: str) -> str | None:
        """Key reference holding public_key, or None."""
        wanted = public_key.lower()
        for record in self.list():
            if record.public_key.lower() == wanted:
                return record.key_ref_id
        return None

    def list(self) -> list[CredentialRecord]:
        """Metadata of every stored key. Never includes secret material."""
        records = []
        for key in self._records.keys():
            record = self.get_record(key)
            if record is not None:
                records.append(record)
        return records

    def remove(self, key_ref_id: str) -> None:
        """Remove metadata and secret for a key reference. Idempotent."""
        if not (self._records.has(key_ref_id) or self._secrets.has(key_ref_id)):
            return
        # Record first: listings stop showing the key before its secret goes
        self._records.delete(key_ref_id)
        self._secrets.delete(key_ref_id)
        logger.info("Credential removed", key_ref_id=key_ref_id)

    def get_signer_handle(self, key_ref_id: str) -> SignerHandle | None:
        """Opaque signing handle for a key reference, or None if unknown."""
        record = self.get_record(key_ref_id)
        if record is None:
            return None
        return SignerHandle(record, self._read_secret)

    def _read_secret(self, key_ref_id: str) -> CredentialSecret | None:
        return _parse_record(CredentialSecret, self._secrets.get(key_ref_id), key=key_ref_id)

    # === Operators ===

    def set_operator(
        self, network: Network | str, mapping: OperatorMapping
    ) -> OperatorMapping | None:
        """Set the default signer for a network.

        Returns:
            The mapping that was replaced, or None. Callers are expected to
            report an overwrite rather than let it pass silently.
        """
        network = Network(network)
        previous = self.get_operator(network)
        if self.get_record(mapping.key_ref_id) is None:
            logger.warning(
                "Operator key reference is not held by the vault",
                network=network.value,
                key_ref_id=mapping.key_ref_id,
            )
        self._operators.set(network.value, mapping.to_state())
        if previous is not None and previous != mapping:
            logger.info(
                "Operator replaced",
                network=network.value,
                previous_account=previous.account_id,
                account=mapping.account_id,
            )
        return previous

    def get_operator(self, network: Network | str) -> OperatorMapping | None:
        network = Network(network)
        return _parse_record(
            OperatorMapping, self._operators.get(network.value), key=network.value
        )

    def clear_operator(self, network: Network | str) -> OperatorMapping | None:
        """Remove the operator mapping for a network, returning what was removed."""
        network = Network(network)
        previous = self.get_operator(network)
        self._operators.delete(network.value)
        return previous

    def ensure_operator(
        self,
        network: Network | str,
        account_id: str,
        private_key: str,
        *,
        key_algorithm: KeyAlgorithm = KeyAlgorithm.ECDSA,
    ) -> OperatorMapping:
        """Bootstrap an operator from configuration unless one is already set."""
        network = Network(network)
        existing = self.get_operator(network)
        if existing is not None:
            return existing
        reference = self.import_private_key(
            private_key,
            ["operator", f"network:{network.value}"],
            key_algorithm=key_algorithm,
        )
        mapping = OperatorMapping(account_id=account_id, key_ref_id=reference.key_ref_id)
        self.set_operator(network, mapping)
        return mapping
