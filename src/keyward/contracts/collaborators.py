"""Protocols for external collaborators.

The core invokes these through narrow interfaces and never implements
them: ledger transports, transaction signing and mirror queries live in
the SDK layer outside this package. Command handlers receive them through
the scoped platform when their capabilities allow it.
"""

from typing import Any, Protocol, runtime_checkable

from keyward.contracts.results import TransactionResult


@runtime_checkable
class TransactionExecutor(Protocol):
    """Signs and submits a constructed transaction.

    Signs with the network's default operator unless key_ref_id names an
    explicit signer held by the vault.
    """

    async def execute(
        self,
        transaction: Any,
        *,
        key_ref_id: str | None = None,
    ) -> TransactionResult:
        """Sign, submit and wait for the receipt.

        Args:
            transaction: SDK transaction object (opaque to the core)
            key_ref_id: Explicit signer, or None for the network operator

        Returns:
            TransactionResult with success flag and receipt or error
        """
        ...


@runtime_checkable
class LedgerQuery(Protocol):
    """Read-only ledger lookups (mirror node)."""

    async def get_balance(self, entity_id: str) -> dict[str, Any]:
        """Balance of an account, including token balances."""
        ...

    async def get_entity(self, entity_id: str) -> dict[str, Any] | None:
        """Metadata of an account, token, or topic; None if unknown."""
        ...

    async def get_messages(self, topic_id: str) -> list[dict[str, Any]]:
        """Message history of a topic."""
        ...
