"""Platform context handed to the plugin manager.

The platform is built once per process and passed explicitly; nothing in
keyward reaches for a global store or vault.
"""

from dataclasses import dataclass, field
from pathlib import Path

from keyward.contracts.collaborators import LedgerQuery, TransactionExecutor
from keyward.contracts.enums import KeyAlgorithm, Network
from keyward.core.aliases import AliasRegistry
from keyward.core.config import KeywardSettings, StateSettings
from keyward.core.logging import get_logger
from keyward.core.state import (
    DatabaseStateBackend,
    FilesystemStateBackend,
    MemoryStateBackend,
    StateBackend,
    StateStore,
)
from keyward.core.vault import CredentialVault

logger = get_logger(__name__)

# Where `network use` records the selected network
ACTIVE_NETWORK_NAMESPACE = "network-config"
ACTIVE_NETWORK_KEY = "active"


@dataclass
class Platform:
    """Shared services and read-only collaborators.

    Plugins never see this object directly; the plugin manager wraps it in
    a capability-scoped view per plugin.
    """

    store: StateStore
    vault: CredentialVault
    aliases: AliasRegistry
    settings: KeywardSettings = field(default_factory=KeywardSettings)
    ledger: LedgerQuery | None = None
    executor: TransactionExecutor | None = None

    @property
    def network(self) -> Network:
        """Network commands operate against.

        An explicitly configured network (settings file, environment or the
        --network flag) wins over the one saved by `network use`; the
        settings default applies when neither is present.
        """
        if "network" in self.settings.model_fields_set:
            return self.settings.network
        return self.active_network() or self.settings.network

    def active_network(self) -> Network | None:
        """Network saved in the active-network namespace, if any."""
        saved = self.store.get(ACTIVE_NETWORK_NAMESPACE, ACTIVE_NETWORK_KEY)
        if not isinstance(saved, dict):
            return None
        try:
            return Network(saved.get("network"))
        except ValueError:
            logger.warning("Ignoring unknown saved network", network=saved.get("network"))
            return None

    @classmethod
    def in_memory(cls, settings: KeywardSettings | None = None) -> "Platform":
        """Platform over a throwaway in-memory store (tests, dry runs)."""
        store = StateStore(MemoryStateBackend())
        vault = CredentialVault(store)
        return cls(
            store=store,
            vault=vault,
            aliases=AliasRegistry(store, vault),
            settings=settings or KeywardSettings(),
        )


def create_backend(settings: StateSettings) -> StateBackend:
    """Build the persistence backend selected in settings."""
    if settings.backend == "memory":
        return MemoryStateBackend()
    if settings.backend == "database":
        # url presence is enforced by StateSettings validation
        return DatabaseStateBackend.from_url(settings.url or "")
    return FilesystemStateBackend(Path(settings.path))


def build_platform(
    settings: KeywardSettings,
    *,
    ledger: LedgerQuery | None = None,
    executor: TransactionExecutor | None = None,
) -> Platform:
    """Wire store, vault and alias registry from settings.

    Operators configured in settings are imported into the vault unless
    the network already has one.
    """
    store = StateStore(create_backend(settings.state))
    vault = CredentialVault(store)
    for network, operator in settings.operators.items():
        vault.ensure_operator(
            network,
            operator.account_id,
            operator.private_key,
            key_algorithm=KeyAlgorithm(operator.key_algorithm),
        )
    return Platform(
        store=store,
        vault=vault,
        aliases=AliasRegistry(store, vault),
        settings=settings,
        ledger=ledger,
        executor=executor,
    )
