# src/keyward/plugins/context.py
"""Capability-scoped views handed to plugin code.

A plugin never receives the Platform. It receives a ScopedPlatform built
from its manifest at registration time, and every accessor checks the
plugin's grant before returning a service. Commands get a CommandContext
(parsed options + scoped platform), init/teardown hooks get a
PluginContext.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar

from keyward.contracts.collaborators import LedgerQuery, TransactionExecutor
from keyward.contracts.enums import AliasType, Network
from keyward.contracts.errors import InvalidArgumentError, NamespaceAccessDenied
from keyward.contracts.records import AliasRecord
from keyward.core.aliases import AliasRegistry
from keyward.core.platform import Platform
from keyward.core.state import NamespacedState, ValidatedNamespace
from keyward.core.vault import CredentialVault
from keyward.plugins.capabilities import CapabilitySet

if TYPE_CHECKING:
    from keyward.plugins.manifest import PluginManifest

E = TypeVar("E", bound=Enum)


class AliasReader:
    """Read-only alias view for plugins granted network:read only."""

    __slots__ = ("_registry",)

    def __init__(self, registry: AliasRegistry) -> None:
        self._registry = registry

    def resolve(
        self, alias: str, alias_type: AliasType | str, network: Network | str
    ) -> AliasRecord | None:
        return self._registry.resolve(alias, alias_type, network)

    def resolve_ref(
        self, ref: str, alias_type: AliasType | str, network: Network | str
    ) -> AliasRecord | None:
        return self._registry.resolve_ref(ref, alias_type, network)

    def list(
        self,
        network: Network | str | None = None,
        alias_type: AliasType | str | None = None,
    ) -> "list[AliasRecord]":
        return self._registry.list(network, alias_type)

    def available_or_raise(self, alias: str, network: Network | str) -> None:
        self._registry.available_or_raise(alias, network)


class ScopedPlatform:
    """The platform as seen by one plugin.

    Usage (inside a handler):
        accounts = ctx.platform.state("accounts")
        accounts.set("alice", {...})
        ctx.platform.vault.import_private_key(secret)
    """

    def __init__(self, platform: Platform, manifest: "PluginManifest") -> None:
        self._platform = platform
        self._plugin = manifest.name
        self._grant = CapabilitySet.from_tokens(manifest.capabilities)
        self._namespaces: dict[str, ValidatedNamespace] = {}
        for schema in manifest.state_schemas:
            platform.store.register_namespace(schema.namespace, schema.version)
            self._namespaces[schema.namespace] = ValidatedNamespace(
                NamespacedState(platform.store, schema.namespace),
                schema.json_schema,
            )

    def __repr__(self) -> str:
        return f"ScopedPlatform(plugin={self._plugin!r})"

    @property
    def plugin(self) -> str:
        return self._plugin

    @property
    def grant(self) -> CapabilitySet:
        return self._grant

    @property
    def network(self) -> Network:
        """Network the process operates against. Always visible."""
        return self._platform.network

    def state(self, namespace: str) -> ValidatedNamespace:
        """Schema-validated view of a granted namespace.

        Raises:
            NamespaceAccessDenied: If the plugin holds no grant for namespace
        """
        if namespace not in self._grant.namespaces or namespace not in self._namespaces:
            raise NamespaceAccessDenied(self._plugin, f"state namespace '{namespace}'")
        return self._namespaces[namespace]

    @property
    def vault(self) -> CredentialVault:
        if not self._grant.credentials_use:
            raise NamespaceAccessDenied(self._plugin, "the credential vault")
        return self._platform.vault

    @property
    def aliases(self) -> AliasRegistry | AliasReader:
        """Full registry with network:write, read-only view with network:read."""
        if self._grant.network_write:
            return self._platform.aliases
        if self._grant.network_read:
            return AliasReader(self._platform.aliases)
        raise NamespaceAccessDenied(self._plugin, "the alias registry")

    @property
    def ledger(self) -> LedgerQuery | None:
        if not self._grant.can_read_network:
            raise NamespaceAccessDenied(self._plugin, "ledger queries")
        return self._platform.ledger

    @property
    def executor(self) -> TransactionExecutor | None:
        if not (self._grant.network_write and self._grant.credentials_use):
            raise NamespaceAccessDenied(self._plugin, "transaction execution")
        return self._platform.executor


@dataclass(frozen=True)
class PluginContext:
    """Passed to a plugin's init and teardown hooks."""

    plugin: str
    platform: ScopedPlatform
    logger: Any


@dataclass(frozen=True)
class CommandContext:
    """Passed to a command handler on every invocation.

    Example:
        def view(ctx: CommandContext) -> dict:
            record = ctx.platform.state("accounts").get(ctx.args["name"])
            ...
    """

    plugin: str
    command: str
    platform: ScopedPlatform
    logger: Any
    args: dict[str, Any] = field(default_factory=dict)

    def get(self, name: str, default: Any = None) -> Any:
        """Parsed option value by option or parameter name."""
        value = self.args.get(name.replace("-", "_"))
        return default if value is None else value

    def get_enum(self, name: str, enum_type: type[E], default: E | None = None) -> E | None:
        """Parsed option value converted to enum_type.

        Raises:
            InvalidArgumentError: If the value is not a member of enum_type
        """
        value = self.get(name)
        if value is None:
            return default
        try:
            return enum_type(value)
        except ValueError:
            raise InvalidArgumentError(name, value, [m.value for m in enum_type]) from None
