"""Error taxonomy for the plugin capability runtime.

Load-time errors (manifest validation, command collisions) carry enough
context to identify the offending plugin and token. Per-invocation errors
(alias conflicts) are raised by the services and converted into typed
command results by the dispatcher; the core never prints or exits.

Missing credentials are NOT errors: the vault returns None for unknown
key references because "key does not exist" is an expected outcome.
"""

from typing import Any


class KeywardError(Exception):
    """Base class for all domain errors raised by keyward."""


class CapabilityError(KeywardError, ValueError):
    """Raised when a capability token is not part of the vocabulary.

    Subclasses ValueError so pydantic validators report it as a regular
    field error while parsing a manifest.
    """

    def __init__(self, token: str, reason: str | None = None) -> None:
        self.token = token
        detail = f": {reason}" if reason else ""
        super().__init__(f"Unrecognized capability token '{token}'{detail}")


class ManifestValidationError(KeywardError):
    """Raised when a plugin manifest is malformed or violates an invariant.

    Fatal for the offending plugin only.
    """

    def __init__(
        self,
        plugin: str | None,
        message: str,
        *,
        token: str | None = None,
    ) -> None:
        self.plugin = plugin
        self.token = token
        where = f"plugin '{plugin}'" if plugin else "unnamed plugin"
        suffix = f" (token: {token})" if token else ""
        super().__init__(f"Invalid manifest for {where}: {message}{suffix}")


class CommandCollisionError(KeywardError):
    """Raised when two plugins claim the same command path.

    Fatal for the whole load: ambiguous dispatch is worse than refusing to
    start.
    """

    def __init__(self, command: str, existing_plugin: str, plugin: str) -> None:
        self.command = command
        self.existing_plugin = existing_plugin
        self.plugin = plugin
        super().__init__(
            f"Command '{command}' from plugin '{plugin}' is already "
            f"registered by plugin '{existing_plugin}'"
        )


class NamespaceAccessDenied(KeywardError):
    """Raised when a plugin reaches for a resource outside its grant."""

    def __init__(self, plugin: str, resource: str) -> None:
        self.plugin = plugin
        self.resource = resource
        super().__init__(
            f"Plugin '{plugin}' is not authorized to access {resource}"
        )


class StateValidationError(KeywardError):
    """Raised when a value does not match its namespace schema on write."""

    def __init__(self, namespace: str, key: str, errors: list[str]) -> None:
        self.namespace = namespace
        self.key = key
        self.errors = errors
        super().__init__(
            f"Invalid value for '{namespace}/{key}': {'; '.join(errors)}"
        )


class InvalidKeyError(KeywardError, ValueError):
    """Raised when supplied private key material cannot be parsed."""


class KeyMaterialUnavailableError(KeywardError):
    """Raised when a signer handle can no longer reach its key material.

    Happens when the key was removed after the handle was issued, or when
    the secret is held by an external provider rather than locally.
    """

    def __init__(self, key_ref_id: str, reason: str) -> None:
        self.key_ref_id = key_ref_id
        super().__init__(f"Cannot sign with {key_ref_id}: {reason}")


class InvalidArgumentError(KeywardError, ValueError):
    """Raised when a command option value is outside its allowed set."""

    def __init__(self, option: str, value: object, allowed: list[str]) -> None:
        self.option = option
        self.value = value
        super().__init__(
            f"Invalid value '{value}' for --{option.replace('_', '-')}; "
            f"expected one of: {', '.join(allowed)}"
        )


class AliasError(KeywardError):
    """Base class for alias registry conflicts."""


class DuplicateAliasError(AliasError):
    """Raised when (alias, network, type) is already registered."""

    def __init__(self, alias: str, network: str, alias_type: str) -> None:
        self.alias = alias
        self.network = network
        self.alias_type = alias_type
        super().__init__(
            f"Alias '{alias}' ({alias_type}) already exists on network {network}"
        )


class AliasInUseError(AliasError):
    """Raised when an alias name is taken on a network by any entity type."""

    def __init__(self, alias: str, network: str, alias_type: str) -> None:
        self.alias = alias
        self.network = network
        self.alias_type = alias_type
        super().__init__(
            f"Alias '{alias}' is already used on network {network} "
            f"by a {alias_type} entry"
        )


class UnknownKeyReferenceError(AliasError):
    """Raised when an alias points at a key reference the vault does not hold."""

    def __init__(self, key_ref_id: str) -> None:
        self.key_ref_id = key_ref_id
        super().__init__(f"Unknown key reference: {key_ref_id}")


def describe_error(error: KeywardError) -> dict[str, Any]:
    """Build a JSON-safe description of a domain error for command results."""
    details: dict[str, Any] = {
        "type": type(error).__name__,
        "message": str(error),
    }
    for attr in ("plugin", "token", "alias", "network", "key_ref_id", "namespace"):
        value = getattr(error, attr, None)
        if value is not None:
            details[attr] = value
    return details
