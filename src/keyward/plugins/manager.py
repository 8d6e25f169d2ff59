# src/keyward/plugins/manager.py
"""Plugin manager: registration, lifecycle and command dispatch.

Load sequence per manifest:
1. Validate shape and capability tokens (pydantic + capability parser).
2. Check namespace/schema pairing, reserved namespaces, command paths.
3. Build the plugin's capability-scoped platform.
4. initialize_all() runs init hooks; register_commands() binds handlers.

Failure semantics:
- ManifestValidationError is fatal for that plugin only.
- CommandCollisionError is fatal for the whole load.
- Init hook errors mark the plugin failed; the others still start.
- Teardown errors are logged, never raised.
"""

from __future__ import annotations

import asyncio
import inspect
import json
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ValidationError

from keyward.contracts.enums import CommandStatus, PluginState
from keyward.contracts.errors import (
    CommandCollisionError,
    KeywardError,
    ManifestValidationError,
    describe_error,
)
from keyward.contracts.results import CommandExecutionResult, LoadReport, PluginFailure
from keyward.core.aliases import ALIASES_NAMESPACE
from keyward.core.logging import get_logger
from keyward.core.platform import Platform
from keyward.plugins.capabilities import NAMESPACE_PREFIX, CapabilitySet
from keyward.plugins.context import CommandContext, PluginContext, ScopedPlatform
from keyward.plugins.manifest import CommandSpec, PluginManifest

logger = get_logger(__name__)

RESERVED_NAMESPACE_PREFIX = "vault-"
RESERVED_NAMESPACES = frozenset({ALIASES_NAMESPACE})
# Groups owned by the CLI itself
RESERVED_GROUPS = frozenset({"plugins", "config"})

BoundHandler = Callable[[dict[str, Any]], CommandExecutionResult]


def is_reserved_namespace(namespace: str) -> bool:
    """Namespaces owned by the core services."""
    return namespace in RESERVED_NAMESPACES or namespace.startswith(RESERVED_NAMESPACE_PREFIX)


def _run(fn: Callable[..., Any], *args: Any) -> Any:
    """Call a hook or handler, driving it to completion if it is async."""
    result = fn(*args)
    if inspect.iscoroutine(result):
        return asyncio.run(result)
    return result


@dataclass
class RegisteredPlugin:
    """A manifest accepted by the manager, plus its lifecycle state."""

    manifest: PluginManifest
    platform: ScopedPlatform
    state: PluginState = PluginState.PENDING
    error: str | None = None

    @property
    def name(self) -> str:
        return self.manifest.name

    @property
    def command_paths(self) -> list[str]:
        return [f"{self.manifest.group} {command.name}" for command in self.manifest.commands]


class PluginManager:
    """Loads plugin manifests and binds their commands to a command surface.

    Usage:
        manager = PluginManager(platform)
        report = manager.register_all(collect_manifests())
        manager.initialize_all()
        manager.register_commands(surface)
        ...
        manager.teardown_all()
    """

    def __init__(self, platform: Platform) -> None:
        self._platform = platform
        self._plugins: dict[str, RegisteredPlugin] = {}
        # (group, command) -> owning plugin
        self._commands: dict[tuple[str, str], str] = {}

    # === Registration ===

    def register(self, manifest: PluginManifest | Mapping[str, Any]) -> RegisteredPlugin:
        """Validate and register one manifest.

        Raises:
            ManifestValidationError: If the manifest is malformed or violates
                a capability invariant
            CommandCollisionError: If a command path is already claimed
        """
        if not isinstance(manifest, PluginManifest):
            manifest = PluginManifest.from_dict(dict(manifest))

        if manifest.name in self._plugins:
            raise ManifestValidationError(manifest.name, "a plugin with this name is already registered")
        if manifest.group in RESERVED_GROUPS:
            raise ManifestValidationError(manifest.name, f"CLI group '{manifest.group}' is reserved")

        self._check_capabilities(manifest)

        for command in manifest.commands:
            owner = self._commands.get((manifest.group, command.name))
            if owner is not None:
                raise CommandCollisionError(f"{manifest.group} {command.name}", owner, manifest.name)

        plugin = RegisteredPlugin(manifest=manifest, platform=ScopedPlatform(self._platform, manifest))
        self._plugins[manifest.name] = plugin
        for command in manifest.commands:
            self._commands[(manifest.group, command.name)] = manifest.name

        logger.debug(
            "Plugin registered",
            plugin=manifest.name,
            version=manifest.version,
            commands=len(manifest.commands),
        )
        return plugin

    def _check_capabilities(self, manifest: PluginManifest) -> None:
        """Every namespace grant has a schema and every schema has a grant.

        A namespace shared with an already registered plugin must be
        declared at the same schema version.
        """
        grant = CapabilitySet.from_tokens(manifest.capabilities)

        for namespace in sorted(grant.namespaces):
            token = f"{NAMESPACE_PREFIX}{namespace}"
            if is_reserved_namespace(namespace):
                raise ManifestValidationError(
                    manifest.name, f"namespace '{namespace}' is reserved", token=token
                )
            if manifest.schema_for(namespace) is None:
                raise ManifestValidationError(
                    manifest.name,
                    f"no state schema declared for namespace '{namespace}'",
                    token=token,
                )

        for schema in manifest.state_schemas:
            if schema.namespace not in grant.namespaces:
                raise ManifestValidationError(
                    manifest.name,
                    f"state schema for '{schema.namespace}' has no matching capability",
                    token=f"{NAMESPACE_PREFIX}{schema.namespace}",
                )
            for other in self._plugins.values():
                shared = other.manifest.schema_for(schema.namespace)
                if shared is not None and shared.version != schema.version:
                    raise ManifestValidationError(
                        manifest.name,
                        f"namespace '{schema.namespace}' is declared at version {shared.version} "
                        f"by plugin '{other.name}', not {schema.version}",
                        token=f"{NAMESPACE_PREFIX}{schema.namespace}",
                    )

    def register_all(self, manifests: Iterable[PluginManifest | Mapping[str, Any]]) -> LoadReport:
        """Register a batch of manifests.

        Invalid manifests are reported and excluded; the rest load.

        Raises:
            CommandCollisionError: If two plugins claim the same command path
        """
        report = LoadReport()
        for manifest in manifests:
            try:
                plugin = self.register(manifest)
            except ManifestValidationError as e:
                logger.warning("Plugin rejected", plugin=e.plugin, token=e.token, error=str(e))
                report.rejected.append(PluginFailure(plugin=e.plugin, stage="register", error=str(e)))
            else:
                report.registered.append(plugin.name)
        return report

    # === Lifecycle ===

    def initialize_all(self) -> list[PluginFailure]:
        """Run init hooks in registration order.

        Returns:
            Plugins whose init hook raised (now in state FAILED)
        """
        failures: list[PluginFailure] = []
        for plugin in self._plugins.values():
            if plugin.state != PluginState.PENDING:
                continue
            init = plugin.manifest.init
            if init is not None:
                try:
                    _run(init, self._plugin_context(plugin))
                except Exception as e:
                    # A broken plugin must not prevent the others from starting
                    plugin.state = PluginState.FAILED
                    plugin.error = str(e)
                    failures.append(PluginFailure(plugin=plugin.name, stage="init", error=str(e)))
                    continue
            plugin.state = PluginState.ACTIVE

        for failure in failures:
            logger.error("Plugin init failed", plugin=failure.plugin, error=failure.error)
        return failures

    def teardown_all(self) -> None:
        """Run teardown hooks in reverse registration order. Best-effort."""
        for plugin in reversed(list(self._plugins.values())):
            if plugin.state != PluginState.ACTIVE:
                continue
            teardown = plugin.manifest.teardown
            if teardown is not None:
                try:
                    _run(teardown, self._plugin_context(plugin))
                except Exception as e:
                    # Log but don't raise - cleanup should be best-effort
                    logger.warning("Plugin teardown failed", plugin=plugin.name, error=str(e))
            plugin.state = PluginState.TORN_DOWN

    def _plugin_context(self, plugin: RegisteredPlugin) -> PluginContext:
        return PluginContext(
            plugin=plugin.name,
            platform=plugin.platform,
            logger=get_logger("keyward.plugin", plugin=plugin.name),
        )

    # === Commands ===

    def register_commands(self, surface: Any) -> int:
        """Bind every command of every active plugin to the surface.

        Args:
            surface: Object implementing CommandSurface

        Returns:
            Number of commands bound
        """
        bound = 0
        for plugin in self.get_active_plugins():
            for command in plugin.manifest.commands:
                surface.add_command(
                    plugin.manifest.group,
                    plugin.manifest.description or plugin.manifest.title,
                    command,
                    self._bind(plugin, command),
                )
                bound += 1
        return bound

    def _bind(self, plugin: RegisteredPlugin, command: CommandSpec) -> BoundHandler:
        def invoke(args: dict[str, Any]) -> CommandExecutionResult:
            return self._execute(plugin, command, args)

        return invoke

    def dispatch(self, group: str, command: str, args: dict[str, Any] | None = None) -> CommandExecutionResult:
        """Invoke a command by path without going through a CLI surface.

        Raises:
            KeyError: If no active plugin provides the command
        """
        owner = self._commands.get((group, command))
        plugin = self._plugins.get(owner) if owner is not None else None
        if plugin is None or plugin.state != PluginState.ACTIVE:
            raise KeyError(f"No active command '{group} {command}'")
        spec = next(c for c in plugin.manifest.commands if c.name == command)
        return self._execute(plugin, spec, args or {})

    def _execute(
        self, plugin: RegisteredPlugin, command: CommandSpec, args: dict[str, Any]
    ) -> CommandExecutionResult:
        log = get_logger("keyward.plugin", plugin=plugin.name, command=command.name)
        context = CommandContext(
            plugin=plugin.name,
            command=command.name,
            platform=plugin.platform,
            logger=log,
            args=dict(args),
        )
        try:
            result = _run(command.handler, context)
        except KeywardError as e:
            log.info("Command failed", **describe_error(e))
            return CommandExecutionResult.failure(str(e))
        return _normalize(command, result)

    # === Introspection ===

    def get_plugin(self, name: str) -> RegisteredPlugin | None:
        return self._plugins.get(name)

    def list_plugins(self) -> list[RegisteredPlugin]:
        """All registered plugins in registration order."""
        return list(self._plugins.values())

    def get_active_plugins(self) -> list[RegisteredPlugin]:
        return [p for p in self._plugins.values() if p.state == PluginState.ACTIVE]


def _normalize(command: CommandSpec, result: Any) -> CommandExecutionResult:
    """Turn a handler return value into a CommandExecutionResult.

    Accepted returns: CommandExecutionResult, a pydantic model, a dict, or
    None. Output is checked against the command's output model if declared.

    Raises:
        TypeError: If the handler returned anything else
    """
    if result is None:
        return CommandExecutionResult.success()

    if isinstance(result, CommandExecutionResult):
        if result.status == CommandStatus.FAILURE or result.output_json is None:
            return result
        try:
            payload = json.loads(result.output_json)
        except json.JSONDecodeError as e:
            return CommandExecutionResult.failure(f"Command output is not valid JSON: {e}")
        output_json, error = _render_output(command, payload)
        if error is not None:
            return CommandExecutionResult.failure(error)
        return CommandExecutionResult(
            status=result.status, output_json=output_json, error_message=result.error_message
        )

    if isinstance(result, BaseModel):
        result = result.model_dump(mode="json")
    if not isinstance(result, dict):
        raise TypeError(
            f"Handler for command '{command.name}' returned {type(result).__name__}; "
            "expected CommandExecutionResult, dict, pydantic model or None"
        )
    output_json, error = _render_output(command, result)
    if error is not None:
        return CommandExecutionResult.failure(error)
    return CommandExecutionResult.success(output_json)


def _render_output(command: CommandSpec, payload: Any) -> tuple[str | None, str | None]:
    """Validate payload against the output model and serialize it.

    Returns:
        (output_json, None) on success, (None, error_message) on mismatch
    """
    if command.output is None:
        return json.dumps(payload), None
    try:
        model = command.output.output_model.model_validate(payload)
    except ValidationError as e:
        return None, f"Command output does not match its schema: {e.error_count()} error(s)"
    return model.model_dump_json(), None
