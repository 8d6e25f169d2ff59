# src/keyward/plugins/__init__.py
"""Plugin system: manifests, capability scoping and command dispatch via pluggy.

- Capabilities: closed token vocabulary and parsed grants
- Manifest: pydantic models describing a plugin
- Context: capability-scoped platform views handed to plugin code
- Manager: registration, lifecycle and dispatch
- Hookspecs/discovery: pluggy hooks that contribute manifests
- Surface: typer adapter that mounts bound commands
"""

# Capabilities
from keyward.plugins.capabilities import (
    Capability,
    CapabilitySet,
    CredentialsUse,
    NamespaceCapability,
    NetworkRead,
    NetworkWrite,
    parse_capability,
)

# Context
from keyward.plugins.context import CommandContext, PluginContext, ScopedPlatform

# Discovery
from keyward.plugins.discovery import collect_manifests, create_hook_manager

# Hookspecs
from keyward.plugins.hookspecs import hookimpl, hookspec

# Manager
from keyward.plugins.manager import PluginManager, RegisteredPlugin

# Manifest
from keyward.plugins.manifest import (
    CommandOption,
    CommandOutputSpec,
    CommandSpec,
    PluginManifest,
    StateSchema,
)

# Surface
from keyward.plugins.surface import CommandSurface, TyperCommandSurface

__all__ = [
    # capabilities
    "Capability",
    "CapabilitySet",
    "CredentialsUse",
    "NamespaceCapability",
    "NetworkRead",
    "NetworkWrite",
    "parse_capability",
    # context
    "CommandContext",
    "PluginContext",
    "ScopedPlatform",
    # discovery
    "collect_manifests",
    "create_hook_manager",
    # hookspecs
    "hookimpl",
    "hookspec",
    # manager
    "PluginManager",
    "RegisteredPlugin",
    # manifest
    "CommandOption",
    "CommandOutputSpec",
    "CommandSpec",
    "PluginManifest",
    "StateSchema",
    # surface
    "CommandSurface",
    "TyperCommandSurface",
]
