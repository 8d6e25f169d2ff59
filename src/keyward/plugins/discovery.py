# src/keyward/plugins/discovery.py
"""Manifest collection through pluggy.

Built-in plugins are registered directly; third-party packages are found
through the ``keyward.plugins`` entry point group. Validation is left to
the PluginManager so rejected manifests show up in its load report.
"""

from collections.abc import Iterable, Mapping
from typing import Any

import pluggy

from keyward.core.logging import get_logger
from keyward.plugins.hookspecs import ENTRY_POINT_GROUP, PROJECT_NAME, KeywardManifestSpec
from keyward.plugins.manifest import PluginManifest

logger = get_logger(__name__)


def create_hook_manager(*, builtin: bool = True, load_entry_points: bool = True) -> pluggy.PluginManager:
    """Build a pluggy manager with manifest providers registered."""
    pm = pluggy.PluginManager(PROJECT_NAME)
    pm.add_hookspecs(KeywardManifestSpec)
    if builtin:
        from keyward.plugins.builtin.hookimpl import builtin_manifests

        pm.register(builtin_manifests)
    if load_entry_points:
        loaded = pm.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
        if loaded:
            logger.debug("Loaded plugin entry points", count=loaded)
    return pm


def _manifest_name(manifest: PluginManifest | Mapping[str, Any]) -> Any:
    if isinstance(manifest, PluginManifest):
        return manifest.name
    return manifest.get("name")


def collect_manifests(
    pm: pluggy.PluginManager | None = None,
    *,
    disabled: Iterable[str] = (),
) -> list[PluginManifest | Mapping[str, Any]]:
    """Gather manifests from every registered provider.

    Args:
        pm: Hook manager; defaults to built-ins plus entry points
        disabled: Plugin names to leave out

    Returns:
        Manifests in provider registration order
    """
    if pm is None:
        pm = create_hook_manager()
    skip = set(disabled)
    manifests: list[PluginManifest | Mapping[str, Any]] = []
    # pluggy calls implementations last-registered-first; restore registration order
    for provided in reversed(pm.hook.keyward_get_manifests()):
        for manifest in provided:
            name = _manifest_name(manifest)
            if name in skip:
                logger.info("Plugin disabled by settings", plugin=name)
                continue
            manifests.append(manifest)
    return manifests
