# src/keyward/plugins/hookspecs.py
"""pluggy hook specifications for keyward plugins.

Plugin packages contribute manifests through these hooks, either as
built-ins or via the ``keyward.plugins`` entry point group.

Usage (implementing a plugin package):
    from keyward.plugins.hookspecs import hookimpl

    class MyPlugins:
        @hookimpl  # NOT @hookspec - that's for defining specs
        def keyward_get_manifests(self):
            return [MY_MANIFEST]

Note: @hookspec defines the hook interface (done here).
      @hookimpl marks plugin implementations of those hooks.
"""

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from keyward.plugins.manifest import PluginManifest

# Project name for pluggy
PROJECT_NAME = "keyward"

# Entry point group scanned for third-party plugin packages
ENTRY_POINT_GROUP = "keyward.plugins"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)

hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class KeywardManifestSpec:
    """Hook specifications for manifest providers."""

    @hookspec
    def keyward_get_manifests(self) -> list["PluginManifest"]:  # type: ignore[empty-body]
        """Return plugin manifests.

        Returns:
            List of PluginManifest instances (or plain mappings)
        """
