"""Hook implementation for built-in plugins."""

from typing import Any

from keyward.plugins.hookspecs import hookimpl


class KeywardBuiltinManifests:
    """Hook implementer for built-in plugin manifests."""

    @hookimpl
    def keyward_get_manifests(self) -> list[Any]:
        """Return built-in plugin manifests."""
        from keyward.plugins.builtin.account import ACCOUNT_MANIFEST
        from keyward.plugins.builtin.credentials import CREDENTIALS_MANIFEST
        from keyward.plugins.builtin.network import NETWORK_MANIFEST

        return [CREDENTIALS_MANIFEST, ACCOUNT_MANIFEST, NETWORK_MANIFEST]


# Singleton instance for registration
builtin_manifests = KeywardBuiltinManifests()
