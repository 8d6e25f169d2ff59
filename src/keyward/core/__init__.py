"""Core services: state store, credential vault, alias registry, configuration."""

from keyward.core.aliases import ALIASES_NAMESPACE, AliasRegistry, parse_ref
from keyward.core.config import KeywardSettings, load_settings, resolve_config
from keyward.core.platform import Platform, build_platform

__all__ = [
    "ALIASES_NAMESPACE",
    "AliasRegistry",
    "KeywardSettings",
    "Platform",
    "build_platform",
    "load_settings",
    "parse_ref",
    "resolve_config",
]
