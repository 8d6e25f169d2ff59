# tests/conftest.py
"""Shared test fixtures and helpers.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/
"""

import os
from typing import Any

import pytest
from hypothesis import Phase, Verbosity, settings

from keyward.core.logging import configure_logging
from keyward.core.platform import Platform

# =============================================================================
# Hypothesis Configuration
# =============================================================================

# CI profile: Fast tests for continuous integration
settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

# Nightly profile: Thorough testing for scheduled runs
settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Debug profile: Minimal examples with verbose output for debugging
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Load profile from environment, default to "ci"
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))

# Logs go to the process stderr, never into CliRunner output
configure_logging("WARNING")

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def _reset_logging() -> Any:
    """Re-point logging at the process stderr after CLI tests reconfigure it."""
    configure_logging("WARNING")
    yield
    configure_logging("WARNING")


@pytest.fixture
def platform() -> Platform:
    """Fresh in-memory platform on testnet."""
    return Platform.in_memory()


NOTES_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "title": {"type": "string", "minLength": 1},
        "body": {"type": "string"},
    },
    "required": ["title"],
    "additionalProperties": False,
}


def _noop(ctx: Any) -> None:
    return None


def make_manifest(**overrides: Any) -> dict[str, Any]:
    """Valid manifest mapping for a 'notes' plugin, with overrides applied."""
    manifest: dict[str, Any] = {
        "name": "notes",
        "version": "1.0.0",
        "capabilities": ["state:namespace:notes"],
        "state_schemas": [{"namespace": "notes", "version": 1, "json_schema": NOTES_SCHEMA}],
        "commands": [{"name": "show", "handler": _noop}],
    }
    manifest.update(overrides)
    return manifest


@pytest.fixture
def manifest_factory() -> Any:
    """Build manifest mappings: manifest_factory(name="other", ...)."""
    return make_manifest
