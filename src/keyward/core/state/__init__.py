"""State store: namespaced persistence shared by the core and plugins."""

from keyward.core.state.backends import (
    FilesystemStateBackend,
    MemoryStateBackend,
    StateBackend,
    validate_namespace_name,
)
from keyward.core.state.database import DatabaseStateBackend
from keyward.core.state.store import MAX_NOTIFY_ROUNDS, NamespacedState, StateStore
from keyward.core.state.validated import ValidatedNamespace

__all__ = [
    "DatabaseStateBackend",
    "FilesystemStateBackend",
    "MAX_NOTIFY_ROUNDS",
    "MemoryStateBackend",
    "NamespacedState",
    "StateBackend",
    "StateStore",
    "ValidatedNamespace",
    "validate_namespace_name",
]
