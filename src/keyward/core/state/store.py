"""Namespaced key/value state store.

The store is the single shared mutable resource of the platform. Every
namespace is an ordered mapping of key -> JSON-serializable value, loaded
lazily from the backend and written through on every mutation.

Guarantees:
- A single set() is atomic from the caller's point of view: the value is
  serialized before anything changes, and the in-memory copy is replaced
  only after the backend accepted the write.
- Values are copied on the way in and out; callers never alias store
  internals.
- Mutations are last-writer-wins at key level.
- Subscribers are snapshotted before notification. A callback that
  mutates the namespace it is being notified about does not recurse;
  its change is delivered in a follow-up round, bounded by
  MAX_NOTIFY_ROUNDS. A callback that raises is logged and skipped.
"""

from __future__ import annotations

import copy
import json
from collections.abc import Callable
from typing import Any

from keyward.core.logging import get_logger
from keyward.core.state.backends import (
    MemoryStateBackend,
    StateBackend,
    validate_namespace_name,
)

logger = get_logger(__name__)

Subscriber = Callable[[list[Any]], None]
Unsubscribe = Callable[[], None]

# Follow-up notification rounds allowed when callbacks keep mutating the
# namespace they observe.
MAX_NOTIFY_ROUNDS = 16


class _Subscription:
    """A registered callback; deactivated on unsubscribe."""

    __slots__ = ("callback", "active")

    def __init__(self, callback: Subscriber) -> None:
        self.callback = callback
        self.active = True


class StateStore:
    """Process-wide, namespace-partitioned key/value store.

    Usage:
        store = StateStore(FilesystemStateBackend(Path(".keyward/state")))
        store.set("accounts", "alice", {"account_id": "0.0.5"})
        store.get("accounts", "alice")
    """

    def __init__(self, backend: StateBackend | None = None) -> None:
        self._backend: StateBackend = backend if backend is not None else MemoryStateBackend()
        self._data: dict[str, dict[str, Any]] = {}
        self._versions: dict[str, int | None] = {}
        self._subscribers: dict[str, list[_Subscription]] = {}
        self._notifying: set[str] = set()
        self._pending: set[str] = set()

    # === Namespace registry ===

    def register_namespace(self, namespace: str, schema_version: int | None = None) -> None:
        """Declare a namespace and its schema version.

        Loads any persisted data. When the persisted schema version differs
        from the declared one, the declared version is recorded.
        """
        self._load(namespace)
        if schema_version is None or self._versions[namespace] == schema_version:
            return
        previous = self._versions[namespace]
        if previous is not None:
            logger.info(
                "Namespace schema version changed",
                namespace=namespace,
                previous=previous,
                current=schema_version,
            )
        self._backend.save(namespace, self._data[namespace], schema_version)
        self._versions[namespace] = schema_version

    def schema_version(self, namespace: str) -> int | None:
        """Schema version recorded for a namespace, or None if undeclared."""
        self._load(namespace)
        return self._versions[namespace]

    def namespaces(self) -> list[str]:
        """All known namespaces (loaded in this process or persisted)."""
        return sorted(set(self._data) | set(self._backend.namespaces()))

    # === Key/value operations ===

    def get(self, namespace: str, key: str) -> Any | None:
        """Get a copy of the value stored under key, or None if absent."""
        data = self._load(namespace)
        if key not in data:
            return None
        return copy.deepcopy(data[key])

    def set(self, namespace: str, key: str, value: Any) -> None:
        """Store a JSON-serializable value under key.

        Raises:
            TypeError: If value is not JSON-serializable or would read back
                differently, e.g. a tuple or a dict with non-string keys
                (nothing is written)
        """
        data = self._load(namespace)
        try:
            encoded = json.dumps(value, allow_nan=False)
        except (TypeError, ValueError) as e:
            raise TypeError(
                f"Value for '{namespace}/{key}' is not JSON-serializable: {e}"
            ) from e
        stored = json.loads(encoded)
        if stored != value:
            # Tuples and non-string dict keys would come back changed
            raise TypeError(
                f"Value for '{namespace}/{key}' does not survive a JSON round-trip"
            )

        if key in data and data[key] == stored:
            return

        updated = dict(data)
        updated[key] = stored
        self._commit(namespace, updated)
        logger.debug("State key set", namespace=namespace, key=key)

    def delete(self, namespace: str, key: str) -> None:
        """Remove key from namespace. Missing keys are a no-op."""
        data = self._load(namespace)
        if key not in data:
            return
        updated = {k: v for k, v in data.items() if k != key}
        self._commit(namespace, updated)
        logger.debug("State key deleted", namespace=namespace, key=key)

    def has(self, namespace: str, key: str) -> bool:
        """Whether key is present in namespace."""
        return key in self._load(namespace)

    def list(self, namespace: str) -> list[Any]:
        """Copies of all values in namespace, in insertion order."""
        return copy.deepcopy(list(self._load(namespace).values()))

    def keys(self, namespace: str) -> list[str]:
        """All keys in namespace, in insertion order."""
        return list(self._load(namespace))

    def clear(self, namespace: str) -> None:
        """Remove every key in one namespace. Other namespaces are untouched."""
        if not self._load(namespace):
            return
        self._commit(namespace, {})
        logger.debug("State namespace cleared", namespace=namespace)

    # === Subscriptions ===

    def subscribe(self, namespace: str, callback: Subscriber) -> Unsubscribe:
        """Call callback with the full value list after every mutation.

        Returns:
            Function that removes the subscription; calling it more than
            once is harmless.
        """
        self._load(namespace)
        subscription = _Subscription(callback)
        self._subscribers.setdefault(namespace, []).append(subscription)

        def unsubscribe() -> None:
            if not subscription.active:
                return
            subscription.active = False
            self._subscribers[namespace].remove(subscription)

        return unsubscribe

    # === Internals ===

    def _load(self, namespace: str) -> dict[str, Any]:
        if namespace not in self._data:
            validate_namespace_name(namespace)
            data, version = self._backend.load(namespace)
            self._data[namespace] = data
            self._versions[namespace] = version
        return self._data[namespace]

    def _commit(self, namespace: str, updated: dict[str, Any]) -> None:
        # Backend first: if it raises, the in-memory copy is unchanged
        self._backend.save(namespace, updated, self._versions[namespace])
        self._data[namespace] = updated
        self._notify(namespace)

    def _notify(self, namespace: str) -> None:
        if namespace in self._notifying:
            # Reentrant mutation from a callback: deliver in the next round
            self._pending.add(namespace)
            return

        self._notifying.add(namespace)
        try:
            for round_number in range(1, MAX_NOTIFY_ROUNDS + 1):
                self._pending.discard(namespace)
                snapshot = list(self._subscribers.get(namespace, ()))
                for subscription in snapshot:
                    if not subscription.active:
                        continue
                    try:
                        subscription.callback(self.list(namespace))
                    except Exception:
                        # Subscribers are independent; the write is already committed
                        logger.exception("Subscriber callback failed", namespace=namespace)
                if namespace not in self._pending:
                    return
                if round_number == MAX_NOTIFY_ROUNDS:
                    logger.warning(
                        "Subscriber notification rounds exhausted",
                        namespace=namespace,
                        rounds=MAX_NOTIFY_ROUNDS,
                    )
        finally:
            self._pending.discard(namespace)
            self._notifying.discard(namespace)


class NamespacedState:
    """Store façade with the namespace bound at construction.

    Exposes the store's method set without the namespace argument. The
    bound namespace cannot be reassigned; plugins receive these instead of
    the raw store.
    """

    __slots__ = ("_store", "_namespace")

    def __init__(self, store: StateStore, namespace: str) -> None:
        validate_namespace_name(namespace)
        object.__setattr__(self, "_store", store)
        object.__setattr__(self, "_namespace", namespace)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} is read-only")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"{type(self).__name__} is read-only")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(namespace={self._namespace!r})"

    @property
    def namespace(self) -> str:
        """The namespace this façade is bound to."""
        return self._namespace

    @property
    def schema_version(self) -> int | None:
        """Schema version recorded for the bound namespace."""
        return self._store.schema_version(self._namespace)

    def get(self, key: str) -> Any | None:
        return self._store.get(self._namespace, key)

    def set(self, key: str, value: Any) -> None:
        self._store.set(self._namespace, key, value)

    def delete(self, key: str) -> None:
        self._store.delete(self._namespace, key)

    def has(self, key: str) -> bool:
        return self._store.has(self._namespace, key)

    def list(self) -> list[Any]:
        return self._store.list(self._namespace)

    def keys(self) -> list[str]:
        return self._store.keys(self._namespace)

    def clear(self) -> None:
        self._store.clear(self._namespace)

    def subscribe(self, callback: Subscriber) -> Unsubscribe:
        return self._store.subscribe(self._namespace, callback)
