"""Schema-validating namespace façade.

Wraps a NamespacedState with the JSON schema a plugin declared for the
namespace:

- set() validates before writing and raises StateValidationError.
- get()/list()/subscribe() validate what comes back; a stored value that
  no longer matches is logged and treated as absent, so one corrupted
  record cannot crash unrelated listing operations.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from jsonschema import Draft202012Validator

from keyward.contracts.errors import StateValidationError
from keyward.core.logging import get_logger
from keyward.core.state.store import NamespacedState, Unsubscribe

logger = get_logger(__name__)


def schema_errors(validator: Draft202012Validator, value: Any) -> list[str]:
    """Collect validation messages as "path: message" strings."""
    messages = []
    for error in sorted(validator.iter_errors(value), key=lambda e: list(e.path)):
        location = ".".join(str(p) for p in error.path) or "<root>"
        messages.append(f"{location}: {error.message}")
    return messages


class ValidatedNamespace:
    """NamespacedState that enforces a JSON schema on its values."""

    def __init__(self, state: NamespacedState, json_schema: dict[str, Any]) -> None:
        """Bind a façade to a schema.

        Raises:
            jsonschema.SchemaError: If json_schema is not a valid Draft 2020-12 schema
        """
        Draft202012Validator.check_schema(json_schema)
        self._state = state
        self._validator = Draft202012Validator(json_schema)

    def __repr__(self) -> str:
        return f"ValidatedNamespace(namespace={self.namespace!r})"

    @property
    def namespace(self) -> str:
        return self._state.namespace

    @property
    def schema_version(self) -> int | None:
        return self._state.schema_version

    def is_valid(self, value: Any) -> bool:
        """Whether value matches the namespace schema."""
        return self._validator.is_valid(value)

    def get(self, key: str) -> Any | None:
        value = self._state.get(key)
        if value is None:
            return None
        errors = schema_errors(self._validator, value)
        if errors:
            logger.warning(
                "Invalid stored record treated as absent",
                namespace=self.namespace,
                key=key,
                errors=errors,
            )
            return None
        return value

    def set(self, key: str, value: Any) -> None:
        errors = schema_errors(self._validator, value)
        if errors:
            raise StateValidationError(self.namespace, key, errors)
        self._state.set(key, value)

    def delete(self, key: str) -> None:
        self._state.delete(key)

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def list(self) -> list[Any]:
        return self._filter(self._state.list())

    def keys(self) -> list[str]:
        return [key for key in self._state.keys() if self.has(key)]

    def clear(self) -> None:
        self._state.clear()

    def subscribe(self, callback: Callable[[list[Any]], None]) -> Unsubscribe:
        return self._state.subscribe(lambda values: callback(self._filter(values)))

    def _filter(self, values: list[Any]) -> list[Any]:
        valid = [v for v in values if self._validator.is_valid(v)]
        dropped = len(values) - len(valid)
        if dropped:
            logger.warning(
                "Invalid stored records skipped",
                namespace=self.namespace,
                count=dropped,
            )
        return valid
