"""
Persistence backends for the state store.

A backend persists one namespace at a time as an ordered mapping of
key -> JSON-serializable value. The store keeps the working copy in memory
and writes through on every mutation, so backends only need whole-namespace
load/save plus a namespace listing.
"""

import json
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from keyward.core.logging import get_logger

logger = get_logger(__name__)

_STORAGE_SUFFIX = "-storage.json"
_NAMESPACE_PATTERN = re.compile(r"^[a-z0-9][a-z0-9._-]*$")


def validate_namespace_name(namespace: str) -> str:
    """Validate a namespace identifier.

    Namespaces double as file names for the filesystem backend, so they are
    restricted to lowercase alphanumerics, dots, underscores and hyphens.

    Raises:
        ValueError: If the name is empty or contains other characters
    """
    if not _NAMESPACE_PATTERN.match(namespace):
        raise ValueError(
            f"Invalid namespace '{namespace}'. Must be lowercase alphanumeric "
            "with '.', '_' or '-' separators."
        )
    return namespace


@runtime_checkable
class StateBackend(Protocol):
    """Protocol for state persistence backends."""

    def load(self, namespace: str) -> tuple[dict[str, Any], int | None]:
        """Load a namespace.

        Args:
            namespace: Namespace name

        Returns:
            (ordered key -> value mapping, stored schema version or None).
            Unknown namespaces load as ({}, None).
        """
        ...

    def save(
        self,
        namespace: str,
        data: dict[str, Any],
        schema_version: int | None,
    ) -> None:
        """Persist the full contents of a namespace, replacing what was stored."""
        ...

    def namespaces(self) -> list[str]:
        """Names of namespaces that have persisted data."""
        ...


class MemoryStateBackend:
    """Backend that keeps everything in process memory.

    Used by tests and by the `memory` state backend setting. Values are
    stored as JSON text so that nothing the caller holds aliases the
    persisted copy.
    """

    def __init__(self) -> None:
        self._data: dict[str, tuple[str, int | None]] = {}

    def load(self, namespace: str) -> tuple[dict[str, Any], int | None]:
        if namespace not in self._data:
            return {}, None
        payload, version = self._data[namespace]
        return json.loads(payload), version

    def save(
        self,
        namespace: str,
        data: dict[str, Any],
        schema_version: int | None,
    ) -> None:
        self._data[namespace] = (json.dumps(data), schema_version)

    def namespaces(self) -> list[str]:
        return list(self._data)


class FilesystemStateBackend:
    """Backend storing one JSON document per namespace.

    Structure: base_path/<namespace>-storage.json containing
    {"version": <schema version>, "data": {key: value, ...}}

    Writes go to a temporary file in the same directory followed by
    os.replace, so a crash never leaves a half-written namespace file.
    """

    def __init__(self, base_path: Path) -> None:
        """Initialize filesystem backend.

        Args:
            base_path: Directory holding the namespace files
        """
        self.base_path = base_path
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _path_for(self, namespace: str) -> Path:
        return self.base_path / f"{validate_namespace_name(namespace)}{_STORAGE_SUFFIX}"

    def load(self, namespace: str) -> tuple[dict[str, Any], int | None]:
        path = self._path_for(namespace)
        if not path.exists():
            return {}, None
        try:
            document = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            # A corrupt namespace file must not take the whole CLI down;
            # the namespace loads empty and the next write replaces it.
            logger.error("Unreadable state file", path=str(path), error=str(e))
            return {}, None
        if not isinstance(document, dict) or not isinstance(document.get("data"), dict):
            logger.error("Malformed state file", path=str(path))
            return {}, None
        return document["data"], document.get("version")

    def save(
        self,
        namespace: str,
        data: dict[str, Any],
        schema_version: int | None,
    ) -> None:
        path = self._path_for(namespace)
        document = json.dumps({"version": schema_version, "data": data}, indent=2)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.base_path, prefix=f".{namespace}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(document)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Saved namespace", namespace=namespace, path=str(path))

    def namespaces(self) -> list[str]:
        return sorted(
            p.name[: -len(_STORAGE_SUFFIX)]
            for p in self.base_path.glob(f"*{_STORAGE_SUFFIX}")
        )
