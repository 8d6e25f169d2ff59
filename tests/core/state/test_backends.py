# tests/core/state/test_backends.py
"""Tests for state persistence backends."""

import json
from pathlib import Path

import pytest


class TestNamespaceNames:
    """Namespace names double as file names."""

    @pytest.mark.parametrize("name", ["accounts", "account-accounts", "vault.v2", "a_b", "0x"])
    def test_valid(self, name: str) -> None:
        from keyward.core.state import validate_namespace_name

        assert validate_namespace_name(name) == name

    @pytest.mark.parametrize("name", ["", "Accounts", "../x", "a/b", "-lead", "with space"])
    def test_invalid(self, name: str) -> None:
        from keyward.core.state import validate_namespace_name

        with pytest.raises(ValueError):
            validate_namespace_name(name)


class TestMemoryStateBackend:
    def test_unknown_namespace_loads_empty(self) -> None:
        from keyward.core.state import MemoryStateBackend

        assert MemoryStateBackend().load("ns") == ({}, None)

    def test_save_then_load(self) -> None:
        from keyward.core.state import MemoryStateBackend

        backend = MemoryStateBackend()
        backend.save("ns", {"b": 1, "a": 2}, 3)

        data, version = backend.load("ns")
        assert list(data) == ["b", "a"]
        assert version == 3
        assert backend.namespaces() == ["ns"]

    def test_satisfies_protocol(self) -> None:
        from keyward.core.state import MemoryStateBackend, StateBackend

        assert isinstance(MemoryStateBackend(), StateBackend)


class TestFilesystemStateBackend:
    """One JSON document per namespace."""

    def test_save_writes_document(self, tmp_path: Path) -> None:
        from keyward.core.state import FilesystemStateBackend

        backend = FilesystemStateBackend(tmp_path)
        backend.save("accounts", {"alice": {"n": 1}}, 1)

        document = json.loads((tmp_path / "accounts-storage.json").read_text())
        assert document == {"version": 1, "data": {"alice": {"n": 1}}}

    def test_load_round_trip(self, tmp_path: Path) -> None:
        from keyward.core.state import FilesystemStateBackend

        backend = FilesystemStateBackend(tmp_path)
        backend.save("accounts", {"z": 1, "a": 2}, None)

        data, version = FilesystemStateBackend(tmp_path).load("accounts")
        assert list(data.items()) == [("z", 1), ("a", 2)]
        assert version is None

    def test_creates_base_directory(self, tmp_path: Path) -> None:
        from keyward.core.state import FilesystemStateBackend

        base = tmp_path / "nested" / "state"
        FilesystemStateBackend(base)

        assert base.is_dir()

    def test_missing_file_loads_empty(self, tmp_path: Path) -> None:
        from keyward.core.state import FilesystemStateBackend

        assert FilesystemStateBackend(tmp_path).load("accounts") == ({}, None)

    def test_corrupt_file_loads_empty(self, tmp_path: Path) -> None:
        from keyward.core.state import FilesystemStateBackend

        (tmp_path / "accounts-storage.json").write_text("{not json")

        assert FilesystemStateBackend(tmp_path).load("accounts") == ({}, None)

    def test_invalid_utf8_loads_empty(self, tmp_path: Path) -> None:
        from keyward.core.state import FilesystemStateBackend

        (tmp_path / "accounts-storage.json").write_bytes(b"\xff\xfe{\"data\": {}}")

        assert FilesystemStateBackend(tmp_path).load("accounts") == ({}, None)

    def test_malformed_document_loads_empty(self, tmp_path: Path) -> None:
        from keyward.core.state import FilesystemStateBackend

        (tmp_path / "accounts-storage.json").write_text('["a", "b"]')

        assert FilesystemStateBackend(tmp_path).load("accounts") == ({}, None)

    def test_no_temp_files_left_behind(self, tmp_path: Path) -> None:
        from keyward.core.state import FilesystemStateBackend

        backend = FilesystemStateBackend(tmp_path)
        backend.save("accounts", {"a": 1}, None)
        backend.save("accounts", {"a": 2}, None)

        assert sorted(p.name for p in tmp_path.iterdir()) == ["accounts-storage.json"]

    def test_namespaces(self, tmp_path: Path) -> None:
        from keyward.core.state import FilesystemStateBackend

        backend = FilesystemStateBackend(tmp_path)
        backend.save("b", {}, None)
        backend.save("a", {"k": 1}, None)

        assert backend.namespaces() == ["a", "b"]

    def test_store_persists_across_instances(self, tmp_path: Path) -> None:
        from keyward.core.state import FilesystemStateBackend, StateStore

        StateStore(FilesystemStateBackend(tmp_path)).set("accounts", "alice", {"n": 1})

        reopened = StateStore(FilesystemStateBackend(tmp_path))
        assert reopened.get("accounts", "alice") == {"n": 1}
