# tests/core/state/test_database.py
"""Tests for the SQLAlchemy-backed state backend."""

from pathlib import Path


class TestDatabaseStateBackend:
    """Rows per (namespace, key) with explicit ordering."""

    def test_unknown_namespace_loads_empty(self) -> None:
        from keyward.core.state import DatabaseStateBackend

        backend = DatabaseStateBackend.in_memory()

        assert backend.load("ns") == ({}, None)

    def test_save_then_load_keeps_order(self) -> None:
        from keyward.core.state import DatabaseStateBackend

        backend = DatabaseStateBackend.in_memory()
        backend.save("ns", {"zeta": {"n": 1}, "alpha": [1, 2], "mid": "x"}, 2)

        data, version = backend.load("ns")
        assert list(data.items()) == [("zeta", {"n": 1}), ("alpha", [1, 2]), ("mid", "x")]
        assert version == 2

    def test_save_replaces_namespace(self) -> None:
        from keyward.core.state import DatabaseStateBackend

        backend = DatabaseStateBackend.in_memory()
        backend.save("ns", {"a": 1, "b": 2}, 1)
        backend.save("ns", {"b": 3}, 1)

        assert backend.load("ns") == ({"b": 3}, 1)

    def test_empty_namespace_still_recorded(self) -> None:
        from keyward.core.state import DatabaseStateBackend

        backend = DatabaseStateBackend.in_memory()
        backend.save("ns", {"a": 1}, 4)
        backend.save("ns", {}, 4)

        assert backend.load("ns") == ({}, 4)
        assert backend.namespaces() == ["ns"]

    def test_namespaces_are_isolated(self) -> None:
        from keyward.core.state import DatabaseStateBackend

        backend = DatabaseStateBackend.in_memory()
        backend.save("a", {"k": 1}, None)
        backend.save("b", {"k": 2}, None)

        assert backend.load("a") == ({"k": 1}, None)
        assert backend.namespaces() == ["a", "b"]

    def test_from_url_sqlite_file(self, tmp_path: Path) -> None:
        from keyward.core.state import DatabaseStateBackend, StateStore

        url = f"sqlite:///{tmp_path / 'state.db'}"
        first = DatabaseStateBackend.from_url(url)
        StateStore(first).set("accounts", "alice", {"n": 1})
        first.close()

        second = DatabaseStateBackend.from_url(url)
        try:
            assert StateStore(second).get("accounts", "alice") == {"n": 1}
        finally:
            second.close()
