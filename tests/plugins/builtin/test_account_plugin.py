# tests/plugins/builtin/test_account_plugin.py
"""Tests for the built-in account plugin."""

import json
from typing import Any

import pytest

ECDSA_KEY = "11" * 32
ECDSA_KEY_2 = "22" * 32


class FakeLedger:
    """Ledger query stub returning a fixed balance."""

    async def get_balance(self, entity_id: str) -> dict[str, Any]:
        return {"account": entity_id, "hbars": 100}

    async def get_entity(self, entity_id: str) -> dict[str, Any] | None:
        return None

    async def get_messages(self, topic_id: str) -> list[dict[str, Any]]:
        return []


@pytest.fixture
def manager(platform: Any) -> Any:
    from keyward.plugins.builtin.account import ACCOUNT_MANIFEST
    from keyward.plugins.manager import PluginManager

    manager = PluginManager(platform)
    manager.register(ACCOUNT_MANIFEST)
    assert manager.initialize_all() == []
    return manager


def _run(manager: Any, command: str, **args: Any) -> Any:
    result = manager.dispatch("account", command, args)
    return result, json.loads(result.output_json) if result.output_json else None


def _import(manager: Any, name: str = "alice", account_id: str = "0.0.5", key: str = ECDSA_KEY) -> Any:
    return _run(manager, "import", name=name, id=account_id, key=key)


class TestImport:
    def test_import_stores_account_key_and_alias(self, manager: Any, platform: Any) -> None:
        from keyward.contracts.enums import AliasType, Network

        result, output = _import(manager)

        assert result.ok, result.error_message
        assert output["name"] == "alice"
        assert output["network"] == "testnet"
        stored = platform.store.get("account-accounts", "alice")
        assert stored["key_ref_id"] == output["key_ref_id"]
        assert ECDSA_KEY not in json.dumps(stored)
        alias = platform.aliases.resolve("alice", AliasType.ACCOUNT, Network.TESTNET)
        assert alias.entity_id == "0.0.5"
        assert alias.key_ref_id == output["key_ref_id"]
        assert platform.vault.get_record(output["key_ref_id"]).labels == ("account:alice",)

    def test_duplicate_name_fails(self, manager: Any) -> None:
        _import(manager)

        result, _ = _import(manager, account_id="0.0.6", key=ECDSA_KEY_2)

        assert not result.ok
        assert "already exists" in result.error_message

    def test_alias_taken_by_other_type_fails(self, manager: Any, platform: Any) -> None:
        from keyward.contracts.enums import AliasType, Network
        from keyward.contracts.records import AliasRecord

        platform.aliases.register(
            AliasRecord(alias="alice", network=Network.TESTNET, type=AliasType.TOKEN, entity_id="0.0.77")
        )

        result, _ = _import(manager)

        assert not result.ok
        assert "token" in result.error_message
        assert platform.vault.list() == []

    @pytest.mark.parametrize(
        ("name", "account_id", "message"),
        [
            ("bad name", "0.0.5", "letters, digits"),
            ("alice", "5", "0.0.1234"),
            ("alice", "0.0.x", "0.0.1234"),
        ],
    )
    def test_invalid_input_stores_nothing(
        self, manager: Any, platform: Any, name: str, account_id: str, message: str
    ) -> None:
        result, _ = _import(manager, name=name, account_id=account_id)

        assert not result.ok
        assert message in result.error_message
        assert platform.vault.list() == []
        assert platform.aliases.list() == []

    def test_same_name_on_two_networks(self, manager: Any, platform: Any) -> None:
        """bob on testnet and bob on mainnet resolve independently."""
        from keyward.contracts.enums import AliasType, Network

        _import(manager, name="bob", account_id="0.0.5")
        platform.settings = platform.settings.model_copy(update={"network": Network.MAINNET})
        result, _ = _import(manager, name="bob-main", account_id="0.0.900", key=ECDSA_KEY_2)
        assert result.ok

        platform.aliases.register(
            platform.aliases.resolve("bob-main", AliasType.ACCOUNT, Network.MAINNET).model_copy(
                update={"alias": "bob"}
            )
        )

        assert platform.aliases.resolve("bob", AliasType.ACCOUNT, Network.TESTNET).entity_id == "0.0.5"
        assert platform.aliases.resolve("bob", AliasType.ACCOUNT, Network.MAINNET).entity_id == "0.0.900"


class TestListAndView:
    def test_list_hides_key_refs_by_default(self, manager: Any) -> None:
        _import(manager)
        _import(manager, name="bob", account_id="0.0.6", key=ECDSA_KEY_2)

        _, listing = _run(manager, "list")

        assert listing["count"] == 2
        assert [a["name"] for a in listing["accounts"]] == ["alice", "bob"]
        assert all(a["key_ref_id"] is None for a in listing["accounts"])

    def test_list_private(self, manager: Any) -> None:
        _import(manager)

        _, listing = _run(manager, "list", private=True)

        assert listing["accounts"][0]["key_ref_id"].startswith("kr_")

    def test_view_by_name_and_id(self, manager: Any) -> None:
        _import(manager)

        _, by_name = _run(manager, "view", account_id_or_name="alice")
        _, by_id = _run(manager, "view", account_id_or_name="0.0.5")

        assert by_name == by_id
        assert by_name["balance"] is None

    def test_view_includes_balance_with_ledger(self, manager: Any, platform: Any) -> None:
        _import(manager)
        platform.ledger = FakeLedger()

        _, viewed = _run(manager, "view", account_id_or_name="alice")

        assert viewed["balance"] == {"account": "0.0.5", "hbars": 100}

    def test_view_unknown(self, manager: Any) -> None:
        result, _ = _run(manager, "view", account_id_or_name="ghost")

        assert not result.ok
        assert "ghost" in result.error_message


class TestDelete:
    def test_delete_by_name_removes_everything(self, manager: Any, platform: Any) -> None:
        _, imported = _import(manager)

        result, _ = _run(manager, "delete", name="alice")

        assert result.ok
        assert platform.store.get("account-accounts", "alice") is None
        assert platform.aliases.list() == []
        assert platform.vault.get_record(imported["key_ref_id"]) is None

    def test_delete_by_id(self, manager: Any, platform: Any) -> None:
        _import(manager)

        result, deleted = _run(manager, "delete", id="0.0.5")

        assert result.ok
        assert deleted["name"] == "alice"
        assert platform.store.keys("account-accounts") == []

    def test_delete_requires_name_or_id(self, manager: Any) -> None:
        result, _ = _run(manager, "delete")

        assert "--name or --id" in result.error_message

    def test_delete_unknown(self, manager: Any) -> None:
        result, _ = _run(manager, "delete", name="ghost")

        assert not result.ok

    def test_key_shared_with_operator_kept(self, manager: Any, platform: Any) -> None:
        from keyward.contracts.enums import Network
        from keyward.contracts.records import OperatorMapping

        _, imported = _import(manager)
        platform.vault.set_operator(
            Network.TESTNET, OperatorMapping(account_id="0.0.5", key_ref_id=imported["key_ref_id"])
        )

        _run(manager, "delete", name="alice")

        assert platform.vault.get_record(imported["key_ref_id"]) is not None

    def test_key_shared_between_accounts_kept_until_last(self, manager: Any, platform: Any) -> None:
        _, first = _import(manager, name="alice")
        _, second = _import(manager, name="alice-alt", account_id="0.0.6")
        assert first["key_ref_id"] == second["key_ref_id"]

        _run(manager, "delete", name="alice")
        assert platform.vault.get_record(first["key_ref_id"]) is not None

        _run(manager, "delete", name="alice-alt")
        assert platform.vault.get_record(first["key_ref_id"]) is None


class TestClear:
    def test_clear_removes_all(self, manager: Any, platform: Any) -> None:
        _import(manager)
        _import(manager, name="bob", account_id="0.0.6", key=ECDSA_KEY_2)

        _, output = _run(manager, "clear")

        assert output == {"removed": 2}
        assert platform.store.keys("account-accounts") == []
        assert platform.vault.list() == []
        assert platform.aliases.list() == []
