# tests/core/test_config.py
"""Tests for configuration schema and loading."""

from pathlib import Path

import pytest
from pydantic import ValidationError


class TestStateSettings:
    """State backend configuration validation."""

    def test_defaults(self) -> None:
        from keyward.core.config import StateSettings

        settings = StateSettings()
        assert settings.backend == "filesystem"
        assert settings.path == ".keyward/state"
        assert settings.url is None

    def test_database_requires_url(self) -> None:
        from keyward.core.config import StateSettings

        with pytest.raises(ValidationError, match="state.url"):
            StateSettings(backend="database")

    def test_database_with_url(self) -> None:
        from keyward.core.config import StateSettings

        settings = StateSettings(backend="database", url="sqlite:///state.db")
        assert settings.url == "sqlite:///state.db"

    def test_unknown_backend_rejected(self) -> None:
        from keyward.core.config import StateSettings

        with pytest.raises(ValidationError):
            StateSettings(backend="redis")  # type: ignore[arg-type]

    def test_settings_are_frozen(self) -> None:
        from keyward.core.config import StateSettings

        settings = StateSettings()
        with pytest.raises(ValidationError):
            settings.path = "/tmp/other"  # type: ignore[misc]


class TestLoggingSettings:
    def test_level_normalized(self) -> None:
        from keyward.core.config import LoggingSettings

        assert LoggingSettings(level="debug").level == "DEBUG"

    def test_invalid_level_rejected(self) -> None:
        from keyward.core.config import LoggingSettings

        with pytest.raises(ValidationError, match="Invalid log level"):
            LoggingSettings(level="LOUD")


class TestKeywardSettings:
    """Top-level settings validation."""

    def test_defaults(self) -> None:
        from keyward.contracts.enums import Network
        from keyward.core.config import KeywardSettings

        settings = KeywardSettings()
        assert settings.network == Network.TESTNET
        assert settings.operators == {}
        assert settings.plugins.disabled == []
        assert settings.plugins.load_entry_points is True

    def test_operators_keyed_by_network(self) -> None:
        from keyward.contracts.enums import Network
        from keyward.core.config import KeywardSettings

        settings = KeywardSettings(
            operators={"mainnet": {"account_id": "0.0.2", "private_key": "11" * 32}},
        )
        assert settings.operators[Network.MAINNET].account_id == "0.0.2"
        assert settings.operators[Network.MAINNET].key_algorithm == "ecdsa"

    def test_unknown_network_rejected(self) -> None:
        from keyward.core.config import KeywardSettings

        with pytest.raises(ValidationError):
            KeywardSettings(network="devnet")  # type: ignore[arg-type]

    def test_operator_key_hidden_from_repr(self) -> None:
        from keyward.core.config import OperatorSettings

        operator = OperatorSettings(account_id="0.0.2", private_key="11" * 32)
        assert "11" * 32 not in repr(operator)


class TestLoadSettings:
    """Test Dynaconf-based settings loading."""

    def test_load_from_yaml_file(self, tmp_path: Path) -> None:
        from keyward.contracts.enums import Network
        from keyward.core.config import load_settings

        config_file = tmp_path / "keyward.yaml"
        config_file.write_text("""
network: mainnet
state:
  backend: memory
logging:
  level: info
plugins:
  disabled: [account]
operators:
  mainnet:
    account_id: "0.0.2"
    private_key: "1111111111111111111111111111111111111111111111111111111111111111"
""")
        settings = load_settings(config_file)
        assert settings.network == Network.MAINNET
        assert settings.state.backend == "memory"
        assert settings.logging.level == "INFO"
        assert settings.plugins.disabled == ["account"]
        assert settings.operators[Network.MAINNET].account_id == "0.0.2"

    def test_load_with_env_override(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        from keyward.core.config import load_settings

        config_file = tmp_path / "keyward.yaml"
        config_file.write_text("""
state:
  backend: filesystem
  path: ./original
""")
        # Environment variable should override YAML
        monkeypatch.setenv("KEYWARD_STATE__PATH", "./from_env")

        settings = load_settings(config_file)
        assert settings.state.path == "./from_env"
        assert settings.state.backend == "filesystem"

    def test_load_validates_schema(self, tmp_path: Path) -> None:
        from keyward.core.config import load_settings

        config_file = tmp_path / "keyward.yaml"
        config_file.write_text("""
state:
  backend: database
""")
        with pytest.raises(ValidationError):
            load_settings(config_file)

    def test_missing_file(self, tmp_path: Path) -> None:
        from keyward.core.config import load_settings

        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "nope.yaml")


class TestResolveConfig:
    def test_private_keys_redacted(self) -> None:
        from keyward.core.config import KeywardSettings, resolve_config

        settings = KeywardSettings(
            operators={"testnet": {"account_id": "0.0.2", "private_key": "11" * 32}},
        )
        resolved = resolve_config(settings)

        assert resolved["operators"]["testnet"]["private_key"] == "***"
        assert resolved["operators"]["testnet"]["account_id"] == "0.0.2"
        assert "11" * 32 not in str(resolved)

    def test_json_safe(self) -> None:
        import json

        from keyward.core.config import KeywardSettings, resolve_config

        resolved = resolve_config(KeywardSettings())
        assert json.loads(json.dumps(resolved)) == resolved
        assert resolved["network"] == "testnet"
