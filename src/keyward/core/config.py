"""
Configuration schema and loading for keyward.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.
"""

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from keyward.contracts.enums import Network

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


class StateSettings(BaseModel):
    """State store persistence configuration.

    Example YAML:
        state:
          backend: filesystem
          path: ./.keyward/state
    """

    model_config = {"frozen": True}

    backend: Literal["filesystem", "database", "memory"] = Field(
        default="filesystem",
        description="Persistence backend for the state store",
    )
    path: str = Field(
        default=".keyward/state",
        description="Directory for the filesystem backend",
    )
    url: str | None = Field(
        default=None,
        description="SQLAlchemy URL for the database backend",
    )

    @model_validator(mode="after")
    def validate_backend_location(self) -> "StateSettings":
        """The database backend needs a URL."""
        if self.backend == "database" and not self.url:
            raise ValueError("state.url is required when backend is 'database'")
        return self


class LoggingSettings(BaseModel):
    """Logging configuration."""

    model_config = {"frozen": True}

    level: str = Field(default="WARNING", description="Minimum log level")
    json_output: bool = Field(default=False, description="Emit JSON log lines")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Level must be a standard logging level name."""
        upper = v.upper()
        if upper not in _LOG_LEVELS:
            raise ValueError(
                f"Invalid log level '{v}'. Valid levels: {sorted(_LOG_LEVELS)}"
            )
        return upper


class PluginSettings(BaseModel):
    """Which discovered plugins to load."""

    model_config = {"frozen": True}

    disabled: list[str] = Field(
        default_factory=list,
        description="Plugin names to skip during load",
    )
    load_entry_points: bool = Field(
        default=True,
        description="Also load plugins advertised via the keyward.plugins entry point group",
    )


class OperatorSettings(BaseModel):
    """Default signer bootstrapped into the vault for one network."""

    model_config = {"frozen": True}

    account_id: str = Field(description="Operator account id, e.g. 0.0.1234")
    private_key: str = Field(description="Hex-encoded private key", repr=False)
    key_algorithm: Literal["ecdsa", "ed25519"] = "ecdsa"


class KeywardSettings(BaseModel):
    """Top-level keyward configuration."""

    model_config = {"frozen": True}

    network: Network = Field(
        default=Network.TESTNET,
        description="Network commands operate against",
    )
    state: StateSettings = Field(default_factory=StateSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    plugins: PluginSettings = Field(default_factory=PluginSettings)
    operators: dict[Network, OperatorSettings] = Field(
        default_factory=dict,
        description="Per-network operators imported into the vault at startup",
    )


def load_settings(config_path: Path) -> KeywardSettings:
    """Load settings from YAML file with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (KEYWARD_*) - highest priority
    2. Config file (settings.yaml)
    3. Defaults from Pydantic schema - lowest priority

    Environment variable format: KEYWARD_STATE__BACKEND for nested keys.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated KeywardSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Explicit check for file existence (Dynaconf silently accepts missing files)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="KEYWARD",
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    # Dynaconf returns uppercase keys; convert to lowercase for Pydantic
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {
        k.lower(): _lower_keys(v)
        for k, v in dynaconf_settings.as_dict().items()
        if k not in internal_keys
    }
    return KeywardSettings(**raw_config)


def _lower_keys(value: Any) -> Any:
    """Lowercase nested mapping keys coming from environment overrides."""
    if isinstance(value, dict):
        return {str(k).lower(): _lower_keys(v) for k, v in value.items()}
    return value


def resolve_config(settings: KeywardSettings) -> dict[str, Any]:
    """Convert validated settings to a JSON-safe dict for display.

    Operator private keys are redacted.
    """
    resolved = settings.model_dump(mode="json")
    for operator in resolved["operators"].values():
        operator["private_key"] = "***"
    return resolved
