# src/keyward/plugins/manifest.py
"""Plugin manifest models.

A manifest is the complete, declarative description of a plugin: its
identity, the capabilities it asks for, the state namespaces it owns and
the commands it contributes. Manifests arrive in hand (built in Python or
returned by a pluggy hook); nothing here touches the filesystem.

Example:
    manifest = PluginManifest.from_dict({
        "name": "topic",
        "version": "1.0.0",
        "capabilities": ["state:namespace:topics", "network:read"],
        "state_schemas": [{"namespace": "topics", "version": 1, "json_schema": {...}}],
        "commands": [{"name": "list", "handler": list_topics}],
    })
"""

from collections.abc import Callable
from typing import Any, Self

from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from keyward.contracts.enums import OptionType, StateScope
from keyward.contracts.errors import CapabilityError, ManifestValidationError
from keyward.plugins.capabilities import parse_capability
from keyward.plugins.templates import OutputTemplate, TemplateError

_FROZEN = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

PLUGIN_NAME_PATTERN = r"^[a-z][a-z0-9]*(-[a-z0-9]+)*$"
SEMVER_PATTERN = r"^\d+\.\d+\.\d+$"
OPTION_NAME_PATTERN = r"^[a-z][a-z0-9]*(-[a-z0-9]+)*$"


class CommandOption(BaseModel):
    """A declared command-line option."""

    model_config = _FROZEN

    name: str = Field(pattern=OPTION_NAME_PATTERN)
    type: OptionType = OptionType.STRING
    required: bool = False
    default: Any = None
    description: str = ""
    short: str | None = Field(default=None, pattern=r"^[a-zA-Z]$")

    @model_validator(mode="after")
    def validate_required_default(self) -> Self:
        if self.required and self.default is not None:
            raise ValueError(f"option '{self.name}' is required and cannot have a default")
        return self

    @property
    def param_name(self) -> str:
        """Python identifier used for the parsed value."""
        return self.name.replace("-", "_")


class CommandOutputSpec(BaseModel):
    """Output contract of a command: pydantic model plus optional human template."""

    model_config = _FROZEN

    output_model: type[BaseModel]
    human_template: str | None = None

    @field_validator("human_template")
    @classmethod
    def validate_template(cls, v: str | None) -> str | None:
        if v is not None:
            try:
                OutputTemplate(v)
            except TemplateError as e:
                raise ValueError(str(e)) from e
        return v


class CommandSpec(BaseModel):
    """A command contributed by a plugin. Immutable once registered."""

    model_config = _FROZEN

    name: str = Field(pattern=OPTION_NAME_PATTERN)
    summary: str = ""
    description: str = ""
    options: tuple[CommandOption, ...] = ()
    handler: Callable[..., Any]
    output: CommandOutputSpec | None = None

    @field_validator("options")
    @classmethod
    def validate_unique_options(cls, v: tuple[CommandOption, ...]) -> tuple[CommandOption, ...]:
        seen: set[str] = set()
        shorts: set[str] = set()
        for option in v:
            if option.param_name in seen:
                raise ValueError(f"duplicate option '{option.name}'")
            seen.add(option.param_name)
            if option.short is not None:
                if option.short in shorts:
                    raise ValueError(f"duplicate short flag '-{option.short}'")
                shorts.add(option.short)
        return v


class StateSchema(BaseModel):
    """JSON schema governing one state namespace."""

    model_config = _FROZEN

    namespace: str = Field(pattern=r"^[a-z0-9][a-z0-9._-]*$")
    version: int = Field(ge=1)
    json_schema: dict[str, Any]
    scope: StateScope = StateScope.PROFILE

    @field_validator("json_schema")
    @classmethod
    def validate_json_schema(cls, v: dict[str, Any]) -> dict[str, Any]:
        try:
            Draft202012Validator.check_schema(v)
        except SchemaError as e:
            raise ValueError(f"invalid JSON schema: {e.message}") from e
        return v


class PluginManifest(BaseModel):
    """Declarative description of a plugin."""

    model_config = _FROZEN

    name: str = Field(pattern=PLUGIN_NAME_PATTERN)
    version: str = Field(pattern=SEMVER_PATTERN)
    display_name: str = ""
    description: str = ""
    cli_group: str | None = Field(default=None, pattern=PLUGIN_NAME_PATTERN)
    capabilities: tuple[str, ...] = ()
    commands: tuple[CommandSpec, ...] = ()
    state_schemas: tuple[StateSchema, ...] = ()
    init: Callable[..., Any] | None = None
    teardown: Callable[..., Any] | None = None

    @field_validator("capabilities")
    @classmethod
    def validate_capability_tokens(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Unknown tokens fail here (CapabilityError is a ValueError)."""
        for token in v:
            parse_capability(token)
        return v

    @model_validator(mode="after")
    def validate_unique_names(self) -> Self:
        commands = [command.name for command in self.commands]
        duplicates = sorted({name for name in commands if commands.count(name) > 1})
        if duplicates:
            raise ValueError(f"duplicate command names: {', '.join(duplicates)}")
        namespaces = [schema.namespace for schema in self.state_schemas]
        duplicates = sorted({ns for ns in namespaces if namespaces.count(ns) > 1})
        if duplicates:
            raise ValueError(f"duplicate state schemas: {', '.join(duplicates)}")
        return self

    @property
    def group(self) -> str:
        """CLI group the commands are mounted under."""
        return self.cli_group or self.name

    @property
    def title(self) -> str:
        return self.display_name or self.name

    def schema_for(self, namespace: str) -> StateSchema | None:
        for schema in self.state_schemas:
            if schema.namespace == namespace:
                return schema
        return None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create a manifest from a plain mapping.

        Raises:
            ManifestValidationError: If the mapping is not a valid manifest
        """
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            name = data.get("name") if isinstance(data.get("name"), str) else None
            raise ManifestValidationError(
                name,
                "; ".join(_format_error(error) for error in e.errors()),
                token=_offending_token(e),
            ) from e


def _format_error(error: Any) -> str:
    loc = ".".join(str(part) for part in error["loc"])
    return f"{loc}: {error['msg']}" if loc else error["msg"]


def _offending_token(error: ValidationError) -> str | None:
    for detail in error.errors():
        cause = detail.get("ctx", {}).get("error")
        if isinstance(cause, CapabilityError):
            return cause.token
    return None
