# src/keyward/plugins/surface.py
"""Command surfaces: where bound plugin commands are mounted.

The plugin manager only knows the CommandSurface protocol. The typer
surface turns each CommandSpec into a typer command under its plugin's
group, parses options into the args dict the bound handler expects and
prints the result. It is the only place plugin output reaches a terminal.
"""

import inspect
import json
from collections.abc import Callable
from enum import Enum
from typing import Any, Protocol

import typer

from keyward.contracts.enums import CommandStatus, OptionType
from keyward.contracts.results import CommandExecutionResult
from keyward.plugins.manifest import CommandOption, CommandSpec
from keyward.plugins.templates import OutputTemplate, TemplateError

BoundHandler = Callable[[dict[str, Any]], CommandExecutionResult]


class OutputFormat(str, Enum):
    """How command output is printed."""

    HUMAN = "human"
    JSON = "json"


# Exit codes for command results
EXIT_FAILURE = 1
EXIT_PARTIAL = 2


class CommandSurface(Protocol):
    """Anything the plugin manager can mount commands on."""

    def add_command(
        self,
        group: str,
        group_help: str,
        spec: CommandSpec,
        handler: BoundHandler,
    ) -> None:
        """Mount one bound command under group."""
        ...


_PYTHON_TYPES: dict[OptionType, type] = {
    OptionType.STRING: str,
    OptionType.NUMBER: float,
    OptionType.BOOLEAN: bool,
    OptionType.ARRAY: str,
}


def _option_parameter(option: CommandOption) -> inspect.Parameter:
    """Translate a declared option into a typer-annotated parameter."""
    decls = [f"--{option.name}"]
    if option.short:
        decls.append(f"-{option.short}")

    annotation: Any = _PYTHON_TYPES[option.type]
    help_text = option.description or None
    if option.type == OptionType.ARRAY:
        help_text = f"{help_text} (comma separated)" if help_text else "Comma separated values"

    if option.type == OptionType.BOOLEAN:
        default: Any = typer.Option(bool(option.default), *decls, help=help_text)
    elif option.required:
        default = typer.Option(..., *decls, help=help_text)
    else:
        annotation = annotation | None
        default_value = option.default
        if option.type == OptionType.ARRAY and isinstance(default_value, list):
            default_value = ",".join(str(item) for item in default_value)
        default = typer.Option(default_value, *decls, help=help_text)

    return inspect.Parameter(
        option.param_name,
        inspect.Parameter.KEYWORD_ONLY,
        default=default,
        annotation=annotation,
    )


def _coerce(option: CommandOption, value: Any) -> Any:
    if option.type == OptionType.ARRAY and isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


class TyperCommandSurface:
    """Mounts plugin commands on a typer application.

    Usage:
        surface = TyperCommandSurface(app)
        manager.register_commands(surface)
        surface.output_format = OutputFormat.JSON   # set by the global --format option
    """

    def __init__(self, app: typer.Typer, *, output_format: OutputFormat = OutputFormat.HUMAN) -> None:
        self._app = app
        self._groups: dict[str, typer.Typer] = {}
        self.output_format = output_format

    @property
    def groups(self) -> list[str]:
        return list(self._groups)

    def add_command(
        self,
        group: str,
        group_help: str,
        spec: CommandSpec,
        handler: BoundHandler,
    ) -> None:
        sub_app = self._groups.get(group)
        if sub_app is None:
            sub_app = typer.Typer(help=group_help, no_args_is_help=True)
            self._app.add_typer(sub_app, name=group)
            self._groups[group] = sub_app

        callback = self._build_callback(spec, handler)
        sub_app.command(
            name=spec.name,
            help=spec.description or spec.summary or None,
            short_help=spec.summary or None,
        )(callback)

    def _build_callback(self, spec: CommandSpec, handler: BoundHandler) -> Callable[..., None]:
        parameters = [_option_parameter(option) for option in spec.options]
        options = {option.param_name: option for option in spec.options}

        def callback(**kwargs: Any) -> None:
            args = {name: _coerce(options[name], value) for name, value in kwargs.items()}
            self.emit(spec, handler(args))

        callback.__name__ = spec.name.replace("-", "_")
        callback.__doc__ = spec.description or spec.summary
        callback.__signature__ = inspect.Signature(parameters)  # type: ignore[attr-defined]
        callback.__annotations__ = {p.name: p.annotation for p in parameters}
        return callback

    def emit(self, spec: CommandSpec, result: CommandExecutionResult) -> None:
        """Print a command result and exit non-zero unless it succeeded."""
        if result.output_json is not None:
            typer.echo(self.render(spec, result.output_json))

        if result.status == CommandStatus.FAILURE:
            typer.echo(f"Error: {result.error_message}", err=True)
            raise typer.Exit(EXIT_FAILURE)
        if result.status == CommandStatus.PARTIAL:
            typer.echo(f"Warning: {result.error_message}", err=True)
            raise typer.Exit(EXIT_PARTIAL)

    def render(self, spec: CommandSpec, output_json: str) -> str:
        """Render output in the selected format."""
        output = json.loads(output_json)
        if self.output_format == OutputFormat.JSON:
            return json.dumps(output, indent=2)
        template = spec.output.human_template if spec.output else None
        if template is None:
            return json.dumps(output, indent=2)
        try:
            return OutputTemplate(template).render(output).rstrip("\n")
        except TemplateError as e:
            typer.echo(f"Warning: {e}; showing JSON output", err=True)
            return json.dumps(output, indent=2)
