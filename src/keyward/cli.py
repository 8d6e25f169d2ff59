# src/keyward/cli.py
"""keyward Command Line Interface.

Entry point for the keyward CLI tool. Plugin commands are mounted per
plugin group at startup; the settings file therefore has to be known
before arguments are parsed, so --settings is read ahead of typer.
"""

import json
import os
import sys
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import typer
from pydantic import ValidationError

from keyward import __version__
from keyward.contracts.enums import Network
from keyward.contracts.errors import CommandCollisionError, KeywardError
from keyward.core.config import KeywardSettings, load_settings, resolve_config
from keyward.core.logging import configure_logging
from keyward.core.platform import Platform, build_platform
from keyward.plugins.discovery import collect_manifests, create_hook_manager
from keyward.plugins.manager import PluginManager
from keyward.plugins.manifest import PluginManifest
from keyward.plugins.surface import OutputFormat, TyperCommandSurface

DEFAULT_SETTINGS_FILE = "keyward.yaml"
SETTINGS_ENV_VAR = "KEYWARD_SETTINGS"

# Global options that consume the following argument
_VALUE_OPTIONS = frozenset({"--network", "-N", "--format", "-f"})


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"keyward version {__version__}")
        raise typer.Exit()


def create_app(
    platform: Platform,
    manifests: Iterable[PluginManifest | Mapping[str, Any]],
) -> typer.Typer:
    """Build the typer application with plugin commands mounted.

    Raises:
        CommandCollisionError: If two plugins claim the same command path
    """
    app = typer.Typer(
        name="keyward",
        help="keyward: plugin platform for ledger accounts, keys and aliases.",
        no_args_is_help=True,
    )
    manager = PluginManager(platform)
    report = manager.register_all(manifests)
    for rejected in report.rejected:
        typer.echo(f"Warning: plugin {rejected.plugin or '<unnamed>'} not loaded: {rejected.error}", err=True)
    for failure in manager.initialize_all():
        typer.echo(f"Warning: plugin {failure.plugin} failed to start: {failure.error}", err=True)

    surface = TyperCommandSurface(app)
    manager.register_commands(surface)

    @app.callback()
    def main_callback(
        ctx: typer.Context,
        version: bool | None = typer.Option(
            None,
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
        settings: str | None = typer.Option(
            None,
            "--settings",
            "-s",
            help=f"Path to settings YAML file (default: ${SETTINGS_ENV_VAR} or ./{DEFAULT_SETTINGS_FILE}).",
        ),
        network: Network | None = typer.Option(
            None,
            "--network",
            "-N",
            case_sensitive=False,
            help="Override the configured network for this invocation.",
        ),
        output_format: OutputFormat = typer.Option(
            OutputFormat.HUMAN,
            "--format",
            "-f",
            case_sensitive=False,
            help="Output format for command results.",
        ),
    ) -> None:
        """keyward: plugin platform for ledger accounts, keys and aliases."""
        # settings was applied before parsing; see main()
        if network is not None:
            platform.settings = platform.settings.model_copy(update={"network": network})
        surface.output_format = output_format
        ctx.call_on_close(manager.teardown_all)

    plugins_app = typer.Typer(help="Inspect loaded plugins.")
    app.add_typer(plugins_app, name="plugins")

    @plugins_app.command("list")
    def plugins_list() -> None:
        """List registered plugins and their state."""
        rows = [
            {
                "name": plugin.name,
                "version": plugin.manifest.version,
                "state": plugin.state.value,
                "group": plugin.manifest.group,
                "capabilities": list(plugin.manifest.capabilities),
                "commands": [command.name for command in plugin.manifest.commands],
                "error": plugin.error,
            }
            for plugin in manager.list_plugins()
        ]
        if surface.output_format == OutputFormat.JSON:
            typer.echo(json.dumps({"plugins": rows, "rejected": [r.plugin for r in report.rejected]}, indent=2))
            return
        if not rows:
            typer.echo("No plugins loaded.")
            return
        for row in rows:
            typer.echo(f"{row['name']} {row['version']} [{row['state']}]")
            typer.echo(f"  Commands: {', '.join(row['commands']) or '-'}")
            typer.echo(f"  Capabilities: {', '.join(row['capabilities']) or '-'}")
            if row["error"]:
                typer.echo(f"  Error: {row['error']}")

    @app.command("config")
    def show_config() -> None:
        """Show the effective configuration (secrets redacted)."""
        typer.echo(json.dumps(resolve_config(platform.settings), indent=2))

    return app


def _settings_path(argv: list[str]) -> Path | None:
    """Find the settings file from argv, the environment, or the working directory."""
    i = 0
    while i < len(argv):
        arg = argv[i]
        if arg in ("--settings", "-s"):
            return Path(argv[i + 1]) if i + 1 < len(argv) else None
        if arg.startswith("--settings="):
            return Path(arg.split("=", 1)[1])
        if not arg.startswith("-"):
            # First subcommand; later -s flags belong to plugin commands
            break
        i += 2 if arg in _VALUE_OPTIONS else 1
    if env_path := os.environ.get(SETTINGS_ENV_VAR):
        return Path(env_path)
    default = Path(DEFAULT_SETTINGS_FILE)
    return default if default.exists() else None


def _load_startup_settings(argv: list[str]) -> KeywardSettings:
    path = _settings_path(argv)
    if path is None:
        return KeywardSettings()
    return load_settings(path)


def main(argv: list[str] | None = None) -> None:
    """Console script entry point."""
    args = list(sys.argv[1:] if argv is None else argv)

    try:
        settings = _load_startup_settings(args)
    except FileNotFoundError as e:
        typer.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except ValidationError as e:
        typer.echo("Configuration errors:", err=True)
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            typer.echo(f"  - {loc}: {error['msg']}", err=True)
        sys.exit(1)

    configure_logging(settings.logging.level, json_output=settings.logging.json_output)

    try:
        platform = build_platform(settings)
        hooks = create_hook_manager(load_entry_points=settings.plugins.load_entry_points)
        app = create_app(platform, collect_manifests(hooks, disabled=settings.plugins.disabled))
    except CommandCollisionError as e:
        typer.echo(f"Plugin load error: {e}", err=True)
        sys.exit(1)
    except KeywardError as e:
        typer.echo(f"Error: {e}", err=True)
        sys.exit(1)

    app(args=args, prog_name="keyward")


if __name__ == "__main__":
    main()
