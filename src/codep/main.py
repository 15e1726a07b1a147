from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from time import perf_counter

import typer
from rich import box
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .core.config import AppConfig, ConfigLoadResult, load_config
from .core.console import console, setup_logging
from .core.registry import discover_commands

app = typer.Typer(
    help="codep: list recently used VS Code files, folders and remotes for shell pipelines.",
    no_args_is_help=True,
)
logger = logging.getLogger(__name__)


@dataclass
class AppState:
    config: AppConfig
    config_meta: ConfigLoadResult
    logger: logging.Logger
    config_root: Path
    null_terminated: bool


@app.callback()
def main(
    ctx: typer.Context,
    config_root: Path | None = typer.Option(
        None,
        "--config-root",
        "-c",
        help="Editor state directory (default: $CODEP_CONFIG_ROOT or the platform's Code dir).",
    ),
    null_terminated: bool = typer.Option(
        False, "--null-terminated", "-0", help="Print a NUL byte before every newline."
    ),
    settings: Path | None = typer.Option(
        None, "--settings", help="Path to a codep settings file (TOML or JSON)."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    loaded_config, meta = load_config(settings_path=settings)
    if config_root is not None:
        loaded_config = loaded_config.model_copy(update={"config_root": config_root.expanduser()})

    app_logger = setup_logging(level=loaded_config.log_level, verbose=verbose)

    # Resolved once; every adapter receives it explicitly.
    resolved_root = loaded_config.resolved_config_root()

    ctx.obj = AppState(
        config=loaded_config,
        config_meta=meta,
        logger=app_logger,
        config_root=resolved_root,
        null_terminated=null_terminated or loaded_config.null_terminated,
    )

    if meta.error:
        app_logger.warning("Failed to load %s, using defaults: %s", meta.path, meta.error)
    else:
        app_logger.debug(
            "Loaded settings from %s (env overrides: %s); editor root %s",
            meta.path,
            sorted(meta.env_overrides),
            resolved_root,
        )


@app.command("config")
def show_config(ctx: typer.Context) -> None:
    """Show the active settings and where they came from."""
    state: AppState = ctx.obj
    meta = state.config_meta

    table = Table(title="Settings", box=box.SIMPLE, expand=True)
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Value", style="white")

    for key, value in state.config.model_dump().items():
        table.add_row(key, str(value))
    table.add_row("resolved config root", str(state.config_root))

    console.print(table)

    meta_lines = [
        f"Path: {meta.path}",
        "File loaded: yes" if meta.file_loaded else "File loaded: no (using defaults + env)",
    ]

    if meta.env_overrides:
        meta_lines.append("Env overrides: " + ", ".join(sorted(meta.env_overrides)))
    if meta.error:
        meta_lines.append(f"[red]Error: {escape(meta.error)}[/red]")

    console.print(Panel("\n".join(meta_lines), title="Settings source", box=box.SIMPLE))


@app.command("version")
def show_version() -> None:
    """Print the codep version."""
    typer.echo(__version__)


def _register_commands() -> None:
    commands_path = Path(__file__).resolve().parent / "commands"
    registered = {command.name for command in app.registered_commands}
    for spec in discover_commands(commands_path):
        if spec.name not in registered:
            app.command(spec.name)(spec.handler)


def _register_commands_with_timing() -> None:
    start = perf_counter()
    _register_commands()
    elapsed = perf_counter() - start
    logger.debug("Command registry initialized in %.3f seconds", elapsed)


_register_commands_with_timing()


def cli() -> None:
    app()


if __name__ == "__main__":
    cli()
