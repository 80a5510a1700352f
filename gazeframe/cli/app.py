"""Gazeframe CLI application."""

import os
from pathlib import Path

import click
import yaml
from rich.console import Console
from rich.markup import escape

from .. import __version__
from ..config import GazeConfig
from ..errors import ConfigurationError
from ..utils.logging import setup_logging

console = Console()


def find_config() -> str | None:
    """
    Find config file using standard priority order:

    1. GAZEFRAME_CONFIG environment variable
    2. .gazeframe.yaml in current directory (project config)
    3. ~/.config/gazeframe/config.yaml (user config)

    Returns None if no config found.
    """
    env_config = os.environ.get("GAZEFRAME_CONFIG")
    if env_config:
        path = Path(env_config)
        if path.exists():
            return str(path)

    project_config = Path.cwd() / ".gazeframe.yaml"
    if project_config.exists():
        return str(project_config)

    user_config = Path.home() / ".config" / "gazeframe" / "config.yaml"
    if user_config.exists():
        return str(user_config)

    return None


def load_config(ctx: click.Context) -> GazeConfig:
    """Config for the current invocation, with logging set up from it."""
    config_path = ctx.obj.get("config")
    try:
        config = GazeConfig.load(config_path) if config_path else GazeConfig()
    except (ConfigurationError, yaml.YAMLError, TypeError, ValueError) as exc:
        console.print(f"[red]Invalid config {config_path}: {escape(str(exc))}[/red]")
        raise SystemExit(1)

    if ctx.obj.get("debug"):
        config.log_level = "DEBUG"
    setup_logging(config)
    return config


@click.group()
@click.version_option(version=__version__, prog_name="gazeframe")
@click.option("--config", "-c", type=click.Path(exists=True), help="Config file path")
@click.option("--no-config", is_flag=True, help="Disable config auto-loading")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.option("--debug", is_flag=True, help="Debug mode")
@click.pass_context
def cli(ctx: click.Context, config: str, no_config: bool, verbose: bool, debug: bool) -> None:
    """Gazeframe — gaze-following portraits from precomputed images.

    Config file locations (in priority order):

        1. -c/--config PATH (explicit)

        2. GAZEFRAME_CONFIG env var

        3. .gazeframe.yaml (project config)

        4. ~/.config/gazeframe/config.yaml (user config)

    Examples:

        REPLICATE_API_TOKEN=r8_... gazeframe generate

        gazeframe serve

        gazeframe serve:https
    """
    ctx.ensure_object(dict)

    if no_config:
        config = None
    elif config is None:
        config = find_config()
        if config and verbose:
            console.print(f"[dim]Using config: {config}[/dim]")

    ctx.obj["config"] = config
    ctx.obj["verbose"] = verbose
    ctx.obj["debug"] = debug


# Import and register commands
from .commands import generate, serve, version

cli.add_command(generate.generate)
cli.add_command(serve.serve)
cli.add_command(serve.serve_https)
cli.add_command(version.version)
