"""Serve commands — static viewer over HTTP or HTTPS."""

import asyncio
from pathlib import Path
from typing import Optional

import click
import uvicorn
from rich.console import Console

from ...config import GazeConfig
from ...errors import ManifestError
from ...viewer import ViewerState
from ...web.server import create_app
from ..app import load_config

console = Console()


def _load_viewer(config: GazeConfig) -> ViewerState:
    try:
        return asyncio.run(ViewerState.load(config))
    except ManifestError as exc:
        console.print(f"[red]Cannot start viewer: {exc}[/red]")
        console.print(
            f"[dim]Run 'gazeframe generate' and copy the images and "
            f"{config.manifest_filename} into {config.asset_path()}[/dim]"
        )
        raise SystemExit(1)


def _run(config: GazeConfig, certfile: Optional[Path] = None, keyfile: Optional[Path] = None) -> None:
    state = _load_viewer(config)
    app = create_app(config, state=state)

    scheme = "https" if certfile else "http"
    console.print("\n  [bold]Gazeframe viewer[/bold]")
    console.print(f"  Images: {len(state.candidates)}/{len(state.manifest)} selectable")
    console.print(f"  URL: {scheme}://{config.host}:{config.port}\n")

    kwargs = {}
    if certfile and keyfile:
        kwargs = {"ssl_certfile": str(certfile), "ssl_keyfile": str(keyfile)}

    uvicorn.run(
        app,
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
        **kwargs,
    )


@click.command()
@click.pass_context
def serve(ctx: click.Context) -> None:
    """Serve the viewer over HTTP on the configured port."""
    _run(load_config(ctx))


@click.command(name="serve:https")
@click.pass_context
def serve_https(ctx: click.Context) -> None:
    """Serve the viewer over HTTPS.

    Device orientation needs a secure context on phones. Uses the
    certificate and key configured under server.certfile / server.keyfile
    (default cert.pem / key.pem in the current directory).
    """
    config = load_config(ctx)
    certfile = Path(config.certfile).expanduser()
    keyfile = Path(config.keyfile).expanduser()
    missing = [str(p) for p in (certfile, keyfile) if not p.is_file()]
    if missing:
        console.print(f"[red]TLS file(s) not found: {', '.join(missing)}[/red]")
        console.print("[dim]Create them with e.g. mkcert or openssl req -x509[/dim]")
        raise SystemExit(1)
    _run(config, certfile, keyfile)
