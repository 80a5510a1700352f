"""Generate command — run the image acquisition loop."""

import click
from rich.console import Console
from rich.table import Table

from ...errors import ConfigurationError, GenerationError
from ...generator import GenerationReport, Generator
from ...grid import derive_filename
from ..app import load_config

console = Console()


@click.command()
@click.pass_context
def generate(ctx: click.Context) -> None:
    """Generate every missing image in the grid and rewrite the manifest.

    Needs REPLICATE_API_TOKEN in the environment. Images that already
    exist are skipped, so an interrupted run can be restarted.

    Examples:

        REPLICATE_API_TOKEN=r8_... gazeframe generate

        gazeframe -c gazeframe.yaml generate
    """
    config = load_config(ctx)

    try:
        generator = Generator.from_config(config)
    except ConfigurationError as exc:
        console.print(f"[red]Error: {exc}[/red]")
        console.print("[dim]Set it with: export REPLICATE_API_TOKEN=<token>[/dim]")
        raise SystemExit(1)

    try:
        report = generator.run()
    except (GenerationError, OSError) as exc:
        console.print(f"[red]Generation aborted: {exc}[/red]")
        raise SystemExit(1)
    finally:
        generator.client.close()

    _print_report(report, config.output_format, ctx.obj.get("verbose", False))


def _print_report(report: GenerationReport, extension: str, verbose: bool) -> None:
    table = Table(title="Generation")
    table.add_column("Metric", style="cyan")
    table.add_column("Value")
    table.add_row("combinations", str(report.total))
    table.add_row("already present", str(report.skipped))
    table.add_row("generated", f"[green]{len(report.generated)}[/green]")
    failed_color = "red" if report.failed else "green"
    table.add_row("failed", f"[{failed_color}]{len(report.failed)}[/{failed_color}]")
    table.add_row("requests", str(report.requests))
    table.add_row("rate-limit waits", str(report.backoffs))
    table.add_row("pacing wait", f"{report.paced_wait_s:.0f}s")
    table.add_row("manifest entries", str(report.manifest_entries))
    table.add_row("duration", f"{report.duration_s:.1f}s")
    console.print(table)

    if report.failed:
        if verbose:
            for triple, error in report.failed:
                console.print(f"  [red]✗[/red] {derive_filename(triple, extension)}: {error}")
        console.print("[yellow]Some images failed; run generate again to resume[/yellow]")
    else:
        console.print("[green]✓ All images generated[/green]")
    if report.manifest_path:
        console.print(f"[dim]Manifest: {report.manifest_path}[/dim]")
