"""Main CLI entry point for Prism."""

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler

from prism import __version__
from prism.cli.dashboard import dashboard_app
from prism.config import get_settings

app = typer.Typer(
    name="prism",
    help="Prism - Instagram Business analytics from the Graph API",
    no_args_is_help=True,
)

console = Console()

# Register sub-commands
app.add_typer(dashboard_app, name="dashboard", help="Fetch and analyze dashboard metrics")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Configure logging for all commands."""
    settings = get_settings()
    level = logging.DEBUG if verbose else settings.log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


@app.command()
def version():
    """Show the Prism version."""
    console.print(f"Prism v{__version__}")


@app.command()
def status():
    """Show the current configuration status."""
    settings = get_settings()

    console.print("[bold blue]Prism Status[/bold blue]\n")

    console.print("[bold]Configuration:[/bold]")
    connected = "[green][+][/green]" if settings.is_instagram_configured else "[red][x][/red]"
    console.print(f"  Instagram account: {connected}")
    console.print(f"  Business ID: {settings.ig_business_id or 'N/A'}")
    console.print(f"  Graph API: {settings.graph_base_url}")

    console.print("\n[bold]Limits:[/bold]")
    console.print(f"  Max posts: {settings.max_posts}")
    console.print(f"  Max stories: {settings.max_stories}")
    console.print(f"  Posts with insights: {settings.max_insights_posts}")
    console.print(f"  Insights batch size: {settings.insights_batch_size}")


if __name__ == "__main__":
    app()
