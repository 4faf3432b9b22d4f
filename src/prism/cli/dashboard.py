"""CLI commands for dashboard metrics and reporting."""

import json
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from prism.metrics.aggregator import aggregate, aggregate_by_weekday, best_posting_window
from prism.metrics.filters import SORTABLE_METRICS, DayFilter, MediaFilter, Weekday, sort_media
from prism.services.dashboard_service import DashboardError, DashboardPayload, DashboardService
from prism.services.instagram.client import AuthenticationError

dashboard_app = typer.Typer(help="Fetch and analyze dashboard metrics")
console = Console()

EXIT_ERROR = 1
EXIT_AUTH = 2

WEEKDAY_LABELS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


def get_service() -> DashboardService:
    """Create a dashboard service for the configured account."""
    return DashboardService.from_settings()


def load_dashboard(
    max_posts: Optional[int] = None,
    max_insights_posts: Optional[int] = None,
) -> DashboardPayload:
    """Build the dashboard, exiting with a distinct code for auth failures."""
    try:
        service = get_service()
    except AuthenticationError as e:
        console.print(f"[red]Authentication error:[/red] {e}")
        raise typer.Exit(EXIT_AUTH)

    try:
        with console.status("Loading dashboard..."):
            return service.build(max_posts=max_posts, max_insights_posts=max_insights_posts)
    except AuthenticationError as e:
        console.print(f"[red]Authentication error:[/red] {e}")
        raise typer.Exit(EXIT_AUTH)
    except DashboardError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(EXIT_ERROR)
    finally:
        service.close()


def build_filter(
    since: Optional[datetime],
    until: Optional[datetime],
    weekday: Optional[str],
    days: DayFilter,
    media_type: Optional[str],
    search: Optional[str],
    week: Optional[int],
) -> MediaFilter:
    parsed_weekday = None
    if weekday:
        try:
            parsed_weekday = Weekday[weekday.upper()]
        except KeyError:
            console.print(f"[red]Error:[/red] Invalid weekday '{weekday}'")
            raise typer.Exit(EXIT_ERROR)

    return MediaFilter(
        start=since.date() if since else None,
        end=until.date() if until else None,
        weekday=parsed_weekday,
        day_filter=days,
        media_type=media_type.upper() if media_type else None,
        search=search,
        week_of_month=week,
    )


def format_number(value) -> str:
    if value is None:
        return "--"
    if isinstance(value, float):
        return f"{value:,.1f}"
    return f"{value:,}"


def format_percent(value: Optional[float]) -> str:
    return "--" if value is None else f"{value:.2f}%"


def print_messages(payload: DashboardPayload) -> None:
    for message in payload.messages:
        console.print(f"[yellow][!][/yellow] {message}")


@dashboard_app.command("fetch")
def fetch_dashboard(
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the JSON payload to a file"),
    max_posts: Optional[int] = typer.Option(None, "--max-posts", help="Media items to load"),
    max_insights: Optional[int] = typer.Option(None, "--max-insights", help="Posts that get per-item insights"),
):
    """Fetch the dashboard payload as JSON."""
    payload = load_dashboard(max_posts=max_posts, max_insights_posts=max_insights)
    data = json.dumps(payload.to_dict(), indent=2, ensure_ascii=False)

    if output:
        output.write_text(data, encoding="utf-8")
        console.print(f"[green]Wrote {len(payload.media)} media items to {output}[/green]")
        print_messages(payload)
    else:
        typer.echo(data)


@dashboard_app.command("report")
def generate_report(
    since: Optional[datetime] = typer.Option(None, "--since", formats=["%Y-%m-%d"], help="Start date"),
    until: Optional[datetime] = typer.Option(None, "--until", formats=["%Y-%m-%d"], help="End date"),
    weekday: Optional[str] = typer.Option(None, "--weekday", help="Only this weekday (e.g. monday)"),
    days: DayFilter = typer.Option(DayFilter.ALL, "--days", help="all, weekdays or weekends"),
    media_type: Optional[str] = typer.Option(None, "--media-type", "-t", help="IMAGE, VIDEO, CAROUSEL_ALBUM or REELS"),
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Search caption or media ID"),
    week: Optional[int] = typer.Option(None, "--week", min=1, max=5, help="Week of month (1-5)"),
    max_posts: Optional[int] = typer.Option(None, "--max-posts", help="Media items to load"),
):
    """Generate an engagement analytics report."""
    media_filter = build_filter(since, until, weekday, days, media_type, search, week)
    payload = load_dashboard(max_posts=max_posts)
    media = media_filter.apply(payload.media)
    summary = aggregate(media)
    profile = payload.profile

    console.print(Panel(
        f"Analytics Report for @{profile.get('username', profile.get('id', '?'))}",
        title="[bold blue]Prism Analytics[/bold blue]",
        subtitle=f"snapshot {payload.snapshot_date}",
    ))

    console.print("\n[bold]Account Overview[/bold]")
    console.print(f"  Followers: {format_number(profile.get('followers_count'))}")
    console.print(f"  Following: {format_number(profile.get('follows_count'))}")
    console.print(f"  Total Posts: {format_number(profile.get('media_count'))}")

    totals = summary.totals
    console.print(f"\n[bold]Engagement Summary ({totals.posts} posts)[/bold]")
    console.print(f"  Total Reach: {format_number(totals.reach)}")
    console.print(f"  Total Views: {format_number(totals.views)}")
    console.print(f"  Total Likes: {format_number(totals.likes)}")
    console.print(f"  Total Comments: {format_number(totals.comments)}")
    console.print(f"  Total Saves: {format_number(totals.saves)}")
    console.print(f"  Total Shares: {format_number(totals.shares)}")
    console.print(f"  Total Score: {format_number(totals.score)}")

    averages = summary.averages
    console.print("\n[bold]Averages[/bold]")
    console.print(f"  Engagement Rate: {format_percent(averages.er)}")
    console.print(f"  Reach Rate: {format_percent(averages.reach_rate)}")
    console.print(f"  Views Rate: {format_percent(averages.views_rate)}")
    console.print(f"  Interactions / 1000 Reach: {format_number(averages.interactions_per_1000_reach)}")

    by_weekday = aggregate_by_weekday(media)
    if by_weekday:
        console.print("\n[bold]Performance By Day Of Week[/bold]")
        table = Table()
        table.add_column("Day")
        table.add_column("Posts", justify="right")
        table.add_column("Reach", justify="right")
        table.add_column("Avg Score", justify="right")
        table.add_column("Avg ER", justify="right")
        for day, rollup in by_weekday.items():
            table.add_row(
                WEEKDAY_LABELS[day],
                str(rollup.totals.posts),
                format_number(rollup.totals.reach),
                format_number(rollup.averages.score),
                format_percent(rollup.averages.er),
            )
        console.print(table)

    window = best_posting_window(media)
    if window:
        console.print(
            f"\n[bold]Best Posting Window:[/bold] {WEEKDAY_LABELS[window.weekday]} {window.hour:02d}h "
            f"(avg score {window.avg_score:.1f}, n={window.count})"
        )

    stories = payload.stories_aggregate
    console.print(f"\n[bold]Stories ({stories.total_stories} active)[/bold]")
    console.print(f"  Views: {format_number(stories.total_views)}")
    console.print(f"  Reach: {format_number(stories.total_reach)}")
    console.print(f"  Replies: {format_number(stories.total_replies)}")
    console.print(f"  Completion Rate: {stories.avg_completion_rate}%")

    console.print()
    print_messages(payload)


@dashboard_app.command("top")
def top_media_command(
    metric: str = typer.Option("score", "--metric", "-m", help="Metric to sort by"),
    limit: int = typer.Option(10, "--limit", "-l", help="Number of items to show"),
    ascending: bool = typer.Option(False, "--ascending", help="Lowest first"),
    since: Optional[datetime] = typer.Option(None, "--since", formats=["%Y-%m-%d"], help="Start date"),
    until: Optional[datetime] = typer.Option(None, "--until", formats=["%Y-%m-%d"], help="End date"),
    weekday: Optional[str] = typer.Option(None, "--weekday", help="Only this weekday (e.g. monday)"),
    days: DayFilter = typer.Option(DayFilter.ALL, "--days", help="all, weekdays or weekends"),
    media_type: Optional[str] = typer.Option(None, "--media-type", "-t", help="IMAGE, VIDEO, CAROUSEL_ALBUM or REELS"),
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Search caption or media ID"),
    week: Optional[int] = typer.Option(None, "--week", min=1, max=5, help="Week of month (1-5)"),
):
    """Show top media by a derived metric."""
    if metric not in SORTABLE_METRICS:
        console.print(f"[red]Error:[/red] Invalid metric '{metric}'")
        console.print(f"Valid options: {', '.join(SORTABLE_METRICS)}")
        raise typer.Exit(EXIT_ERROR)

    media_filter = build_filter(since, until, weekday, days, media_type, search, week)
    payload = load_dashboard()
    ranked = sort_media(media_filter.apply(payload.media), metric, descending=not ascending)[:limit]

    if not ranked:
        console.print("[yellow]No media found.[/yellow]")
        return

    console.print(f"\n[bold]Top Media (by {metric})[/bold]")
    table = Table()
    table.add_column("#", style="dim")
    table.add_column("Media ID")
    table.add_column("Type")
    table.add_column(metric, justify="right", style="cyan")
    table.add_column("Likes", justify="right")
    table.add_column("Comments", justify="right")
    table.add_column("Reach", justify="right")
    table.add_column("Missing")
    table.add_column("Posted")

    for i, item in enumerate(ranked, 1):
        posted_at = item.posted_at
        table.add_row(
            str(i),
            item.id,
            "REELS" if item.is_reel else item.media_type,
            format_number(item.metric(metric)),
            format_number(item.metric("likes")),
            format_number(item.metric("comments")),
            format_number(item.metric("reach")),
            ", ".join(item.computed.missing_metrics) if item.computed else "",
            posted_at.strftime("%Y-%m-%d") if posted_at else "-",
        )

    console.print(table)
    print_messages(payload)
