"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from spotify_export.models.state import ExportPhase, ExportState, ResourceKind
from spotify_export.utils.formatting import format_duration

HIDDEN_KEYS = ("client_id",)


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "AuthenticationError": [
            "• Run `spotify-export login` to authorize the application.",
            "• Make sure you pasted the complete redirect URL.",
            "• Check that the redirect URI matches your Spotify app settings.",
        ],
        "ConfigurationError": [
            "• Run `spotify-export init --client-id <ID>` to create a config file.",
            "• Inspect the current settings with `spotify-export --show-config`.",
        ],
        "ExportNotReadyError": [
            "• The export did not complete. Run it again with -vv for details.",
        ],
        "ClientResponseError": [
            "• A network connection issue occurred.",
            "• The Spotify API might be temporarily unavailable.",
            "• Please try again in a few minutes.",
        ],
        "TimeoutError": [
            "• A request timed out. Check your internet connection.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(Text("\n".join(suggestions)))

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def mask_value(value: str) -> str:
    """Keeps the last four characters of a secret-ish value visible."""
    if not value:
        return "[not set]"
    if len(value) <= 4:
        return "[hidden]"
    return "…" + value[-4:]


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the current configuration, hiding sensitive data."""
    console = Console()
    content = ""
    for key, value in config_data.items():
        if key in HIDDEN_KEYS:
            value = mask_value(str(value))
        content += f"{key} = {value}\n"

    console.print(
        Panel(
            content.strip(),
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_status_table(state: ExportState, authenticated: bool, cached_at: int | None):
    """Displays how much of each collection is loaded and selected."""
    console = Console()
    table = Table(box=box.ROUNDED, title="[bold]Library[/bold]")
    table.add_column("Collection", style="bold cyan")
    table.add_column("Loaded", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("Selected", justify="right", style="green")
    table.add_column("Complete", justify="center")

    for kind in ResourceKind:
        resource = state.resource(kind)
        complete = not resource.pagination.has_more_to_load
        table.add_row(
            kind.value.capitalize(),
            str(resource.loaded_count),
            str(resource.pagination.total_items),
            str(len(resource.selected)),
            "[green]✓[/green]" if complete else "[yellow]…[/yellow]",
        )

    console.print(table)
    auth_text = (
        "[green]✓ Logged in[/green]" if authenticated else "[red]✗ Not logged in[/red]"
    )
    console.print(f"Authorization: {auth_text}")
    if cached_at:
        console.print(f"[dim]Snapshot cached at {cached_at} (epoch ms).[/dim]")
    else:
        console.print("[dim]No cached snapshot. Run 'spotify-export load'.[/dim]")


def print_summary_panel(state: ExportState, duration_s: float, output_path: Path | None):
    """Displays the final summary of an export run."""
    console = Console()

    stats_table = Table(show_header=False, box=None, padding=(0, 2))
    stats_table.add_column(style="bold cyan", justify="right", width=20)
    stats_table.add_column(style="white", justify="left")

    stats = state.total_stats
    data = state.exported_data

    if data is not None:
        stats_table.add_row("Playlists:", f"[bold green]{len(data.playlists)}[/bold green]")
        stats_table.add_row("Albums:", f"[bold green]{len(data.albums)}[/bold green]")
        stats_table.add_row("Saved Tracks:", f"[bold green]{len(data.tracks)}[/bold green]")
        stats_table.add_row("Artists:", f"[bold green]{len(data.artists)}[/bold green]")
        stats_table.add_row("", "")

    stats_table.add_row("Tracks Resolved:", f"[cyan]{stats.tracks_processed}[/cyan]")
    stats_table.add_row("Time Elapsed:", f"[blue]{format_duration(duration_s)}[/blue]")
    if stats.tracks_processed > 0 and duration_s > 0:
        tracks_per_minute = (stats.tracks_processed / duration_s) * 60
        stats_table.add_row(
            "Throughput:", f"[cyan]{tracks_per_minute:.1f} tracks/min[/cyan]"
        )
    if output_path is not None:
        stats_table.add_row("Written To:", f"[dim]{output_path}[/dim]")

    if state.phase is ExportPhase.COMPLETE:
        title = "[bold]Export Complete![/bold]"
        border_color = "green"
    elif state.phase is ExportPhase.ERROR:
        title = "[bold]Export Failed[/bold]"
        border_color = "red"
        stats_table.add_row("Error:", f"[red]{state.error}[/red]")
    else:
        title = "[bold]Export Stopped[/bold]"
        border_color = "yellow"

    console.print()
    console.print(
        Panel(
            stats_table,
            title=title,
            border_style=border_color,
            box=box.DOUBLE,
            expand=False,
            padding=(1, 2),
        )
    )
    console.print()
