"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
import signal
import time
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from spotify_export import __version__
from spotify_export.api.client import SpotifyAPIClient
from spotify_export.core.session import ExportSession
from spotify_export.exceptions import AuthenticationError
from spotify_export.models.config import ExportConfig
from spotify_export.models.state import ExportPhase, ResourceKind
from spotify_export.storage.cache import SnapshotCache
from spotify_export.storage.config_manager import ConfigManager
from spotify_export.storage.token_store import TokenStore

from .formatters import print_config, print_status_table, print_summary_panel
from .progress_manager import ProgressManager

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("spotify_export")

app = typer.Typer(
    name="spotify-export",
    help=(
        "Export your Spotify playlists, saved albums, saved tracks and followed"
        " artists to a portable JSON file. Use 'spotify-export <command> --help'"
        " for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "spotify-export"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


def _load_config(cli_options: dict | None = None) -> ExportConfig:
    return ConfigManager(CONFIG_FILE).load_config(cli_options)


def _create_client(config: ExportConfig) -> SpotifyAPIClient:
    return SpotifyAPIClient(config.client_id, config.redirect_uri, TokenStore(CONFIG_DIR))


def _require_login(client: SpotifyAPIClient) -> None:
    if not client.authenticator.has_login():
        raise AuthenticationError(
            "Not logged in. Run 'spotify-export login' to authorize this application."
        )


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
):
    """Spotify Library Exporter CLI"""
    if version:
        console.print(f"[bold]spotify-export[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "INFO"
    if verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("spotify_export").setLevel(log_level)

    if show_config:
        if not CONFIG_FILE.is_file():
            console.print(
                "[red]✗ Config file not found.[/] Run [cyan]spotify-export init[/cyan]"
                " first."
            )
            raise typer.Exit(code=1)
        config_manager = ConfigManager(CONFIG_FILE)
        config_manager.load_config()
        print_config(CONFIG_FILE, config_manager.get_config_as_dict())
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    client_id: str = typer.Option(
        ..., "--client-id", help="Client ID of your Spotify developer application."
    ),
    market: str | None = typer.Option(
        None, "--market", help="Two-letter market used for artist top tracks."
    ),
    redirect_uri: str | None = typer.Option(
        None,
        "--redirect-uri",
        help="Redirect URI registered for the application.",
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration without asking."
    ),
):
    """Initialize configuration with your Spotify application's client ID."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    settings = {
        key: value
        for key, value in {
            "client_id": client_id.strip(),
            "market": market,
            "redirect_uri": redirect_uri,
        }.items()
        if value is not None
    }
    ConfigManager(CONFIG_FILE).save_new_config(settings)

    console.print(f"\n[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")
    console.print("Next, authorize access: [cyan]spotify-export login[/cyan]")


@app.command()
def login():
    """Authorize access to your Spotify library (PKCE)."""
    config = _load_config()

    async def _login_async():
        client = _create_client(config)
        try:
            authenticator = client.authenticator
            url = authenticator.build_authorize_url()
            console.print("\n[bold]Open this URL in your browser and approve access:[/bold]")
            console.print(f"[cyan]{url}[/cyan]\n", soft_wrap=True)
            response = typer.prompt("Paste the URL you were redirected to (or the code)")
            code = authenticator.extract_code(response)
            await authenticator.exchange_code(code)
        finally:
            await client.close()

    asyncio.run(_login_async())
    console.print("[green]✓ Logged in. Try: [cyan]spotify-export load[/cyan][/green]")


@app.command()
def logout():
    """Forget the stored Spotify tokens."""
    _create_client(_load_config()).authenticator.logout()
    console.print("[green]✓ Logged out.[/green]")


@app.command()
def load():
    """Load all playlists, saved albums, saved tracks and followed artists."""
    config = _load_config()

    async def _load_async():
        client = _create_client(config)
        try:
            _require_login(client)
            session = ExportSession(client, SnapshotCache(CONFIG_DIR), config)
            async with ProgressManager(console, session.store, mode="load"):
                await session.load_everything()
            return session.state, client.authenticator.is_authenticated()
        finally:
            await client.close()

    state, authenticated = asyncio.run(_load_async())
    snapshot = SnapshotCache(CONFIG_DIR).load()
    print_status_table(state, authenticated, snapshot.cached_at if snapshot else None)
    if state.phase is ExportPhase.ERROR:
        console.print(f"[red]✗ Loading failed: {state.error}[/red]")
        raise typer.Exit(code=1)


@app.command()
def status():
    """Show what is cached locally and whether you are logged in."""
    config = _load_config()
    client = _create_client(config)
    cache = SnapshotCache(CONFIG_DIR)
    session = ExportSession(client, cache, config)
    session.restore_from_cache()
    snapshot = cache.load()
    print_status_table(
        session.state,
        client.authenticator.has_login(),
        snapshot.cached_at if snapshot else None,
    )


def _apply_selection(
    session: ExportSession, only: list[ResourceKind] | None, exclude: list[str]
) -> None:
    """Narrows the default all-selected state down to what was asked for."""
    for kind, loader in session.loaders.items():
        if only and kind not in only:
            loader.deselect_all()
            continue
        for item in loader.selected():
            if item.id in exclude:
                loader.toggle(item.id)


@app.command(name="export")
def export_command(
    output: Path | None = typer.Option(  # noqa: B008
        None, "-o", "--output", help="Where to write the JSON file."
    ),
    only: list[ResourceKind] | None = typer.Option(  # noqa: B008
        None,
        "--only",
        help="Export only these collections. Can be given multiple times.",
        case_sensitive=False,
    ),
    exclude: list[str] = typer.Option(  # noqa: B008
        [], "--exclude", "-x", help="Spotify ID of an item to leave out."
    ),
    refresh: bool = typer.Option(
        False,
        "--refresh",
        help="Reload the library from Spotify instead of using the local snapshot.",
    ),
):
    """Export the selected library items to a JSON file."""
    cli_options = {"output_path": str(output)} if output else None
    config = _load_config(cli_options)
    output_path = Path(config.output_path).expanduser()

    async def _export_async():
        client = _create_client(config)
        try:
            _require_login(client)
            session = ExportSession(client, SnapshotCache(CONFIG_DIR), config)

            if refresh or not session.restore_from_cache():
                console.print("[cyan]Loading library from Spotify...[/cyan]")
                async with ProgressManager(console, session.store, mode="load"):
                    await session.load_everything()
                if session.state.phase is ExportPhase.ERROR:
                    return session, 0.0, None

            _apply_selection(session, only, exclude)

            loop = asyncio.get_running_loop()
            try:
                loop.add_signal_handler(signal.SIGINT, session.stop)
            except (NotImplementedError, RuntimeError):
                log.debug("Signal handlers unsupported; Ctrl+C aborts immediately.")

            console.print("[bold cyan]Starting export...[/bold cyan]")
            start_time = time.monotonic()
            try:
                async with ProgressManager(console, session.store, mode="export"):
                    await session.start_export()
            finally:
                try:
                    loop.remove_signal_handler(signal.SIGINT)
                except (NotImplementedError, RuntimeError):
                    pass
            duration = time.monotonic() - start_time

            written = None
            if session.state.phase is ExportPhase.COMPLETE:
                written = await session.write_export(output_path)
            return session, duration, written
        finally:
            await client.close()

    session, duration, written = asyncio.run(_export_async())
    state = session.state
    print_summary_panel(state, duration, written)
    if state.phase is ExportPhase.ERROR:
        raise typer.Exit(code=1)


@app.command(name="clear-cache")
def clear_cache():
    """Remove the locally cached library snapshot."""
    cache = SnapshotCache(CONFIG_DIR)
    console.print("[cyan]Clearing library snapshot...[/cyan]")
    if cache.clear():
        console.print("[green]✓ Cache cleared successfully.[/green]")
    else:
        console.print("[red]✗ Failed to clear cache.[/red]")
        raise typer.Exit(code=1)

