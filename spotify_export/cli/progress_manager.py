"""
Renders loading and export progress with Rich, driven entirely by `StateStore`
snapshots. The manager never talks to the loaders or the pipeline directly.
"""

import asyncio
import logging
from collections.abc import Callable

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

from spotify_export.core.store import StateStore
from spotify_export.models.state import ExportPhase, ExportState, ResourceKind

log = logging.getLogger(__name__)


class ProgressManager:
    """
    Subscribes to the store while entered as an async context manager.

    In "load" mode one bar per collection follows the loaded count against
    the server total. In "export" mode bars follow finished playlists, the
    playlist in progress and the running totals.
    """

    MODES = ("load", "export")

    def __init__(self, console: Console, store: StateStore, mode: str = "export"):
        if mode not in self.MODES:
            raise ValueError(f"Unknown progress mode '{mode}'.")
        self.console = console
        self.store = store
        self.mode = mode

        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}", justify="left"),
            BarColumn(bar_width=30),
            MofNCompleteColumn(),
            "•",
            TimeElapsedColumn(),
            console=console,
            transient=False,
        )

        self._unsubscribe: Callable[[], None] | None = None
        self._resource_tasks: dict[ResourceKind, TaskID] = {}
        self._playlists_task: TaskID | None = None
        self._current_task: TaskID | None = None
        self._stats_task: TaskID | None = None
        self._current_playlist_id: str | None = None

    # Load mode

    def _render_loading(self, state: ExportState) -> None:
        for kind in ResourceKind:
            resource = state.resource(kind)
            if not resource.loading and resource.loaded_count == 0:
                continue

            task_id = self._resource_tasks.get(kind)
            if task_id is None:
                task_id = self.progress.add_task(
                    f"[cyan]{kind.value.capitalize()}[/cyan]", total=None
                )
                self._resource_tasks[kind] = task_id

            pagination = resource.pagination
            total = pagination.total_items or None
            if not pagination.has_more_to_load:
                # Filtered entries can leave the loaded count below the total
                total = resource.loaded_count
            self.progress.update(task_id, completed=resource.loaded_count, total=total)

    # Export mode

    def _render_export(self, state: ExportState) -> None:
        if state.phase is not ExportPhase.EXPORTING:
            return

        if self._playlists_task is None and state.total_playlists_to_export:
            self._playlists_task = self.progress.add_task(
                "[bold blue]Playlists[/bold blue]", total=state.total_playlists_to_export
            )
        if self._playlists_task is not None:
            self.progress.update(self._playlists_task, completed=state.playlists_exported)

        current = state.current_playlist
        if current is not None:
            description = current.playlist_name
            if len(description) > 40:
                description = description[:38] + "…"
            if self._current_task is None:
                self._current_task = self.progress.add_task(description, total=None)
            if current.playlist_id != self._current_playlist_id:
                self._current_playlist_id = current.playlist_id
                self.progress.reset(
                    self._current_task,
                    description=f"[yellow]{description}[/yellow]",
                    total=current.total_tracks or None,
                )
            self.progress.update(self._current_task, completed=current.processed_tracks)

        if self._stats_task is None:
            self._stats_task = self.progress.add_task("Tracks resolved", total=None)
        stats = state.total_stats
        self.progress.update(
            self._stats_task,
            completed=stats.tracks_processed,
            description=(
                f"Tracks resolved [dim](albums {stats.albums_processed}, "
                f"artists {stats.artists_processed})[/dim]"
            ),
        )

    def _on_state(self, state: ExportState) -> None:
        if self.mode == "load":
            self._render_loading(state)
        else:
            self._render_export(state)

    async def __aenter__(self):
        self.progress.start()
        self._unsubscribe = self.store.subscribe(self._on_state)
        self._on_state(self.store.get())
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None
        await asyncio.sleep(0.1)
        self.progress.stop()
