"""
Entry point for `spotify-export` and `python -m spotify_export`.

Errors that escape a command are rendered once here, so commands raise
`SpotifyExportError` without printing it themselves.
"""

import asyncio
import logging
import os
import sys

import typer
from rich.console import Console

from spotify_export.cli.app import app
from spotify_export.cli.formatters import format_error_with_suggestions
from spotify_export.exceptions import SpotifyExportError

log = logging.getLogger("spotify_export")


def _use_utf8_streams() -> None:
    # Track, album and artist names are printed as UTF-8
    if os.name != "nt":
        return
    for stream in (sys.stdout, sys.stderr):
        try:
            stream.reconfigure(encoding="utf-8")
        except (TypeError, AttributeError):
            log.debug(f"Cannot switch {stream!r} to UTF-8.")


def _run(console: Console) -> int:
    """Runs the Typer app and returns the process exit code."""
    try:
        app()
    except (typer.Exit, typer.Abort):
        return 0
    except (KeyboardInterrupt, asyncio.CancelledError):
        console.print("\n[yellow]Interrupted; nothing more will be exported.[/yellow]")
        return 0
    except SpotifyExportError as e:
        console.print()
        console.print(format_error_with_suggestions(e))
        return 1
    except Exception as e:
        console.print()
        console.print(format_error_with_suggestions(e, {"type": "Unexpected"}))
        log.debug("Full traceback:", exc_info=True)
        return 1
    return 0


def main() -> None:
    _use_utf8_streams()
    sys.exit(_run(Console()))


if __name__ == "__main__":
    main()
