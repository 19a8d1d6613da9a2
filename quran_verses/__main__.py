"""
Command-line entry point for QuranVerses.

Runs the verse services headless: show, advance or randomize the current
verse, manage favorites, inspect the refresh countdown, simulate a widget
refresh click, or keep the background scheduler running in the foreground.

Author: Kasim Lyee <lyee@codewithlyee.com>
Organization: Softlite Inc.
License: MIT

Usage:
    python -m quran_verses current
    python -m quran_verses next
    python -m quran_verses run
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from .api.api_exceptions import APIError
from .app import VerseApp
from .config.settings import Settings
from .core.app_lifecycle import AppState
from .core.exceptions import QuranVersesError
from .core.verse_formatter import VerseFormatter
from .models.verse import RefreshFrequency, VerseRef, VerseSnapshot, WidgetAction
from .utils.logger import configure_logging, get_logger
from .version import __version__

logger = get_logger(__name__)


def print_banner() -> None:
    """Print application banner to console."""
    banner = f"""
    ╔═══════════════════════════════════════════════════════╗
    ║                                                       ║
    ║               QuranVerses v{__version__:<27}║
    ║                                                       ║
    ║     Scheduled Quran verses for app and widget         ║
    ║                                                       ║
    ╚═══════════════════════════════════════════════════════╝
    """
    print(banner)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quran_verses",
        description="Scheduled Quran verses with favorites and a home-screen widget.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("current", help="Show the current verse, loading one if needed")
    commands.add_parser("next", help="Advance to the next verse in the shuffled sequence")
    commands.add_parser("random", help="Jump to a random verse")
    commands.add_parser("reset", help="Reshuffle the verse sequence")
    commands.add_parser("favorites", help="List favorite verses")
    commands.add_parser("favorite", help="Toggle the current verse as a favorite")
    unfavorite = commands.add_parser("unfavorite", help="Remove a verse from favorites")
    unfavorite.add_argument("ref", type=VerseRef.parse, help='Verse reference, e.g. "2:255"')
    commands.add_parser("countdown", help="Show time until the next automatic refresh")
    commands.add_parser("widget-refresh", help="Record a refresh request as the widget would")
    commands.add_parser("clear", help="Erase all settings, favorites and history")

    frequency = commands.add_parser("frequency", help="Set the automatic refresh frequency")
    frequency.add_argument("value", choices=[f.value for f in RefreshFrequency])

    commands.add_parser("config", help="Show the resolved configuration")
    commands.add_parser("run", help="Keep the refresh scheduler running until interrupted")
    return parser


def _print_verse(app: VerseApp, snapshot: VerseSnapshot) -> None:
    print(app.share_text(snapshot))


async def _serve(app: VerseApp) -> None:
    """Run in the foreground until cancelled, printing each auto-refresh."""
    app.lifecycle.set_app_state(AppState.ACTIVE)
    _print_verse(app, await app.load_current_verse())

    while True:
        await asyncio.sleep(app.settings.refresh_check_interval_seconds)
        if app.check_auto_refresh_occurred():
            snapshot = app.current_verse()
            if snapshot is not None:
                print()
                _print_verse(app, snapshot)


async def run_command(args: argparse.Namespace, settings: Settings) -> int:
    """
    Execute one command against a freshly started app.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    if args.command == "config":
        for key, value in settings.get_safe_display().items():
            print(f"{key}: {value}")
        return 0

    async with VerseApp(settings) as app:
        if args.command == "current":
            _print_verse(app, await app.load_current_verse())

        elif args.command == "next":
            _print_verse(app, await app.next_verse())

        elif args.command == "random":
            _print_verse(app, await app.random_verse())

        elif args.command == "reset":
            total = await app.reset_sequence()
            print(f"Verse sequence reset and shuffled ({total} verses)")

        elif args.command == "favorites":
            favorites = app.get_favorites()
            if not favorites:
                print("No favorite verses yet")
            for snapshot in favorites:
                print(VerseFormatter.format_chapter_label(snapshot))

        elif args.command == "favorite":
            is_favorite = app.toggle_favorite()
            print("Added to favorites" if is_favorite else "Removed from favorites")

        elif args.command == "unfavorite":
            if app.remove_favorite(args.ref):
                print(f"Removed {args.ref.canonical_reference} from favorites")
            else:
                print(f"{args.ref.canonical_reference} is not a favorite")

        elif args.command == "countdown":
            countdown = app.get_time_until_next_refresh()
            if countdown is None:
                print("Automatic refresh is off (manual)")
            else:
                print(f"Next refresh in {countdown.hours}h {countdown.minutes}m")
            shown, total = app.get_progress()
            print(f"Sequence progress: {shown}/{total} verses")

        elif args.command == "widget-refresh":
            app.widget_bridge.handle_widget_click(WidgetAction.REFRESH)
            print("Widget refresh requested")

        elif args.command == "clear":
            app.clear_all_data()
            print("All data cleared")

        elif args.command == "frequency":
            updated = await app.update_settings(refresh_frequency=args.value)
            print(f"Refresh frequency: {updated.refresh_frequency.display_name}")

        elif args.command == "run":
            print_banner()
            await _serve(app)

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main application entry point.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    args = build_parser().parse_args(argv)

    try:
        settings = Settings()
        settings.ensure_directories()
        configure_logging(settings.log_level, settings.log_directory)

        return asyncio.run(run_command(args, settings))

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130  # Standard exit code for SIGINT

    except (QuranVersesError, APIError) as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except Exception as e:
        logger.critical(f"Fatal error: {e}", exc_info=True)
        print(f"\nFATAL ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
