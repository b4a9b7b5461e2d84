#!/usr/bin/env python3
"""
Command-line interface for mailview.

Usage:
    mailview [OPTIONS] links FILE
    mailview [OPTIONS] scan [TEXT ...]
    mailview [OPTIONS] check URI VISIBLE_TEXT
    mailview [OPTIONS] view FILE

Options:
    --debug         Enable debug logging
    --config FILE   Load settings from a TOML file
    --version       Show version and exit
    --help          Show this message and exit
"""

import argparse
import logging
import os
import sys
from typing import Optional

from mailview import __version__
from mailview.common.config import LoggingSettings, Settings, get_settings
from mailview.common.exceptions import MailViewError

logger = logging.getLogger(__name__)


def setup_logging(debug: bool = False, settings: Optional[LoggingSettings] = None) -> None:
    """
    Configure logging for the command-line tools.

    Logs go to stderr so command output on stdout stays clean.

    Args:
        debug: Enable debug logging.
        settings: Logging settings for level, format and log file.
    """
    settings = settings or LoggingSettings()
    log_level = logging.DEBUG if debug else getattr(logging, settings.level)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if settings.file:
        handlers.append(logging.FileHandler(settings.file, encoding="utf-8"))

    logging.basicConfig(
        level=log_level,
        format=settings.format,
        handlers=handlers,
    )

    if not debug:
        logging.getLogger("gi").setLevel(logging.WARNING)


def check_dependencies() -> bool:
    """
    Check that GTK 4 and libadwaita are available.

    Returns:
        True if all dependencies are available, False otherwise.
    """
    try:
        import gi

        gi.require_version("Gtk", "4.0")
        gi.require_version("Adw", "1")

        from gi.repository import Adw, Gtk  # noqa: F401

        return True
    except (ImportError, ValueError) as e:
        print(f"Error: Missing required dependencies: {e}", file=sys.stderr)
        print("\nPlease install the required packages:", file=sys.stderr)
        print("  - PyGObject", file=sys.stderr)
        print("  - GTK 4", file=sys.stderr)
        print("  - libadwaita", file=sys.stderr)
        print("\nOn Ubuntu/Debian:", file=sys.stderr)
        print(
            "  sudo apt install python3-gi gir1.2-gtk-4.0 gir1.2-adw-1",
            file=sys.stderr,
        )
        print("\nOn Fedora:", file=sys.stderr)
        print("  sudo dnf install python3-gobject gtk4 libadwaita", file=sys.stderr)
        return False


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(
        prog="mailview",
        description="mailview - message text view with link spoofing checks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    List the links of a message, '!' marks suspicious ones:
        mailview links message.eml

    Check a link against the text shown for it:
        mailview check http://evil.example/ http://bank.example/

Environment Variables:
    MAILVIEW_DEBUG          Enable debug mode (true/false)
    MAILVIEW_CONFIG_FILE    TOML configuration file
        """,
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    parser.add_argument(
        "--config",
        metavar="FILE",
        help="Load settings from a TOML file",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"mailview {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    links = subparsers.add_parser("links", help="List the links of a message file")
    links.add_argument("file", help="Message file (.eml)")

    scan = subparsers.add_parser("scan", help="Find clickable parts in text")
    scan.add_argument("text", nargs="*", help="Lines to scan (default: stdin)")

    check = subparsers.add_parser("check", help="Check a link against its visible text")
    check.add_argument("uri", help="The link target")
    check.add_argument("visible", help="The text shown for the link")

    view = subparsers.add_parser("view", help="Show a message file in a window")
    view.add_argument("file", help="Message file (.eml)")

    return parser.parse_args(argv)


def cmd_links(args: argparse.Namespace, settings: Settings) -> int:
    from mailview.client.services.message_renderer import MessageRenderer, load_message
    from mailview.client.services.uri_trust import verify_uri

    renderer = MessageRenderer(settings.viewer)
    renderer.render_message(load_message(args.file))

    for link in renderer.links:
        visible = renderer.visible_text(link)
        verdict = verify_uri(link.uri, visible)
        flag = "" if verdict.trusted else "!"
        print(f"{flag}{link.start}-{link.end}\t{link.uri}\t{visible}")

    return 0


def cmd_scan(args: argparse.Namespace, settings: Settings) -> int:
    from mailview.client.services.link_scanner import find_clickable_parts

    lines = args.text or sys.stdin
    for lineno, line in enumerate(lines, 1):
        for part in find_clickable_parts(line.rstrip("\r\n")):
            print(f"{lineno}:{part.begin}-{part.end}\t{part.uri}")

    return 0


def cmd_check(args: argparse.Namespace, settings: Settings) -> int:
    from mailview.client.services.uri_trust import verify_uri

    verdict = verify_uri(args.uri, args.visible)
    if verdict.trusted:
        print("trusted")
        return 0

    print(f"untrusted: {verdict.reason}")
    return 2


def cmd_view(args: argparse.Namespace, settings: Settings) -> int:
    if not check_dependencies():
        return 1

    from mailview.client.ui.application import run_application

    logger.info("Launching GTK application")
    exit_code = run_application(args.file, settings=settings.viewer)
    logger.info(f"Application exited with code {exit_code}")
    return exit_code


COMMANDS = {
    "links": cmd_links,
    "scan": cmd_scan,
    "check": cmd_check,
    "view": cmd_view,
}


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for mailview.

    Returns:
        Exit code (0 for success, 2 for an untrusted link check,
        1 for failures).
    """
    args = parse_args(argv)

    try:
        settings = Settings.from_toml(args.config) if args.config else get_settings()
    except MailViewError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    debug = (
        args.debug
        or settings.debug
        or os.getenv("MAILVIEW_DEBUG", "").lower() in ("true", "1", "yes")
    )
    setup_logging(debug, settings.logging)
    logger.debug(f"mailview v{__version__}, command {args.command}")

    try:
        return COMMANDS[args.command](args, settings)

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0

    except MailViewError as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
