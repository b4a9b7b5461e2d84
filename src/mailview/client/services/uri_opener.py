"""
Opening of link targets outside the viewer.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
import webbrowser
from typing import Optional

logger = logging.getLogger(__name__)


def build_command(uri: str, command: str) -> list[str]:
    """Build the argument list for a user-configured open command.

    Every "%s" in the command is replaced by the URI; without one the
    URI is appended as the last argument.
    """
    args = shlex.split(command)
    if any("%s" in arg for arg in args):
        return [arg.replace("%s", uri) for arg in args]
    return args + [uri]


def open_uri(uri: str, command: Optional[str] = None) -> bool:
    """Open a URI with the configured command or the default browser.

    Args:
        uri: The link target.
        command: Optional command template, see build_command().

    Returns:
        True if the URI was handed off successfully.
    """
    if uri.lower().startswith("www."):
        uri = "http://" + uri

    if command:
        try:
            args = build_command(uri, command)
        except ValueError as e:
            logger.error(f"Invalid open command '{command}': {e}")
            return False
        if not args:
            logger.error("Open command is empty")
            return False
        try:
            subprocess.Popen(args)
        except OSError as e:
            logger.error(f"Failed to open link with '{args[0]}': {e}")
            return False
        logger.info(f"Opened link with {args[0]}: {uri}")
        return True

    try:
        opened = webbrowser.open(uri)
    except webbrowser.Error as e:
        logger.error(f"Failed to open link: {e}")
        return False

    if not opened:
        logger.error(f"No browser available to open {uri}")
    return opened
