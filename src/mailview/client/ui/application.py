"""
mailview GTK Application.

This module provides a small GTK 4 application that shows one message
file in a MessageTextView.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import gi

gi.require_version("Gtk", "4.0")
gi.require_version("Adw", "1")

from gi.repository import Adw, Gio, GLib, Gtk, Pango

from ...common.config import ViewerSettings, get_settings
from ...common.exceptions import MailViewError
from ..services.message_renderer import load_message
from ..services.uri_opener import open_uri
from .textview import MessageTextView

logger = logging.getLogger(__name__)


class MailViewApplication(Adw.Application):
    """
    Message viewer application.

    Attributes:
        path: The message file to show.
        text_view: The view showing the message, once activated.
    """

    APP_ID = "io.mailview.viewer"

    def __init__(self, path: str | Path, settings: Optional[ViewerSettings] = None) -> None:
        """Initialize the application for one message file."""
        super().__init__(
            application_id=self.APP_ID,
            flags=Gio.ApplicationFlags.NON_UNIQUE,
        )

        self.path = Path(path)
        self.text_view: Optional[MessageTextView] = None
        self._settings = settings or get_settings().viewer

        GLib.set_application_name("mailview")
        GLib.set_prgname("mailview")

    def do_activate(self) -> None:
        """Create the window and show the message."""
        window = Adw.ApplicationWindow(
            application=self,
            title=self.path.name,
            default_width=800,
            default_height=600,
        )

        box = Gtk.Box(orientation=Gtk.Orientation.VERTICAL, spacing=0)
        box.append(Adw.HeaderBar())

        scrolled = Gtk.ScrolledWindow(
            hscrollbar_policy=Gtk.PolicyType.NEVER,
            vscrollbar_policy=Gtk.PolicyType.AUTOMATIC,
            vexpand=True,
        )
        self.text_view = MessageTextView(self._settings)
        self.text_view.connect("compose-requested", self._on_compose_requested)
        scrolled.set_child(self.text_view)
        box.append(scrolled)

        status = Gtk.Label(
            xalign=0,
            ellipsize=Pango.EllipsizeMode.END,
            margin_start=8,
            margin_end=8,
            margin_top=4,
            margin_bottom=4,
        )
        status.add_css_class("dim-label")
        self.text_view.connect("status-changed", lambda view, text: status.set_text(text))
        box.append(status)

        window.set_content(box)
        self._load()
        window.present()

    def _load(self) -> None:
        """Load the message file into the view."""
        try:
            message = load_message(self.path)
        except MailViewError as e:
            logger.error(str(e))
            self.text_view.show_text(f"{e.message}\n")
            return

        logger.info(f"Showing {self.path}")
        self.text_view.show_message(message)

    def _on_compose_requested(self, view: MessageTextView, address: str) -> None:
        """Hand mailto: links to the desktop's mail composer."""
        logger.info(f"Composing new message to {address}")
        open_uri(f"mailto:{address}")


def run_application(
    path: str | Path,
    args: Optional[list[str]] = None,
    settings: Optional[ViewerSettings] = None,
) -> int:
    """
    Run the viewer for one message file.

    Args:
        path: The message file.
        args: Command-line arguments for GTK. If None, uses sys.argv[:1].
        settings: Viewer settings; the application settings when None.

    Returns:
        Exit code from the application.
    """
    if args is None:
        args = sys.argv[:1]

    app = MailViewApplication(path, settings)
    return app.run(args)
