"""
Message text view widget for mailview.

This module provides a read-only Gtk.TextView that shows a message as
tagged text, highlights quotes and links, and opens links on
double-click or middle-click. Links whose visible text disagrees with
their target are only opened after the user confirms them.
"""

from __future__ import annotations

import logging
from email.message import Message
from typing import Any, Callable, Optional

import gi

gi.require_version("Gtk", "4.0")
gi.require_version("Adw", "1")

from gi.repository import Adw, GObject, Gtk, Pango

from ...common.config import ViewerSettings, get_settings
from ..services.link_registry import RegisteredLink
from ..services.message_renderer import (
    HEADER_TAG,
    HEADER_TITLE_TAG,
    LINK_TAG,
    QUOTE_TAGS,
    LinkActivator,
    MessageRenderer,
    trim_uri,
)
from ..services.uri_trust import ConfirmResponse, TrustVerdict

logger = logging.getLogger(__name__)

QUOTE_COLORS = ("#0000bf", "#00bf00", "#bf0000")
LINK_COLOR = "#0000ff"


class MessageTextView(Gtk.TextView):
    """Read-only text view showing one message with clickable links."""

    __gtype_name__ = "MessageTextView"

    __gsignals__ = {
        "link-clicked": (GObject.SignalFlags.RUN_FIRST, None, (str,)),
        "compose-requested": (GObject.SignalFlags.RUN_FIRST, None, (str,)),
        "status-changed": (GObject.SignalFlags.RUN_FIRST, None, (str,)),
    }

    def __init__(self, settings: Optional[ViewerSettings] = None) -> None:
        """Initialize the message text view.

        Args:
            settings: Viewer settings; the application settings are used
                when not given.
        """
        super().__init__(
            editable=False,
            wrap_mode=Gtk.WrapMode.WORD_CHAR,
            cursor_visible=False,
            left_margin=16,
            right_margin=16,
            top_margin=16,
            bottom_margin=16,
        )

        self._settings = settings or get_settings().viewer
        self._renderer = MessageRenderer(self._settings)
        self._activator = LinkActivator(
            self._renderer,
            compose=self._on_compose,
            confirm=self._confirm_link,
        )
        self._hover_link: Optional[RegisteredLink] = None

        self._create_tags()
        self._setup_controllers()

    @property
    def renderer(self) -> MessageRenderer:
        return self._renderer

    def _create_tags(self) -> None:
        """Create the text tags used by the renderer."""
        buffer = self.get_buffer()

        buffer.create_tag(HEADER_TAG, pixels_above_lines=0)
        buffer.create_tag(HEADER_TITLE_TAG, weight=Pango.Weight.BOLD)

        for name, color in zip(QUOTE_TAGS, QUOTE_COLORS):
            buffer.create_tag(name, foreground=color)

        buffer.create_tag(
            LINK_TAG,
            foreground=LINK_COLOR,
            underline=Pango.Underline.SINGLE,
        )

    def _setup_controllers(self) -> None:
        """Set up click and pointer motion handling."""
        click = Gtk.GestureClick()
        click.set_button(0)
        click.connect("pressed", self._on_pressed)
        self.add_controller(click)

        motion = Gtk.EventControllerMotion()
        motion.connect("motion", self._on_motion)
        motion.connect("leave", self._on_leave)
        self.add_controller(motion)

    def show_message(self, message: Message) -> None:
        """Display a message, replacing the current one."""
        self._renderer.render_message(message)
        self._sync_buffer()

    def show_text(self, text: str) -> None:
        """Display plain text, replacing the current content."""
        self._renderer.clear()
        self._renderer.write_text(text)
        self._sync_buffer()

    def clear(self) -> None:
        """Clear the displayed message and its links."""
        self._renderer.clear()
        self.get_buffer().set_text("")
        self._set_status("")

    def search_string(self, query: str, case_sensitive: bool = False) -> bool:
        """Select the next occurrence of query after the cursor.

        Returns:
            True if a match was found.
        """
        buffer = self.get_buffer()
        mark = buffer.get_insert()
        start = buffer.get_iter_at_mark(mark).get_offset()

        pos = self._renderer.search(query, start, case_sensitive)
        if pos is None:
            return False

        match_start = buffer.get_iter_at_offset(pos)
        match_end = buffer.get_iter_at_offset(pos + len(query))
        buffer.select_range(match_end, match_start)
        self.scroll_to_mark(mark, 0.0, False, 0.0, 0.0)
        return True

    def search_string_backward(self, query: str, case_sensitive: bool = False) -> bool:
        """Select the closest occurrence of query starting before the cursor.

        The cursor moves to the start of the match, so repeated searches
        keep moving towards the top of the message.

        Returns:
            True if a match was found.
        """
        buffer = self.get_buffer()
        mark = buffer.get_insert()
        end = buffer.get_iter_at_mark(mark).get_offset()

        pos = self._renderer.search_backward(query, end, case_sensitive)
        if pos is None:
            return False

        match_start = buffer.get_iter_at_offset(pos)
        match_end = buffer.get_iter_at_offset(pos + len(query))
        buffer.select_range(match_start, match_end)
        self.scroll_to_mark(mark, 0.0, False, 0.0, 0.0)
        return True

    def _sync_buffer(self) -> None:
        """Copy the rendered document into the text buffer."""
        buffer = self.get_buffer()
        buffer.set_text("")
        document = self._renderer.document

        for run in document.runs:
            end_iter = buffer.get_end_iter()
            text = document.get_text(run.start, run.end)
            if run.tags:
                buffer.insert_with_tags_by_name(end_iter, text, *run.tags)
            else:
                buffer.insert(end_iter, text)

        buffer.place_cursor(buffer.get_start_iter())
        self._set_status("")

    def _offset_at(self, x: float, y: float) -> Optional[int]:
        """Return the buffer offset under widget coordinates."""
        bx, by = self.window_to_buffer_coords(
            Gtk.TextWindowType.WIDGET, int(x), int(y)
        )
        found, text_iter = self.get_iter_at_location(bx, by)
        if not found:
            return None
        return text_iter.get_offset()

    def _link_at(self, x: float, y: float) -> Optional[RegisteredLink]:
        offset = self._offset_at(x, y)
        if offset is None:
            return None
        return self._renderer.link_at(offset)

    def _set_status(self, text: str) -> None:
        self.emit("status-changed", text)

    # Signal handlers

    def _on_pressed(
        self, gesture: Gtk.GestureClick, n_press: int, x: float, y: float
    ) -> None:
        """Activate a link on double-click or middle-click."""
        link = self._link_at(x, y)
        self._set_status("")
        if link is None:
            return

        self._set_status(trim_uri(link.uri, self._settings.status_trim_length))

        button = gesture.get_current_button()
        if (n_press == 2 and button == 1) or button == 2:
            self.emit("link-clicked", link.uri)
            result = self._activator.activate(link)
            logger.debug(f"Activated {link.uri}: {result.value}")

    def _on_motion(self, controller: Gtk.EventControllerMotion, x: float, y: float) -> None:
        """Show the target of the link under the pointer."""
        link = self._link_at(x, y)
        if link == self._hover_link:
            return
        self._hover_link = link
        if link is None:
            self.set_cursor_from_name("text")
            self._set_status("")
        else:
            self.set_cursor_from_name("pointer")
            self._set_status(trim_uri(link.uri, self._settings.status_trim_length))

    def _on_leave(self, controller: Gtk.EventControllerMotion) -> None:
        self._hover_link = None
        self._set_status("")

    def _on_compose(self, address: str) -> None:
        self.emit("compose-requested", address)

    def _confirm_link(
        self, verdict: TrustVerdict, done: Callable[[Any], None]
    ) -> None:
        """Ask the user whether to open a link that looks spoofed.

        "No" is both the default and the close response, so dismissing
        the dialog never opens the link.
        """
        root = self.get_root()
        dialog = Adw.MessageDialog(
            transient_for=root if isinstance(root, Gtk.Window) else None,
            modal=True,
            heading="Warning",
            body=verdict.prompt_message,
        )

        dialog.add_response(ConfirmResponse.NO.value, "_No")
        dialog.add_response(ConfirmResponse.YES.value, "_Yes")
        dialog.set_response_appearance(
            ConfirmResponse.YES.value, Adw.ResponseAppearance.DESTRUCTIVE
        )
        dialog.set_default_response(ConfirmResponse.NO.value)
        dialog.set_close_response(ConfirmResponse.NO.value)

        def on_response(dialog: Adw.MessageDialog, response: str) -> None:
            done(response)

        dialog.connect("response", on_response)
        dialog.present()


__all__ = ["MessageTextView"]
