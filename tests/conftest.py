"""
Pytest fixtures for mailview tests.

This module provides common fixtures used across test modules.
"""

import os
import sys
from email.message import EmailMessage

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from mailview.client.services.message_renderer import MessageRenderer  # noqa: E402
from mailview.common.config import ViewerSettings  # noqa: E402


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep settings independent from the developer's environment."""
    for name in list(os.environ):
        if name.startswith(("MAILVIEW_", "LOG_")):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def viewer_settings():
    """Provide default viewer settings."""
    return ViewerSettings()


@pytest.fixture
def renderer(viewer_settings):
    """Provide a renderer with default settings."""
    return MessageRenderer(viewer_settings)


@pytest.fixture
def sample_message():
    """Provide a message with a plain part and an inline HTML part."""
    msg = EmailMessage()
    msg["From"] = "Alice <alice@example.com>"
    msg["To"] = "bob@example.org"
    msg["Subject"] = "Quarterly report"
    msg["Date"] = "Mon, 13 Jan 2026 14:30:00 +0000"
    msg["X-Mailer"] = "TestMailer 1.0"
    msg.set_content(
        "Hi Bob,\n"
        "\n"
        "See http://example.com/report, thanks.\n"
        "> quoted reply with www.example.net\n"
    )
    msg.add_attachment(
        '<p>Log in at <a href="http://evil.example/login">http://bank.example/login</a>.</p>',
        subtype="html",
        disposition="inline",
    )
    return msg


@pytest.fixture
def eml_file(tmp_path, sample_message):
    """Write the sample message to a file and return its path."""
    path = tmp_path / "sample.eml"
    path.write_bytes(bytes(sample_message))
    return path


@pytest.fixture
def alternative_message():
    """Provide a multipart/alternative message with plain and HTML versions."""
    msg = EmailMessage()
    msg["Subject"] = "Both versions"
    msg.set_content("plain body http://a.example/x\n")
    msg.add_alternative(
        '<p>html body <a href="http://a.example/x">here</a></p>',
        subtype="html",
    )
    return msg
