"""
mailview client services.

This package provides the GTK-free parts of the message text view:
link scanning, the link spoofing check, link bookkeeping and message
rendering.
"""

from .link_scanner import (
    ClickablePart,
    DEFAULT_RULES,
    Span,
    TokenRule,
    find_clickable_parts,
    scan_line,
    split_line,
)
from .uri_trust import (
    ConfirmResponse,
    TrustVerdict,
    get_uri_path,
    is_uri_string,
    resolve_confirmation,
    verify_uri,
)
from .link_registry import LinkRegistry, RegisteredLink
from .message_renderer import (
    ActivationResult,
    LinkActivator,
    MessageRenderer,
    TextDocument,
    get_quote_level,
    load_message,
    trim_uri,
)
from .uri_opener import open_uri

__all__ = [
    # Link scanner
    "ClickablePart",
    "DEFAULT_RULES",
    "Span",
    "TokenRule",
    "find_clickable_parts",
    "scan_line",
    "split_line",
    # Trust check
    "ConfirmResponse",
    "TrustVerdict",
    "get_uri_path",
    "is_uri_string",
    "resolve_confirmation",
    "verify_uri",
    # Link registry
    "LinkRegistry",
    "RegisteredLink",
    # Renderer
    "ActivationResult",
    "LinkActivator",
    "MessageRenderer",
    "TextDocument",
    "get_quote_level",
    "load_message",
    "trim_uri",
    # Opener
    "open_uri",
]
