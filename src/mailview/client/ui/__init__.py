"""
mailview GTK UI components.
"""

from .application import MailViewApplication, run_application
from .textview import MessageTextView

__all__ = [
    "MailViewApplication",
    "MessageTextView",
    "run_application",
]
