"""
Custom exceptions for mailview.

This module defines the exceptions used throughout the application.
The link scanner and the URI trust check never raise these to their
callers; they are used by configuration loading, message loading and
the few places that validate caller input.
"""

from typing import Any, Optional


class MailViewError(Exception):
    """Base exception for all mailview errors."""

    def __init__(self, message: str,
                 details: Optional[dict[str, Any]] = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error details.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


# Configuration Exceptions
class ConfigurationError(MailViewError):
    """Base exception for configuration-related errors."""


class MissingConfigError(ConfigurationError):
    """Raised when a required configuration value is missing."""

    def __init__(
        self, config_key: str, details: Optional[dict[str, Any]] = None
    ) -> None:
        """
        Initialize missing config error.

        Args:
            config_key: The missing configuration key.
            details: Optional dictionary with additional error details.
        """
        super().__init__(
            f"Missing required configuration: '{config_key}'", details)
        self.config_key = config_key


class InvalidConfigError(ConfigurationError):
    """Raised when a configuration value is invalid."""

    def __init__(
        self,
        config_key: str,
        value: Any,
        reason: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """
        Initialize invalid config error.

        Args:
            config_key: The configuration key with invalid value.
            value: The invalid value.
            reason: Optional reason why the value is invalid.
            details: Optional dictionary with additional error details.
        """
        message = f"Invalid configuration value for '{config_key}': {value}"
        if reason:
            message += f" - {reason}"
        super().__init__(message, details)
        self.config_key = config_key
        self.value = value
        self.reason = reason


# Message Exceptions
class MessageError(MailViewError):
    """Base exception for message-related errors."""


class InvalidMessageError(MessageError):
    """Raised when a message file cannot be read or parsed."""

    def __init__(
        self,
        source: str,
        reason: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """
        Initialize invalid message error.

        Args:
            source: Where the message came from (usually a file path).
            reason: Optional reason the message was rejected.
            details: Optional dictionary with additional error details.
        """
        message = f"Cannot load message from '{source}'"
        if reason:
            message += f": {reason}"
        super().__init__(message, details)
        self.source = source
        self.reason = reason


# Link Exceptions
class LinkError(MailViewError):
    """Base exception for link-related errors."""


class UriParseError(LinkError):
    """Raised when the authority and path of a URI cannot be extracted."""

    def __init__(
        self,
        uri: str,
        reason: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        message = f"Cannot parse URI '{uri}'"
        if reason:
            message += f": {reason}"
        super().__init__(message, details)
        self.uri = uri
        self.reason = reason


# Validation Exceptions
class ValidationError(MailViewError):
    """Base exception for validation-related errors."""

    def __init__(
        self,
        field: str,
        value: Any,
        reason: str,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """
        Initialize validation error.

        Args:
            field: The field that failed validation.
            value: The invalid value.
            reason: The reason for validation failure.
            details: Optional dictionary with additional error details.
        """
        super().__init__(f"Validation failed for '{field}': {reason}", details)
        self.field = field
        self.value = value
        self.reason = reason
