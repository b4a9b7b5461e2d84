"""Shared configuration and exceptions for mailview."""
