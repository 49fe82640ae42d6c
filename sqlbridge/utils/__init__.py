"""Shared utilities."""

from sqlbridge.utils.redact import redact_connection_string, redact_secret

__all__ = ["redact_connection_string", "redact_secret"]
