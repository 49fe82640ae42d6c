"""SQL safety validation."""

from sqlbridge.validation.safety import SafetyVerdict, UnsafeSQLError, is_safe_select, strip_comments

__all__ = ["SafetyVerdict", "UnsafeSQLError", "is_safe_select", "strip_comments"]
