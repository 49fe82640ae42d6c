"""SQLBridge - schema-aware natural language to SQL translation."""

__version__ = "0.1.0"
