"""
Version information for BOQExtract.

This is the single source of truth for the application version.
Used by: CLI, packaging and JSON reports.
"""

__version__ = "1.0.0"
APP_NAME = "BOQExtract"
