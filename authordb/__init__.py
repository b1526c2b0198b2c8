"""Build user-grouped post databases from CSV exports."""

__version__ = "0.1.0"
