"""Command line client for the DB Admin API."""

__version__ = "0.1.0"
