"""Shared, editable Spotify song collections ("Sets")."""

__version__ = "0.1.0"
