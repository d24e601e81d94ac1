"""Public façade for the setkeeper.data package.

This module exposes the JSON-backed stores for credentials, cached tracks,
sets and temporary playlists. Callers should use this façade instead of
importing from the internal store modules directly.
"""

from .collections import CollectionRepository
from .credentials import CredentialStore
from .playlists import TempPlaylistStore
from .tracks import TrackCacheRepository

__all__ = [
    "CredentialStore",
    "TrackCacheRepository",
    "CollectionRepository",
    "TempPlaylistStore",
]
