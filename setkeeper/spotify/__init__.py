"""Public façade for the setkeeper.spotify package.

This module exposes the Spotify integration: the HTTP client, the credential
lifecycle manager and the track payload normalization helpers. Callers should
import these symbols from this façade instead of the internal modules.
"""

from .auth import OAuthStateStore, TokenManager
from .client import SpotifyClient, TokenGrant
from .tracks import (
    artist_display,
    normalize_track_id,
    track_from_payload,
    track_uri,
)

__all__ = [
    "SpotifyClient",
    "TokenGrant",
    "TokenManager",
    "OAuthStateStore",
    "artist_display",
    "normalize_track_id",
    "track_from_payload",
    "track_uri",
]
