"""Normalization of Spotify track payloads into TrackRecord.

Artist information reaches us in several shapes depending on the source
(full track objects, search results, client-supplied song objects): a plain
string, a list of strings, a list of artist objects or a single object. All of
them are folded into one display string here, before anything is cached.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from setkeeper.core import TrackRecord

TRACK_URI_PREFIX = "spotify:track:"
TRACK_URL_MARKER = "open.spotify.com/track/"


def normalize_track_id(value: str) -> str:
    """
    Reduce a track reference to the bare catalog id.

    Accepts:
      - "4uLU6hMCjMI75M1A2tKUQC"
      - "spotify:track:4uLU6hMCjMI75M1A2tKUQC"
      - "https://open.spotify.com/track/4uLU6hMCjMI75M1A2tKUQC?si=..."
    """
    value = value.strip()
    if value.startswith(TRACK_URI_PREFIX):
        return value[len(TRACK_URI_PREFIX):]
    if TRACK_URL_MARKER in value:
        tail = value.split(TRACK_URL_MARKER, 1)[1]
        return tail.split("?", 1)[0].split("/", 1)[0]
    return value


def track_uri(track_id: str) -> str:
    return f"{TRACK_URI_PREFIX}{track_id}"


def _artist_name(item: Any) -> Optional[str]:
    if isinstance(item, str):
        return item.strip() or None
    if isinstance(item, dict):
        name = item.get("name") or item.get("artist")
        return str(name).strip() if name else None
    if item is None:
        return None
    return str(item)


def artist_display(value: Any) -> str:
    """Fold any artist representation into "A, B, C"."""

    if isinstance(value, (list, tuple)):
        names = [_artist_name(item) for item in value]
        return ", ".join(n for n in names if n)
    return _artist_name(value) or ""


def album_art_url(album: Any) -> Optional[str]:
    """First (largest) album image URL, if any."""

    if not isinstance(album, dict):
        return None
    if album.get("image"):
        return album["image"]
    images = album.get("images") or []
    if images and isinstance(images[0], dict):
        return images[0].get("url") or None
    return None


def track_from_payload(
    payload: Optional[Dict[str, Any]],
    refreshed_at: datetime,
) -> Optional[TrackRecord]:
    """
    Map one Spotify track object to a TrackRecord.

    Returns None for null entries (unknown ids) and for objects without an id.
    """
    if not isinstance(payload, dict) or not payload.get("id"):
        return None

    album = payload.get("album")
    artists = payload.get("artists")
    if artists is None:
        artists = payload.get("artist") or payload.get("artistName")

    return TrackRecord(
        track_id=payload["id"],
        title=payload.get("name") or payload.get("title") or "",
        artist_display=artist_display(artists),
        last_refreshed_at=refreshed_at,
        album_art_url=album_art_url(album),
        album_name=album.get("name") if isinstance(album, dict) else None,
        duration_ms=payload.get("duration_ms"),
        uri=payload.get("uri"),
        external_url=(payload.get("external_urls") or {}).get("spotify"),
        explicit=payload.get("explicit"),
        popularity=payload.get("popularity"),
    )
