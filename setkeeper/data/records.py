"""JSON (de)serialization of the stored records.

Stores keep plain dicts on disk; these helpers are the only place that knows
the on-disk field names.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from setkeeper.core import Collection, CredentialRecord, SetSong, TrackRecord


def format_dt(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def parse_dt(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO datetime string and normalize it to UTC-aware.

    This prevents mixing naive and aware datetimes in freshness checks.
    """
    if not value:
        return None

    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


# ---------- Credentials ----------


def serialize_credential(record: CredentialRecord) -> Dict[str, Any]:
    return {
        "owner_id": record.owner_id,
        "access_token": record.access_token,
        "refresh_token": record.refresh_token,
        "expires_at": record.expires_at_ms,
        "token_type": record.token_type,
        "scope": record.scope,
    }


def deserialize_credential(owner_id: str, data: Dict[str, Any]) -> CredentialRecord:
    access_token = data["access_token"]
    refresh_token = data["refresh_token"]
    if not access_token or not refresh_token:
        raise ValueError("credential is missing a token")
    return CredentialRecord(
        owner_id=owner_id,
        access_token=access_token,
        refresh_token=refresh_token,
        expires_at_ms=int(data["expires_at"]),
        token_type=data.get("token_type"),
        scope=data.get("scope"),
    )


# ---------- Tracks ----------


def serialize_track(record: TrackRecord) -> Dict[str, Any]:
    return {
        "track_id": record.track_id,
        "title": record.title,
        "artist_display": record.artist_display,
        "album_art_url": record.album_art_url,
        "album_name": record.album_name,
        "duration_ms": record.duration_ms,
        "uri": record.uri,
        "external_url": record.external_url,
        "explicit": record.explicit,
        "popularity": record.popularity,
        "last_refreshed_at": format_dt(record.last_refreshed_at),
    }


def deserialize_track(data: Dict[str, Any]) -> TrackRecord:
    refreshed_at = parse_dt(data.get("last_refreshed_at"))
    if refreshed_at is None:
        # Unknown age: treat as stale so the next access re-hydrates it.
        refreshed_at = datetime.fromtimestamp(0, tz=timezone.utc)

    return TrackRecord(
        track_id=data["track_id"],
        title=data.get("title") or "",
        artist_display=data.get("artist_display") or "",
        last_refreshed_at=refreshed_at,
        album_art_url=data.get("album_art_url"),
        album_name=data.get("album_name"),
        duration_ms=data.get("duration_ms"),
        uri=data.get("uri"),
        external_url=data.get("external_url"),
        explicit=data.get("explicit"),
        popularity=data.get("popularity"),
    )


# ---------- Collections ----------


def serialize_song(song: SetSong) -> Dict[str, Any]:
    return {
        "track_id": song.track_id,
        "title": song.title,
        "artist_display": song.artist_display,
        "album_art_url": song.album_art_url,
    }


def deserialize_song(data: Dict[str, Any]) -> SetSong:
    return SetSong(
        track_id=data["track_id"],
        title=data.get("title") or "",
        artist_display=data.get("artist_display") or "",
        album_art_url=data.get("album_art_url"),
    )


def serialize_collection(collection: Collection) -> Dict[str, Any]:
    return {
        "id": collection.id,
        "owner_id": collection.owner_id,
        "name": collection.name,
        "description": collection.description,
        "songs": [serialize_song(s) for s in collection.songs],
        "editor_ids": list(collection.editor_ids),
        "tags": list(collection.tags),
        "images": list(collection.images),
        "version": collection.version,
        "created_at": format_dt(collection.created_at),
        "updated_at": format_dt(collection.updated_at),
    }


def deserialize_collection(data: Dict[str, Any]) -> Collection:
    return Collection(
        id=data["id"],
        owner_id=data["owner_id"],
        name=data.get("name") or "",
        description=data.get("description"),
        songs=[deserialize_song(s) for s in data.get("songs") or [] if isinstance(s, dict)],
        editor_ids=list(data.get("editor_ids") or []),
        tags=list(data.get("tags") or []),
        images=list(data.get("images") or []),
        version=int(data.get("version", 0)),
        created_at=parse_dt(data.get("created_at")),
        updated_at=parse_dt(data.get("updated_at")),
    )
