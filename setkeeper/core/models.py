from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional


@dataclass
class CredentialRecord:
    """
    Stored Spotify OAuth token pair for one application user.

    expires_at_ms is epoch milliseconds and always describes access_token.
    """

    owner_id: str
    access_token: str
    refresh_token: str
    expires_at_ms: int
    token_type: Optional[str] = None
    scope: Optional[str] = None


@dataclass
class TrackRecord:
    """
    Cached catalog metadata for one Spotify track id.

    Every upstream payload shape is normalized into this record before it is
    stored (see setkeeper.spotify.tracks).
    """

    track_id: str
    title: str
    artist_display: str
    last_refreshed_at: datetime
    album_art_url: Optional[str] = None
    album_name: Optional[str] = None
    duration_ms: Optional[int] = None
    uri: Optional[str] = None
    external_url: Optional[str] = None
    explicit: Optional[bool] = None
    popularity: Optional[int] = None

    def is_fresh(self, now: datetime, ttl: timedelta) -> bool:
        return now - self.last_refreshed_at < ttl

    def to_song(self) -> "SetSong":
        return SetSong(
            track_id=self.track_id,
            title=self.title,
            artist_display=self.artist_display,
            album_art_url=self.album_art_url,
        )


@dataclass
class SetSong:
    track_id: str
    title: str
    artist_display: str = ""
    album_art_url: Optional[str] = None


@dataclass
class Collection:
    """
    A Set: a named, ordered list of songs shared between an owner and editors.

    - songs   : canonical order, no duplicate track_id
    - images  : derived from songs (first artwork URLs), never set by clients
    - version : bumped on every write, used for optimistic concurrency
    """

    id: str
    owner_id: str
    name: str
    songs: List[SetSong] = field(default_factory=list)
    editor_ids: List[str] = field(default_factory=list)
    description: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    images: List[str] = field(default_factory=list)
    version: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def track_ids(self) -> List[str]:
        return [s.track_id for s in self.songs]

    def can_edit(self, user_id: str) -> bool:
        return user_id == self.owner_id or user_id in self.editor_ids


@dataclass
class AddSongsResult:
    songs: List[SetSong]
    added_count: int
    skipped: List[str]
    added_tracks: List[TrackRecord] = field(default_factory=list)


@dataclass
class ReplaceSongsResult:
    songs: List[SetSong]
    removed_count: int
    removed: List[SetSong]
    order_changed: bool
    length: int


@dataclass
class QueueResult:
    playlist_id: str
    total: int
    device_id: Optional[str] = None
