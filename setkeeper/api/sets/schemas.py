from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field


class SongOut(BaseModel):
    track_id: str
    title: str
    artist_display: str = ""
    album_art_url: Optional[str] = None


class TrackOut(BaseModel):
    track_id: str
    title: str
    artist_display: str
    album_art_url: Optional[str] = None
    album_name: Optional[str] = None
    duration_ms: Optional[int] = None
    uri: Optional[str] = None
    external_url: Optional[str] = None
    explicit: Optional[bool] = None
    popularity: Optional[int] = None
    last_refreshed_at: datetime


class SetOut(BaseModel):
    id: str
    owner_id: str
    name: str
    description: Optional[str] = None
    songs: List[SongOut]
    editor_ids: List[str]
    tags: List[str]
    images: List[str]
    version: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CreateSetRequest(BaseModel):
    name: str
    description: Optional[str] = None
    songs: List[str] = []
    tags: List[str] = []
    editor_ids: List[str] = []


class UpdateSetRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[List[str]] = None


class AddSongsRequest(BaseModel):
    songs: List[str]


class AddSongsResponse(BaseModel):
    songs: List[SongOut]
    added: int
    skipped: List[str]
    added_tracks: List[TrackOut] = []


# Clients may send the final order as ids or as the song objects they display.
SongRef = Union[str, Dict[str, Any]]


class ReplaceSongsRequest(BaseModel):
    songs: List[SongRef] = []


class ReplaceSongsResponse(BaseModel):
    songs: List[SongOut]
    removed_count: int
    removed: List[SongOut]
    order_changed: bool
    length: int


class MoveSongRequest(BaseModel):
    from_index: int = Field(ge=0)
    to_index: int = Field(ge=0)


class QueueRequest(BaseModel):
    track_ids: List[str]
    play_now: bool = False
    device_id: Optional[str] = None
    name: Optional[str] = None


class QueueResponse(BaseModel):
    ok: bool = True
    playlist_id: str
    total: int
    device_id: Optional[str] = None
