from datetime import datetime
from typing import Optional

from setkeeper.config import TEMP_PLAYLISTS_FILE
from setkeeper.core import JsonDocument

from .records import format_dt, parse_dt


class TempPlaylistStore:
    """Remembers the temporary Spotify playlist queued for each user.

    Entries expire; an expired entry is treated as absent.
    """

    def __init__(self, path: str = TEMP_PLAYLISTS_FILE) -> None:
        self._doc = JsonDocument(path, "Temporary playlists")

    def get(self, owner_id: str, now: datetime) -> Optional[str]:
        raw = self._doc.load().get(owner_id)
        if not isinstance(raw, dict):
            return None
        expires_at = parse_dt(raw.get("expires_at"))
        if expires_at is None or expires_at <= now:
            return None
        return raw.get("playlist_id")

    def remember(self, owner_id: str, playlist_id: str, expires_at: datetime) -> None:
        with self._doc.transaction() as data:
            data[owner_id] = {
                "playlist_id": playlist_id,
                "expires_at": format_dt(expires_at),
            }

    def forget(self, owner_id: str) -> None:
        with self._doc.transaction() as data:
            data.pop(owner_id, None)
