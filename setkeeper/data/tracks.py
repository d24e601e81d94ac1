from typing import Dict, Iterable, List

from setkeeper.config import TRACKS_FILE
from setkeeper.core import JsonDocument, TrackRecord, log_warning

from .records import deserialize_track, serialize_track


class TrackCacheRepository:
    """Repository for cached track metadata, keyed by Spotify track id."""

    def __init__(self, path: str = TRACKS_FILE) -> None:
        self._doc = JsonDocument(path, "Track cache")

    def find_many(self, track_ids: Iterable[str]) -> Dict[str, TrackRecord]:
        """Return the stored records for the given ids, fresh or stale."""

        data = self._doc.load()
        found: Dict[str, TrackRecord] = {}
        for track_id in track_ids:
            raw = data.get(track_id)
            if not isinstance(raw, dict):
                continue
            try:
                found[track_id] = deserialize_track(raw)
            except (KeyError, TypeError, ValueError):
                log_warning(f"Ignoring malformed cache entry for track {track_id}.")
        return found

    def upsert_many(self, records: List[TrackRecord]) -> int:
        """Insert-or-replace each record by track id; returns the number written."""

        if not records:
            return 0
        with self._doc.transaction() as data:
            for record in records:
                data[record.track_id] = serialize_track(record)
        return len(records)
