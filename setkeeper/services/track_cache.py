"""Read-through cache of Spotify track metadata.

hydrate() resolves bare track ids into TrackRecords: fresh local entries are
used as-is, everything else is fetched from Spotify in groups of 50, one group
at a time. A failing group is logged and skipped, a rate-limited group pauses
(at most 5 seconds) before the next one, and ids Spotify does not know are
simply absent from the result. Callers diff requested vs returned ids to learn
what was skipped; hydrate() never raises because of individual ids.
"""

from datetime import datetime, timedelta, timezone
import time
from typing import Callable, Dict, Iterable, List, Optional

from setkeeper.config import HYDRATE_BATCH_SIZE, RATE_LIMIT_MAX_WAIT, TRACK_CACHE_TTL
from setkeeper.core import (
    RateLimited,
    TrackRecord,
    UpstreamUnavailable,
    log_debug,
    log_warning,
)
from setkeeper.data import TrackCacheRepository
from setkeeper.spotify import SpotifyClient, track_from_payload


def dedupe(ids: Iterable[str]) -> List[str]:
    """Remove duplicates, first occurrence wins."""
    seen = set()
    unique: List[str] = []
    for item in ids:
        if item in seen:
            continue
        seen.add(item)
        unique.append(item)
    return unique


class MetadataCache:
    def __init__(
        self,
        repository: TrackCacheRepository,
        client: SpotifyClient,
        *,
        ttl: timedelta = TRACK_CACHE_TTL,
        batch_size: int = HYDRATE_BATCH_SIZE,
        max_wait: float = RATE_LIMIT_MAX_WAIT,
        now_fn: Optional[Callable[[], datetime]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self.repository = repository
        self.client = client
        self.ttl = ttl
        self.batch_size = batch_size
        self.max_wait = max_wait
        self._now = now_fn or (lambda: datetime.now(timezone.utc))
        self._sleep = sleep

    def hydrate(self, access_token: str, track_ids: Iterable[str]) -> List[TrackRecord]:
        unique = dedupe(track_ids)
        if not unique:
            return []

        now = self._now()
        cached = self.repository.find_many(unique)
        fresh: Dict[str, TrackRecord] = {
            tid: record for tid, record in cached.items() if record.is_fresh(now, self.ttl)
        }

        missing = [tid for tid in unique if tid not in fresh]
        if missing:
            log_debug(
                f"Track cache: {len(fresh)} fresh, {len(missing)} to fetch from Spotify."
            )
            fresh.update(self._fetch(access_token, missing))

        return [fresh[tid] for tid in unique if tid in fresh]

    def store(self, records: List[TrackRecord]) -> int:
        """Upsert records obtained elsewhere (e.g. search results)."""
        return self.repository.upsert_many(records)

    def _fetch(self, access_token: str, missing: List[str]) -> Dict[str, TrackRecord]:
        groups = [
            missing[i : i + self.batch_size]
            for i in range(0, len(missing), self.batch_size)
        ]
        fetched: Dict[str, TrackRecord] = {}

        for index, group in enumerate(groups, start=1):
            has_next = index < len(groups)
            try:
                payloads = self.client.get_tracks(access_token, group)
            except RateLimited as e:
                wait = min(e.retry_after, self.max_wait)
                log_warning(
                    f"Hydration group {index}/{len(groups)} rate limited; "
                    f"skipping it{f' and pausing {wait:.1f}s' if has_next else ''}."
                )
                if has_next and wait > 0:
                    self._sleep(wait)
                continue
            except UpstreamUnavailable as e:
                log_warning(f"Hydration group {index}/{len(groups)} skipped: {e}")
                continue

            refreshed_at = self._now()
            records = [
                record
                for record in (track_from_payload(p, refreshed_at) for p in payloads)
                if record is not None
            ]
            unknown = len(group) - len(records)
            if unknown > 0:
                log_debug(f"Hydration group {index}: {unknown} unknown id(s) ignored.")

            self.repository.upsert_many(records)
            for record in records:
                fetched[record.track_id] = record

        return fetched
