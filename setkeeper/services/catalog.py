from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from setkeeper.core import TrackRecord, log_info
from setkeeper.spotify import SpotifyClient, TokenManager, track_from_payload

from .track_cache import MetadataCache


class CatalogService:
    """Catalog lookups on behalf of a user (search, profile)."""

    def __init__(
        self,
        tokens: TokenManager,
        client: SpotifyClient,
        cache: MetadataCache,
        now_fn: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.tokens = tokens
        self.client = client
        self.cache = cache
        self._now = now_fn or (lambda: datetime.now(timezone.utc))

    def search_tracks(
        self,
        owner_id: str,
        query: str,
        limit: int = 10,
        market: Optional[str] = None,
    ) -> List[TrackRecord]:
        """
        Search the catalog. Results are cached, so adding one of them to a set
        right afterwards does not hit Spotify again.
        """
        if not query.strip():
            raise ValueError("Search query is required.")

        access_token = self.tokens.ensure_access_token(owner_id)
        items = self.client.search_tracks(access_token, query, limit=limit, market=market)

        refreshed_at = self._now()
        records = [
            r for r in (track_from_payload(item, refreshed_at) for item in items) if r
        ]
        self.cache.store(records)
        log_info(f"Search '{query}': {len(records)} track(s).")
        return records

    def current_profile(self, owner_id: str) -> Dict[str, Any]:
        access_token = self.tokens.ensure_access_token(owner_id)
        return self.client.get_current_user(access_token)
