"""Spotify credential lifecycle: account linking and access-token freshness.

ensure_access_token() is what every Spotify-backed operation calls first. A
refresh happens when fewer than 60 seconds of validity remain, which covers
clock skew and the latency of the request about to be made.

At most one refresh per owner runs at a time in this process (per-owner lock,
re-reading the store once the lock is held). Across processes the store's
compare-and-swap keyed on the access token we read makes a losing refresh
fall back to the winner's token instead of overwriting it.
"""

from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timedelta, timezone
import secrets
import threading
import time
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from setkeeper.config import OAUTH_STATE_TTL, SCOPES, TOKEN_REFRESH_MARGIN_MS
from setkeeper.core import (
    CredentialRecord,
    NoCredential,
    RefreshFailed,
    SpotifyAuthError,
    log_debug,
    log_step,
    log_success,
    log_warning,
)
from setkeeper.data import CredentialStore

from .client import SpotifyClient, TokenGrant


def _epoch_ms() -> int:
    return int(time.time() * 1000)


class OAuthStateStore:
    """In-memory, single-use OAuth `state` values bound to an owner id."""

    def __init__(
        self,
        ttl: timedelta = OAUTH_STATE_TTL,
        now_fn: Optional[Callable[[], datetime]] = None,
    ) -> None:
        if ttl <= timedelta(0):
            raise ValueError("OAuth state TTL must be positive")
        self._ttl = ttl
        self._now = now_fn or (lambda: datetime.now(timezone.utc))
        self._pending: Dict[str, Tuple[str, datetime]] = {}
        self._lock = threading.Lock()

    def issue(self, owner_id: str) -> str:
        state = f"{secrets.token_hex(12)}:{owner_id}"
        now = self._now()
        with self._lock:
            self._purge_expired(now)
            self._pending[state] = (owner_id, now + self._ttl)
        return state

    def consume(self, state: str) -> Optional[str]:
        """Return the owner id bound to state, once. Expired states return None."""
        with self._lock:
            entry = self._pending.pop(state, None)
        if entry is None:
            return None
        owner_id, expires_at = entry
        if expires_at <= self._now():
            return None
        return owner_id

    def _purge_expired(self, now: datetime) -> None:
        expired = [s for s, (_, exp) in self._pending.items() if exp <= now]
        for state in expired:
            del self._pending[state]


class TokenManager:
    def __init__(
        self,
        store: CredentialStore,
        client: SpotifyClient,
        *,
        scopes: Iterable[str] = SCOPES,
        refresh_margin_ms: int = TOKEN_REFRESH_MARGIN_MS,
        states: Optional[OAuthStateStore] = None,
        now_ms: Optional[Callable[[], int]] = None,
    ) -> None:
        self.store = store
        self.client = client
        self.scopes = list(scopes)
        self.refresh_margin_ms = refresh_margin_ms
        self.states = states or OAuthStateStore()
        self._now_ms = now_ms or _epoch_ms
        # owner id -> [lock, number of callers holding or waiting on it]
        self._locks: Dict[str, List] = {}
        self._locks_guard = threading.Lock()

    # ---------- Account linking ----------

    def build_authorize_url(self, owner_id: str, show_dialog: bool = False) -> str:
        state = self.states.issue(owner_id)
        return self.client.build_authorize_url(state, self.scopes, show_dialog)

    def link_account(self, owner_id: str, code: str) -> CredentialRecord:
        """Exchange an authorization code and store the resulting tokens."""

        log_step(f"Exchanging Spotify authorization code for user {owner_id}...")
        grant = self.client.exchange_code(code)
        if not grant.refresh_token:
            raise SpotifyAuthError("Token response has no refresh_token")

        record = CredentialRecord(
            owner_id=owner_id,
            access_token=grant.access_token,
            refresh_token=grant.refresh_token,
            expires_at_ms=self._now_ms() + grant.expires_in * 1000,
            token_type=grant.token_type,
            scope=grant.scope,
        )
        self.store.save(record)
        log_success(f"Spotify account linked for user {owner_id}.")
        return record

    def link_from_callback(self, state: str, code: str) -> CredentialRecord:
        owner_id = self.states.consume(state)
        if owner_id is None:
            raise SpotifyAuthError("Invalid or expired state")
        return self.link_account(owner_id, code)

    def unlink_account(self, owner_id: str) -> bool:
        return self.store.delete(owner_id)

    def token_status(self, owner_id: str) -> Optional[Dict[str, object]]:
        """Expiry metadata for the stored credential; never the tokens."""

        record = self.store.load(owner_id)
        if record is None:
            return None
        return {
            "expires_at": record.expires_at_ms,
            "scope": record.scope,
            "expired": self._needs_refresh(record),
        }

    # ---------- Access token freshness ----------

    def _needs_refresh(self, record: CredentialRecord) -> bool:
        return self._now_ms() > record.expires_at_ms - self.refresh_margin_ms

    @contextmanager
    def _owner_lock(self, owner_id: str) -> Iterator[None]:
        """Hold the owner's refresh lock; the entry is dropped once nobody uses it."""

        with self._locks_guard:
            entry = self._locks.get(owner_id)
            if entry is None:
                entry = self._locks[owner_id] = [threading.Lock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[owner_id]

    def _apply_grant(self, record: CredentialRecord, grant: TokenGrant) -> CredentialRecord:
        # Spotify may omit refresh_token on refresh; keep the one we have.
        return replace(
            record,
            access_token=grant.access_token,
            refresh_token=grant.refresh_token or record.refresh_token,
            expires_at_ms=self._now_ms() + grant.expires_in * 1000,
            token_type=grant.token_type or record.token_type,
            scope=grant.scope or record.scope,
        )

    def ensure_access_token(self, owner_id: str) -> str:
        """
        Return a usable access token for owner_id, refreshing it first when it
        expires within the safety margin.

        Raises NoCredential when nothing is stored and RefreshFailed when the
        refresh cannot produce a usable token.
        """
        record = self.store.load(owner_id)
        if record is None:
            raise NoCredential(owner_id)
        if not self._needs_refresh(record):
            return record.access_token

        with self._owner_lock(owner_id):
            # Another request may have refreshed while we waited for the lock.
            current = self.store.load(owner_id)
            if current is None:
                raise NoCredential(owner_id)
            if not self._needs_refresh(current):
                return current.access_token

            log_step(f"Refreshing Spotify access token for user {owner_id}...")
            grant = self.client.refresh_token(current.refresh_token)
            refreshed = self._apply_grant(current, grant)

            if self.store.compare_and_swap(refreshed, current.access_token):
                log_debug(f"Stored refreshed token for user {owner_id}.")
                return refreshed.access_token

            winner = self.store.load(owner_id)
            if winner is not None and not self._needs_refresh(winner):
                log_warning(
                    f"Concurrent token refresh for user {owner_id}; using the stored token."
                )
                return winner.access_token

            raise RefreshFailed(
                f"Token refresh for user {owner_id} lost a concurrent update"
            )
