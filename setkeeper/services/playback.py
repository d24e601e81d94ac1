"""Queue a set for playback through a temporary Spotify playlist.

Each user has at most one temporary playlist: queueing again unfollows the
previous one (best effort) before creating the next. Playback itself is left
to Spotify; we only create the playlist and optionally start it.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from setkeeper.config import (
    PLAYLIST_ADD_CHUNK,
    TEMP_PLAYLIST_DESCRIPTION,
    TEMP_PLAYLIST_TTL,
)
from setkeeper.core import (
    NoActiveDevice,
    QueueResult,
    UpstreamUnavailable,
    log_error,
    log_step,
    log_success,
    log_warning,
)
from setkeeper.data import TempPlaylistStore
from setkeeper.spotify import SpotifyClient, TokenManager, track_uri

from .reconciler import track_reference
from .track_cache import dedupe


def _pick_device(devices: List[Dict[str, Any]]) -> Optional[str]:
    active = [d for d in devices if d.get("is_active") and d.get("id")]
    if active:
        return active[0]["id"]
    for device in devices:
        if device.get("id"):
            return device["id"]
    return None


class PlaybackService:
    def __init__(
        self,
        tokens: TokenManager,
        client: SpotifyClient,
        temp_playlists: TempPlaylistStore,
        *,
        chunk_size: int = PLAYLIST_ADD_CHUNK,
        temp_ttl: timedelta = TEMP_PLAYLIST_TTL,
        now_fn: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.tokens = tokens
        self.client = client
        self.temp_playlists = temp_playlists
        self.chunk_size = chunk_size
        self.temp_ttl = temp_ttl
        self._now = now_fn or (lambda: datetime.now(timezone.utc))

    def _unfollow_quietly(self, access_token: str, playlist_id: str) -> None:
        try:
            self.client.unfollow_playlist(access_token, playlist_id)
        except UpstreamUnavailable as e:
            log_warning(f"Could not remove temporary playlist {playlist_id}: {e}")

    def _drop_previous(self, owner_id: str, access_token: str) -> None:
        previous = self.temp_playlists.get(owner_id, self._now())
        if previous:
            log_step(f"Removing previous temporary playlist {previous}...")
            self._unfollow_quietly(access_token, previous)
        self.temp_playlists.forget(owner_id)

    def queue_tracks(
        self,
        owner_id: str,
        track_ids: Iterable[Any],
        *,
        play_now: bool = False,
        device_id: Optional[str] = None,
        name: Optional[str] = None,
    ) -> QueueResult:
        ids = dedupe(t for t in map(track_reference, track_ids) if t)
        if not ids:
            raise ValueError("No track ids to queue.")

        access_token = self.tokens.ensure_access_token(owner_id)
        self._drop_previous(owner_id, access_token)

        profile = self.client.get_current_user(access_token)
        spotify_user_id = profile.get("id")
        if not spotify_user_id:
            raise UpstreamUnavailable("Spotify profile has no user id")

        now = self._now()
        playlist_name = name or f"Temp Set {now:%Y-%m-%d %H:%M:%S}"
        playlist_id = self.client.create_playlist(
            access_token,
            spotify_user_id,
            playlist_name,
            TEMP_PLAYLIST_DESCRIPTION,
            public=False,
        )

        uris = [track_uri(t) for t in ids]
        try:
            for i in range(0, len(uris), self.chunk_size):
                self.client.add_playlist_items(
                    access_token, playlist_id, uris[i : i + self.chunk_size]
                )
        except UpstreamUnavailable as e:
            log_error(f"Adding tracks to playlist {playlist_id} failed: {e}")
            self._unfollow_quietly(access_token, playlist_id)
            raise

        self.temp_playlists.remember(owner_id, playlist_id, now + self.temp_ttl)

        try:
            self.client.set_shuffle(access_token, False, device_id)
        except UpstreamUnavailable as e:
            log_warning(f"Could not turn shuffle off: {e}")

        target_device = device_id
        if play_now:
            if target_device is None:
                target_device = _pick_device(self.client.list_devices(access_token))
            if target_device is None:
                raise NoActiveDevice("No active Spotify devices")
            self.client.start_playback(
                access_token,
                device_id=target_device,
                context_uri=f"spotify:playlist:{playlist_id}",
            )

        log_success(f"Queued {len(ids)} track(s) in playlist {playlist_id}.")
        return QueueResult(playlist_id=playlist_id, total=len(ids), device_id=target_device)

    def play_track(
        self,
        owner_id: str,
        track_id: str,
        device_id: Optional[str] = None,
    ) -> str:
        """
        Start playing one track right away, on device_id or else the first
        available device. Returns the device used.
        """
        target = track_reference(track_id)
        if not target:
            raise ValueError("Missing track id.")

        access_token = self.tokens.ensure_access_token(owner_id)
        target_device = device_id or _pick_device(self.client.list_devices(access_token))
        if target_device is None:
            raise NoActiveDevice("No active Spotify devices")

        self.client.start_playback(
            access_token, device_id=target_device, uris=[track_uri(target)]
        )
        log_step(f"Playing track {target} on device {target_device}.")
        return target_device
