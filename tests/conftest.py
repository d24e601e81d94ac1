from pathlib import Path
from typing import List

import pytest

from fakes import FakeClock, FakeSpotifyClient, spotify_track
from setkeeper.core import CredentialRecord
from setkeeper.data import (
    CollectionRepository,
    CredentialStore,
    TempPlaylistStore,
    TrackCacheRepository,
)
from setkeeper.services import MetadataCache, SetReconciler
from setkeeper.spotify import TokenManager


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_client() -> FakeSpotifyClient:
    catalog = {
        tid: spotify_track(tid, image=f"https://img.example/{tid}.jpg")
        for tid in ("t1", "t2", "t3", "t4", "t5", "t6", "t7")
    }
    return FakeSpotifyClient(catalog)


@pytest.fixture
def credential_store(tmp_path: Path) -> CredentialStore:
    return CredentialStore(str(tmp_path / "credentials.json"))


@pytest.fixture
def track_repository(tmp_path: Path) -> TrackCacheRepository:
    return TrackCacheRepository(str(tmp_path / "tracks.json"))


@pytest.fixture
def collection_repository(tmp_path: Path) -> CollectionRepository:
    return CollectionRepository(str(tmp_path / "collections.json"))


@pytest.fixture
def temp_playlists(tmp_path: Path) -> TempPlaylistStore:
    return TempPlaylistStore(str(tmp_path / "temp_playlists.json"))


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def cache(track_repository, fake_client, clock, sleeps) -> MetadataCache:
    return MetadataCache(
        track_repository,
        fake_client,
        now_fn=clock.now,
        sleep=sleeps.append,
    )


@pytest.fixture
def tokens(credential_store, fake_client, clock) -> TokenManager:
    return TokenManager(credential_store, fake_client, now_ms=clock.now_ms)


@pytest.fixture
def linked_users(credential_store, clock) -> List[str]:
    """Store a long-lived credential for the users the tests act as."""
    users = ["owner", "editor", "outsider"]
    for user in users:
        credential_store.save(
            CredentialRecord(
                owner_id=user,
                access_token=f"access-{user}",
                refresh_token=f"refresh-{user}",
                expires_at_ms=clock.now_ms() + 3_600_000,
            )
        )
    return users


@pytest.fixture
def reconciler(collection_repository, cache, tokens, linked_users) -> SetReconciler:
    return SetReconciler(collection_repository, cache, tokens)
