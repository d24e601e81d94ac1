"""Wiring of stores, Spotify client and services.

Nothing in setkeeper is a module-level singleton: build_services() creates one
set of collaborators and hands them to each component explicitly. The HTTP
app keeps the result on app.state; tests build their own.
"""

from dataclasses import dataclass
import os
from typing import Optional

import requests

from setkeeper import config
from setkeeper.data import (
    CollectionRepository,
    CredentialStore,
    TempPlaylistStore,
    TrackCacheRepository,
)
from setkeeper.services import CatalogService, MetadataCache, PlaybackService, SetReconciler
from setkeeper.spotify import SpotifyClient, TokenManager


@dataclass
class Services:
    client: SpotifyClient
    tokens: TokenManager
    cache: MetadataCache
    sets: SetReconciler
    catalog: CatalogService
    playback: PlaybackService


def build_services(
    data_dir: Optional[str] = None,
    session: Optional[requests.Session] = None,
) -> Services:
    data_dir = data_dir or config.DATA_DIR

    client = SpotifyClient(
        config.SPOTIFY_CLIENT_ID,
        config.SPOTIFY_CLIENT_SECRET,
        config.SPOTIFY_REDIRECT_URI,
        auth_url=config.SPOTIFY_AUTH_URL,
        accounts_url=config.SPOTIFY_ACCOUNTS_URL,
        api_base=config.SPOTIFY_API_BASE,
        timeout=config.SPOTIFY_HTTP_TIMEOUT,
        session=session,
    )
    tokens = TokenManager(
        CredentialStore(os.path.join(data_dir, os.path.basename(config.CREDENTIALS_FILE))),
        client,
    )
    cache = MetadataCache(
        TrackCacheRepository(os.path.join(data_dir, os.path.basename(config.TRACKS_FILE))),
        client,
    )
    sets = SetReconciler(
        CollectionRepository(
            os.path.join(data_dir, os.path.basename(config.COLLECTIONS_FILE))
        ),
        cache,
        tokens,
    )
    playback = PlaybackService(
        tokens,
        client,
        TempPlaylistStore(
            os.path.join(data_dir, os.path.basename(config.TEMP_PLAYLISTS_FILE))
        ),
    )
    return Services(
        client=client,
        tokens=tokens,
        cache=cache,
        sets=sets,
        catalog=CatalogService(tokens, client, cache),
        playback=playback,
    )
