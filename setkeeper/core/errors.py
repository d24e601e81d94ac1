"""Error taxonomy shared by the stores, the Spotify integration and the services.

Services raise these where the problem is detected; only the HTTP layer turns
them into status codes.
"""

from typing import Optional


class SetkeeperError(Exception):
    """Base class for every error raised by setkeeper."""


class NotFound(SetkeeperError):
    """The requested set does not exist."""

    def __init__(self, collection_id: str) -> None:
        super().__init__(f"Set not found: {collection_id}")
        self.collection_id = collection_id


class Forbidden(SetkeeperError):
    """The actor is neither the owner nor an editor of the set."""

    def __init__(self, collection_id: str, actor_id: str) -> None:
        super().__init__(f"User {actor_id} cannot edit set {collection_id}")
        self.collection_id = collection_id
        self.actor_id = actor_id


class SpotifyAuthError(SetkeeperError):
    """Base class for token lifecycle failures."""


class NoCredential(SpotifyAuthError):
    """No Spotify credential is stored for this owner."""

    def __init__(self, owner_id: str) -> None:
        super().__init__(f"No Spotify tokens stored for user {owner_id}")
        self.owner_id = owner_id


class RefreshFailed(SpotifyAuthError):
    """The token endpoint errored or did not return a usable access token."""


class UpstreamUnavailable(SetkeeperError):
    """A Spotify Web API call failed (network error or non-2xx status)."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class RateLimited(UpstreamUnavailable):
    """Spotify answered 429; retry_after is the advised wait in seconds."""

    def __init__(self, retry_after: float) -> None:
        super().__init__(f"Rate limited by Spotify (retry after {retry_after}s)", 429)
        self.retry_after = retry_after


class NoActiveDevice(SetkeeperError):
    """Playback was requested but the account has no available device."""


class VersionConflict(SetkeeperError):
    """The set changed between read and write."""

    def __init__(self, collection_id: str, expected_version: int) -> None:
        super().__init__(
            f"Set {collection_id} was modified concurrently "
            f"(expected version {expected_version})"
        )
        self.collection_id = collection_id
        self.expected_version = expected_version
