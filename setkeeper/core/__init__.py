"""Public façade for the setkeeper.core package.

This module exposes logging helpers, JSON document utilities, domain models
and the error taxonomy that are safe to import from other packages. Callers
should import these cross-cutting concerns from this façade instead of the
internal submodules.
"""

from .errors import (
    Forbidden,
    NoActiveDevice,
    NoCredential,
    NotFound,
    RateLimited,
    RefreshFailed,
    SetkeeperError,
    SpotifyAuthError,
    UpstreamUnavailable,
    VersionConflict,
)
from .fs_utils import JsonDocument, ensure_parent_dir, read_json, write_json
from .logging_config import configure_logging
from .logging_utils import (
    log_debug,
    log_error,
    log_info,
    log_step,
    log_success,
    log_warning,
)
from .models import (
    AddSongsResult,
    Collection,
    CredentialRecord,
    QueueResult,
    ReplaceSongsResult,
    SetSong,
    TrackRecord,
)

__all__ = [
    "configure_logging",
    "log_debug",
    "log_info",
    "log_step",
    "log_success",
    "log_warning",
    "log_error",
    "ensure_parent_dir",
    "write_json",
    "read_json",
    "JsonDocument",
    "CredentialRecord",
    "TrackRecord",
    "SetSong",
    "Collection",
    "AddSongsResult",
    "ReplaceSongsResult",
    "QueueResult",
    "SetkeeperError",
    "NotFound",
    "Forbidden",
    "SpotifyAuthError",
    "NoCredential",
    "RefreshFailed",
    "UpstreamUnavailable",
    "RateLimited",
    "NoActiveDevice",
    "VersionConflict",
]
