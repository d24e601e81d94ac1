import math
from typing import NoReturn

from fastapi import Header, HTTPException, Request

from setkeeper.bootstrap import Services
from setkeeper.core import (
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


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_actor_id(x_user_id: str | None = Header(default=None)) -> str:
    """
    Identity of the caller. Authentication happens upstream of this API,
    which only trusts the X-User-Id header it sets.
    """
    if not x_user_id:
        raise HTTPException(
            status_code=401,
            detail={"status": "unauthenticated", "message": "Missing X-User-Id header."},
        )
    return x_user_id


def _retry_after_header(seconds: float) -> str:
    if not math.isfinite(seconds) or seconds < 0:
        return "1"
    return str(math.ceil(seconds))


def raise_http(e: Exception) -> NoReturn:
    """
    Translate a service error into an HTTPException.

    Order matters: subclasses are checked before their bases.
    """
    if isinstance(e, NotFound):
        raise HTTPException(status_code=404, detail=str(e)) from e
    if isinstance(e, Forbidden):
        raise HTTPException(status_code=403, detail="Forbidden") from e
    if isinstance(e, (NoCredential, RefreshFailed)):
        raise HTTPException(
            status_code=401,
            detail={
                "status": "unauthenticated",
                "message": str(e) or "Spotify authorization required.",
            },
        ) from e
    if isinstance(e, SpotifyAuthError):
        raise HTTPException(status_code=400, detail=str(e)) from e
    if isinstance(e, RateLimited):
        raise HTTPException(
            status_code=429,
            detail=str(e),
            headers={"Retry-After": _retry_after_header(e.retry_after)},
        ) from e
    if isinstance(e, UpstreamUnavailable):
        raise HTTPException(status_code=502, detail=str(e)) from e
    if isinstance(e, (VersionConflict, NoActiveDevice)):
        raise HTTPException(status_code=409, detail=str(e)) from e
    if isinstance(e, (ValueError, SetkeeperError)):
        raise HTTPException(status_code=400, detail=str(e)) from e
    raise e
