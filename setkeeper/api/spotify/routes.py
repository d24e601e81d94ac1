from dataclasses import asdict
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from setkeeper.api.deps import get_actor_id, get_services, raise_http
from setkeeper.api.sets.schemas import TrackOut
from setkeeper.bootstrap import Services
from setkeeper.core import NoActiveDevice, SetkeeperError, log_step

router = APIRouter()


class SearchRequest(BaseModel):
    query: str
    limit: int = Field(default=10, ge=1, le=50)
    market: Optional[str] = None


class SearchResponse(BaseModel):
    tracks: List[TrackOut]
    total: int


class PlayRequest(BaseModel):
    track_id: str
    device_id: Optional[str] = None


class PlayResponse(BaseModel):
    ok: bool = True
    device_id: str


@router.post("/search", response_model=SearchResponse)
def search_tracks(
    body: SearchRequest,
    actor_id: str = Depends(get_actor_id),
    services: Services = Depends(get_services),
) -> SearchResponse:
    try:
        records = services.catalog.search_tracks(
            actor_id, body.query, limit=body.limit, market=body.market
        )
    except (SetkeeperError, ValueError) as e:
        raise_http(e)
    return SearchResponse(tracks=[asdict(r) for r in records], total=len(records))


@router.get("/me")
def spotify_me(
    actor_id: str = Depends(get_actor_id),
    services: Services = Depends(get_services),
) -> dict:
    """
    Spotify profile of the caller. Returns profile=None when no account is
    linked instead of failing, so the frontend can show "not connected".
    """
    status = services.tokens.token_status(actor_id)
    if status is None:
        return {"profile": None, "token_info": None}

    log_step(f"Fetching Spotify profile for user {actor_id}...")
    try:
        profile = services.catalog.current_profile(actor_id)
    except SetkeeperError as e:
        raise_http(e)
    return {"profile": profile, "token_info": {"expires_at": status["expires_at"]}}


@router.post("/play", response_model=PlayResponse)
def play_track(
    body: PlayRequest,
    actor_id: str = Depends(get_actor_id),
    services: Services = Depends(get_services),
) -> PlayResponse:
    """
    Play a single track now on the given device, or on the first available
    one. 404 when the account has no device to play on.
    """
    if not body.track_id.strip():
        raise HTTPException(status_code=400, detail="Missing track_id.")
    try:
        device_id = services.playback.play_track(actor_id, body.track_id, body.device_id)
    except NoActiveDevice as e:
        raise HTTPException(
            status_code=404,
            detail={
                "error": str(e),
                "message": "Open Spotify on a device or pass a device_id to target.",
            },
        ) from e
    except (SetkeeperError, ValueError) as e:
        raise_http(e)
    return PlayResponse(device_id=device_id)
