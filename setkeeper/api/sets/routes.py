from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException

from setkeeper.api.deps import get_actor_id, get_services, raise_http
from setkeeper.bootstrap import Services
from setkeeper.core import Collection, ReplaceSongsResult, SetkeeperError

from .schemas import (
    AddSongsRequest,
    AddSongsResponse,
    CreateSetRequest,
    MoveSongRequest,
    QueueRequest,
    QueueResponse,
    ReplaceSongsRequest,
    ReplaceSongsResponse,
    SetOut,
    UpdateSetRequest,
)

router = APIRouter()


def _set_out(collection: Collection) -> SetOut:
    return SetOut(**asdict(collection))


def _replace_out(result: ReplaceSongsResult) -> ReplaceSongsResponse:
    return ReplaceSongsResponse(**asdict(result))


@router.post("", response_model=SetOut, status_code=201)
def create_set(
    body: CreateSetRequest,
    actor_id: str = Depends(get_actor_id),
    services: Services = Depends(get_services),
) -> SetOut:
    """
    Create a set owned by the caller. Initial songs are validated against
    Spotify; unknown ids are dropped.
    """
    try:
        collection = services.sets.create_set(
            actor_id,
            body.name,
            body.songs,
            description=body.description,
            tags=body.tags,
            editor_ids=body.editor_ids,
        )
    except (SetkeeperError, ValueError) as e:
        raise_http(e)
    return _set_out(collection)


@router.post("/queue", response_model=QueueResponse)
def queue_set(
    body: QueueRequest,
    actor_id: str = Depends(get_actor_id),
    services: Services = Depends(get_services),
) -> QueueResponse:
    """
    Put the given tracks (in order) in a temporary private playlist and
    optionally start playing it.
    """
    if not body.track_ids:
        raise HTTPException(status_code=400, detail="Missing track_ids.")
    try:
        result = services.playback.queue_tracks(
            actor_id,
            body.track_ids,
            play_now=body.play_now,
            device_id=body.device_id,
            name=body.name,
        )
    except (SetkeeperError, ValueError) as e:
        raise_http(e)
    return QueueResponse(
        playlist_id=result.playlist_id, total=result.total, device_id=result.device_id
    )


@router.get("/{set_id}", response_model=SetOut)
def get_set(
    set_id: str,
    services: Services = Depends(get_services),
) -> SetOut:
    try:
        return _set_out(services.sets.get_set(set_id))
    except SetkeeperError as e:
        raise_http(e)


@router.patch("/{set_id}", response_model=SetOut)
def update_set(
    set_id: str,
    body: UpdateSetRequest,
    actor_id: str = Depends(get_actor_id),
    services: Services = Depends(get_services),
) -> SetOut:
    """Replace name, description and/or tags; only the fields sent are changed."""

    if hasattr(body, "model_dump"):
        patch = body.model_dump(exclude_unset=True)
    else:
        patch = body.dict(exclude_unset=True)
    try:
        return _set_out(services.sets.update_details(set_id, actor_id, patch))
    except (SetkeeperError, ValueError) as e:
        raise_http(e)


@router.post("/{set_id}/songs", response_model=AddSongsResponse)
def add_songs(
    set_id: str,
    body: AddSongsRequest,
    actor_id: str = Depends(get_actor_id),
    services: Services = Depends(get_services),
) -> AddSongsResponse:
    """
    Append songs to the set. Already-present ids are ignored; ids Spotify
    does not know are listed in `skipped`.
    """
    if not body.songs:
        raise HTTPException(status_code=400, detail="At least one track id is required.")
    try:
        result = services.sets.add_songs(set_id, actor_id, body.songs)
    except (SetkeeperError, ValueError) as e:
        raise_http(e)
    return AddSongsResponse(
        songs=[asdict(s) for s in result.songs],
        added=result.added_count,
        skipped=result.skipped,
        added_tracks=[asdict(t) for t in result.added_tracks],
    )


@router.patch("/{set_id}/songs", response_model=ReplaceSongsResponse)
def replace_songs(
    set_id: str,
    body: ReplaceSongsRequest,
    actor_id: str = Depends(get_actor_id),
    services: Services = Depends(get_services),
) -> ReplaceSongsResponse:
    """
    Make the set follow the final order sent by the client. Missing songs are
    removed, new ids are validated and inserted where they appear.
    """
    try:
        return _replace_out(services.sets.replace_songs(set_id, actor_id, body.songs))
    except (SetkeeperError, ValueError) as e:
        raise_http(e)


@router.delete("/{set_id}/songs/{track_id}", response_model=ReplaceSongsResponse)
def remove_song(
    set_id: str,
    track_id: str,
    actor_id: str = Depends(get_actor_id),
    services: Services = Depends(get_services),
) -> ReplaceSongsResponse:
    try:
        return _replace_out(services.sets.remove_song(set_id, actor_id, track_id))
    except (SetkeeperError, ValueError) as e:
        raise_http(e)


@router.post("/{set_id}/songs/move", response_model=ReplaceSongsResponse)
def move_song(
    set_id: str,
    body: MoveSongRequest,
    actor_id: str = Depends(get_actor_id),
    services: Services = Depends(get_services),
) -> ReplaceSongsResponse:
    try:
        result = services.sets.move_song(
            set_id, actor_id, body.from_index, body.to_index
        )
    except (SetkeeperError, ValueError) as e:
        raise_http(e)
    return _replace_out(result)
