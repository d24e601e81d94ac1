"""Set editing: the canonical ordered song list and how edits merge into it.

Every track id that ends up in a set went through the metadata cache first,
so a set never holds an id Spotify did not confirm. Edits make maximal
progress: unknown ids are dropped (and reported as `skipped` by add_songs)
rather than failing the request.

Writes use optimistic concurrency. Each edit reads the set, computes the new
song list from that snapshot and commits it with the version it read; on a
version conflict the whole edit is recomputed from a fresh read, up to
MAX_EDIT_RETRIES times.
"""

from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, TypeVar

from setkeeper.config import (
    MAX_EDIT_RETRIES,
    MAX_SET_DESCRIPTION_LENGTH,
    MAX_SET_IMAGES,
    MAX_SET_NAME_LENGTH,
)
from setkeeper.core import (
    AddSongsResult,
    Collection,
    Forbidden,
    NotFound,
    ReplaceSongsResult,
    SetSong,
    TrackRecord,
    VersionConflict,
    log_info,
    log_step,
    log_warning,
)
from setkeeper.data import CollectionRepository
from setkeeper.spotify import TokenManager, normalize_track_id

from .track_cache import MetadataCache, dedupe

R = TypeVar("R")
Plan = Callable[[Collection], Tuple[Optional[Dict[str, Any]], R]]

DETAIL_FIELDS = ("name", "description", "tags")


def derive_images(songs: Iterable[SetSong], limit: int = MAX_SET_IMAGES) -> List[str]:
    """First `limit` non-empty artwork URLs, in song order."""
    images: List[str] = []
    for song in songs:
        if len(images) >= limit:
            break
        if song.album_art_url:
            images.append(song.album_art_url)
    return images


def track_reference(item: Any) -> Optional[str]:
    """
    Extract a bare track id from whatever a client sent for one song:
    an id, a spotify:track URI, a mapping with id/trackId/track_id, or an
    object with a track_id/id attribute. Returns None when nothing usable.
    """
    value: Any = None
    if isinstance(item, str):
        value = item
    elif isinstance(item, Mapping):
        value = item.get("id") or item.get("trackId") or item.get("track_id")
    else:
        value = getattr(item, "track_id", None) or getattr(item, "id", None)

    if not isinstance(value, str):
        return None
    track_id = normalize_track_id(value)
    return track_id or None


def _clean_tags(tags: Iterable[str]) -> List[str]:
    return dedupe(t.strip() for t in tags if isinstance(t, str) and t.strip())


def _validate_name(name: Any) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValueError("Set name is required.")
    name = name.strip()
    if len(name) > MAX_SET_NAME_LENGTH:
        raise ValueError(f"Set name must be at most {MAX_SET_NAME_LENGTH} characters.")
    return name


def _validate_description(description: Any) -> Optional[str]:
    if description is None:
        return None
    if not isinstance(description, str):
        raise ValueError("Set description must be a string.")
    if len(description) > MAX_SET_DESCRIPTION_LENGTH:
        raise ValueError(
            f"Set description must be at most {MAX_SET_DESCRIPTION_LENGTH} characters."
        )
    return description


class SetReconciler:
    def __init__(
        self,
        collections: CollectionRepository,
        cache: MetadataCache,
        tokens: TokenManager,
        *,
        max_images: int = MAX_SET_IMAGES,
        max_retries: int = MAX_EDIT_RETRIES,
    ) -> None:
        self.collections = collections
        self.cache = cache
        self.tokens = tokens
        self.max_images = max_images
        self.max_retries = max(1, max_retries)

    # ---------- Helpers ----------

    def _hydrate(self, actor_id: str, track_ids: List[str]) -> List[TrackRecord]:
        access_token = self.tokens.ensure_access_token(actor_id)
        return self.cache.hydrate(access_token, track_ids)

    def _load_for_edit(self, collection_id: str, actor_id: str) -> Collection:
        collection = self.collections.find_by_id(collection_id)
        if collection is None:
            raise NotFound(collection_id)
        if not collection.can_edit(actor_id):
            raise Forbidden(collection_id, actor_id)
        return collection

    def _songs_fields(self, songs: List[SetSong]) -> Dict[str, Any]:
        return {"songs": songs, "images": derive_images(songs, self.max_images)}

    def _edit(self, collection_id: str, actor_id: str, plan: Plan[R]) -> R:
        """
        Load, plan and commit one edit. `plan` returns the fields to write
        (None for a no-op) and the result to hand back.
        """
        attempt = 0
        while True:
            attempt += 1
            collection = self._load_for_edit(collection_id, actor_id)
            fields, result = plan(collection)
            if fields is None:
                return result
            try:
                self.collections.update_fields(collection_id, fields, collection.version)
                return result
            except VersionConflict:
                if attempt >= self.max_retries:
                    raise
                log_warning(
                    f"Set {collection_id} changed during edit; retrying "
                    f"({attempt}/{self.max_retries})."
                )

    # ---------- Reads & creation ----------

    def get_set(self, collection_id: str) -> Collection:
        collection = self.collections.find_by_id(collection_id)
        if collection is None:
            raise NotFound(collection_id)
        return collection

    def create_set(
        self,
        owner_id: str,
        name: str,
        track_ids: Iterable[Any] = (),
        *,
        description: Optional[str] = None,
        tags: Iterable[str] = (),
        editor_ids: Iterable[str] = (),
    ) -> Collection:
        """
        Create a set owned by owner_id. Initial tracks are hydrated with the
        owner's Spotify token exactly like an add; unknown ids are dropped.
        """
        name = _validate_name(name)
        description = _validate_description(description)

        requested = dedupe(t for t in map(track_reference, track_ids) if t)
        songs: List[SetSong] = []
        if requested:
            songs = [r.to_song() for r in self._hydrate(owner_id, requested)]
            if len(songs) < len(requested):
                log_info(
                    f"Creating set '{name}': {len(requested) - len(songs)} "
                    "unknown track id(s) dropped."
                )

        collection = self.collections.create(
            Collection(
                id="",
                owner_id=owner_id,
                name=name,
                description=description,
                songs=songs,
                editor_ids=[e for e in dedupe(editor_ids) if e != owner_id],
                tags=_clean_tags(tags),
                images=derive_images(songs, self.max_images),
            )
        )
        log_step(f"Created set {collection.id} with {len(songs)} songs.")
        return collection

    def update_details(
        self,
        collection_id: str,
        actor_id: str,
        patch: Mapping[str, Any],
    ) -> Collection:
        """Replace name / description / tags; only the keys present in patch."""

        unknown = set(patch) - set(DETAIL_FIELDS)
        if unknown:
            raise ValueError(f"Unknown fields: {', '.join(sorted(unknown))}")
        if not patch:
            raise ValueError("No fields to update.")

        fields: Dict[str, Any] = {}
        if "name" in patch:
            fields["name"] = _validate_name(patch["name"])
        if "description" in patch:
            fields["description"] = _validate_description(patch["description"])
        if "tags" in patch:
            fields["tags"] = _clean_tags(patch["tags"] or [])

        self._edit(collection_id, actor_id, lambda c: (fields, None))
        return self.get_set(collection_id)

    # ---------- Song edits ----------

    def add_songs(
        self,
        collection_id: str,
        actor_id: str,
        candidate_ids: Iterable[Any],
    ) -> AddSongsResult:
        """
        Append new tracks to the end of the set.

        Ids already in the set are ignored; ids Spotify cannot resolve are
        returned in `skipped`. Appended songs follow hydration order.
        """
        candidates = dedupe(t for t in map(track_reference, candidate_ids) if t)

        def plan(collection: Collection):
            current = list(collection.songs)
            current_ids = set(collection.track_ids)
            incoming = [tid for tid in candidates if tid not in current_ids]
            if not incoming:
                return None, AddSongsResult(songs=current, added_count=0, skipped=[])

            hydrated = self._hydrate(actor_id, incoming)
            resolved = {r.track_id for r in hydrated}
            skipped = [tid for tid in incoming if tid not in resolved]
            to_add = [r.to_song() for r in hydrated]
            result = AddSongsResult(
                songs=current + to_add,
                added_count=len(to_add),
                skipped=skipped,
                added_tracks=hydrated,
            )
            if not to_add:
                return None, result
            return self._songs_fields(result.songs), result

        result = self._edit(collection_id, actor_id, plan)
        log_info(
            f"Set {collection_id}: {result.added_count} song(s) added, "
            f"{len(result.skipped)} skipped."
        )
        return result

    def _plan_replace(
        self,
        collection: Collection,
        actor_id: str,
        final_ids: List[str],
    ) -> Tuple[Optional[Dict[str, Any]], ReplaceSongsResult]:
        ordered = dedupe(final_ids)
        existing = {s.track_id: s for s in collection.songs}

        new_ids = [tid for tid in ordered if tid not in existing]
        hydrated: Dict[str, SetSong] = {}
        if new_ids:
            hydrated = {r.track_id: r.to_song() for r in self._hydrate(actor_id, new_ids)}

        songs: List[SetSong] = []
        for tid in ordered:
            song = existing.get(tid) or hydrated.get(tid)
            if song is not None:
                songs.append(song)

        next_ids = [s.track_id for s in songs]
        kept = set(next_ids)
        removed = [s for s in collection.songs if s.track_id not in kept]
        order_changed = next_ids != collection.track_ids

        result = ReplaceSongsResult(
            songs=songs,
            removed_count=len(removed),
            removed=removed,
            order_changed=order_changed,
            length=len(songs),
        )
        # Same id sequence means the same records: nothing to write.
        if not order_changed:
            return None, result
        return self._songs_fields(songs), result

    def replace_songs(
        self,
        collection_id: str,
        actor_id: str,
        final_order: Iterable[Any],
    ) -> ReplaceSongsResult:
        """
        Make the set's song list follow final_order.

        Known ids keep their stored metadata, new ids are hydrated (unknown
        ones dropped), ids missing from final_order are removed.
        """
        final_ids = [t for t in map(track_reference, final_order) if t]
        result = self._edit(
            collection_id,
            actor_id,
            lambda c: self._plan_replace(c, actor_id, final_ids),
        )
        log_info(
            f"Set {collection_id}: {result.length} song(s), {result.removed_count} "
            f"removed, order changed={result.order_changed}."
        )
        return result

    def remove_song(
        self,
        collection_id: str,
        actor_id: str,
        track_id: str,
    ) -> ReplaceSongsResult:
        target = track_reference(track_id)

        def plan(collection: Collection):
            remaining = [tid for tid in collection.track_ids if tid != target]
            return self._plan_replace(collection, actor_id, remaining)

        return self._edit(collection_id, actor_id, plan)

    def move_song(
        self,
        collection_id: str,
        actor_id: str,
        from_index: int,
        to_index: int,
    ) -> ReplaceSongsResult:
        """Move the song at from_index so that it ends up at to_index."""

        def plan(collection: Collection):
            ids = collection.track_ids
            if not 0 <= from_index < len(ids) or not 0 <= to_index < len(ids):
                raise ValueError(
                    f"Index out of range for a set of {len(ids)} songs."
                )
            moved = ids.pop(from_index)
            ids.insert(to_index, moved)
            return self._plan_replace(collection, actor_id, ids)

        return self._edit(collection_id, actor_id, plan)
