from typing import List

import pytest

from setkeeper.core import Collection, Forbidden, NoCredential, NotFound, SetSong, VersionConflict
from setkeeper.services import SetReconciler, derive_images, track_reference


@pytest.fixture
def set_id(collection_repository) -> str:
    created = collection_repository.create(
        Collection(id="", owner_id="owner", name="Sunday", editor_ids=["editor"])
    )
    return created.id


def _ids(songs: List[SetSong]) -> List[str]:
    return [s.track_id for s in songs]


def test_add_appends_in_hydration_order_without_duplicates(reconciler, set_id) -> None:
    first = reconciler.add_songs(set_id, "owner", ["t2", "t1"])
    second = reconciler.add_songs(set_id, "editor", ["t4", "t1", "t3"])

    assert first.added_count == 2
    assert second.added_count == 2
    assert _ids(second.songs) == ["t2", "t1", "t4", "t3"]
    assert _ids(reconciler.get_set(set_id).songs) == ["t2", "t1", "t4", "t3"]


def test_add_same_ids_twice_is_a_noop(reconciler, set_id, fake_client) -> None:
    reconciler.add_songs(set_id, "owner", ["t1", "t2"])
    calls_before = len(fake_client.get_tracks_calls)
    version_before = reconciler.get_set(set_id).version

    again = reconciler.add_songs(set_id, "owner", ["t1", "t2", "t1"])

    assert again.added_count == 0
    assert again.skipped == []
    assert _ids(again.songs) == ["t1", "t2"]
    assert len(fake_client.get_tracks_calls) == calls_before
    assert reconciler.get_set(set_id).version == version_before


def test_add_reports_unknown_ids_as_skipped(reconciler, set_id) -> None:
    result = reconciler.add_songs(set_id, "owner", ["t1", "bogus", "t2"])

    assert result.added_count == 2
    assert result.skipped == ["bogus"]
    assert [t.track_id for t in result.added_tracks] == ["t1", "t2"]
    assert _ids(reconciler.get_set(set_id).songs) == ["t1", "t2"]


def test_add_accepts_spotify_uris(reconciler, set_id) -> None:
    result = reconciler.add_songs(set_id, "owner", ["spotify:track:t5"])

    assert _ids(result.songs) == ["t5"]


def test_add_by_outsider_is_forbidden(reconciler, set_id) -> None:
    with pytest.raises(Forbidden):
        reconciler.add_songs(set_id, "outsider", ["t1"])
    assert reconciler.get_set(set_id).songs == []


def test_add_to_missing_set_raises_not_found(reconciler) -> None:
    with pytest.raises(NotFound):
        reconciler.add_songs("missing", "owner", ["t1"])


def test_add_requires_a_linked_spotify_account(
    collection_repository, cache, tokens, credential_store, set_id
) -> None:
    credential_store.delete("editor")
    reconciler = SetReconciler(collection_repository, cache, tokens)

    with pytest.raises(NoCredential):
        reconciler.add_songs(set_id, "editor", ["t1"])


def test_images_are_first_five_artworks(reconciler, set_id, fake_client) -> None:
    fake_client.catalog["t2"]["album"]["images"] = []

    reconciler.add_songs(set_id, "owner", ["t1", "t2", "t3", "t4", "t5", "t6", "t7"])

    images = reconciler.get_set(set_id).images
    assert images == [f"https://img.example/{t}.jpg" for t in ("t1", "t3", "t4", "t5", "t6")]


def test_replace_with_same_order_is_a_noop(reconciler, set_id) -> None:
    reconciler.add_songs(set_id, "owner", ["t1", "t2", "t3"])
    version_before = reconciler.get_set(set_id).version

    result = reconciler.replace_songs(set_id, "owner", ["t1", "t2", "t3"])

    assert result.order_changed is False
    assert result.removed_count == 0
    assert result.length == 3
    assert reconciler.get_set(set_id).version == version_before


def test_replace_with_empty_list_removes_everything(reconciler, set_id) -> None:
    reconciler.add_songs(set_id, "owner", ["t1", "t2", "t3"])

    result = reconciler.replace_songs(set_id, "editor", [])

    assert result.removed_count == 3
    assert _ids(result.removed) == ["t1", "t2", "t3"]
    assert result.songs == []
    stored = reconciler.get_set(set_id)
    assert stored.songs == []
    assert stored.images == []


def test_pure_reorder_counts_as_changed(reconciler, set_id) -> None:
    reconciler.add_songs(set_id, "owner", ["t1", "t2", "t3"])

    result = reconciler.replace_songs(set_id, "owner", ["t3", "t1", "t2"])

    assert result.order_changed is True
    assert result.removed_count == 0
    assert _ids(reconciler.get_set(set_id).songs) == ["t3", "t1", "t2"]


def test_replace_adds_new_ids_and_drops_unknown_ones(
    reconciler, set_id, fake_client
) -> None:
    reconciler.add_songs(set_id, "owner", ["t1", "t2"])
    fake_client.get_tracks_calls.clear()

    result = reconciler.replace_songs(
        set_id, "owner", ["t4", "t1", "bogus", "t1", {"id": "t5"}]
    )

    assert _ids(result.songs) == ["t4", "t1", "t5"]
    assert _ids(result.removed) == ["t2"]
    assert result.order_changed is True
    assert result.length == 3
    # Only the ids that were not already in the set are looked up.
    assert fake_client.get_tracks_calls == [["t4", "bogus", "t5"]]


def test_replace_keeps_stored_metadata_for_known_ids(
    reconciler, set_id, fake_client
) -> None:
    reconciler.add_songs(set_id, "owner", ["t1", "t2"])
    fake_client.catalog["t1"]["name"] = "Renamed upstream"

    result = reconciler.replace_songs(set_id, "owner", ["t2", "t1"])

    assert result.songs[1].title == "Song t1"


def test_replace_accepts_song_objects(reconciler, set_id) -> None:
    reconciler.add_songs(set_id, "owner", ["t1", "t2"])

    result = reconciler.replace_songs(
        set_id,
        "owner",
        [SetSong(track_id="t2", title="x"), {"trackId": "t1"}, {"nothing": 1}, 42],
    )

    assert _ids(result.songs) == ["t2", "t1"]


def test_replace_by_outsider_is_forbidden(reconciler, set_id) -> None:
    with pytest.raises(Forbidden):
        reconciler.replace_songs(set_id, "outsider", [])


def test_remove_and_move_song(reconciler, set_id) -> None:
    reconciler.add_songs(set_id, "owner", ["t1", "t2", "t3", "t4"])

    removed = reconciler.remove_song(set_id, "owner", "t2")
    assert _ids(removed.removed) == ["t2"]

    moved = reconciler.move_song(set_id, "editor", 0, 2)
    assert _ids(moved.songs) == ["t3", "t4", "t1"]

    with pytest.raises(ValueError):
        reconciler.move_song(set_id, "owner", 0, 3)


def test_edit_is_retried_after_version_conflict(
    collection_repository, cache, tokens, linked_users, set_id
) -> None:
    class FlakyRepository:
        def __init__(self, inner, failures: int) -> None:
            self.inner = inner
            self.failures = failures
            self.attempts = 0

        def find_by_id(self, collection_id):
            return self.inner.find_by_id(collection_id)

        def update_fields(self, collection_id, fields, expected_version):
            self.attempts += 1
            if self.failures:
                self.failures -= 1
                raise VersionConflict(collection_id, expected_version)
            return self.inner.update_fields(collection_id, fields, expected_version)

    flaky = FlakyRepository(collection_repository, failures=1)
    reconciler = SetReconciler(flaky, cache, tokens, max_retries=3)

    result = reconciler.add_songs(set_id, "owner", ["t1"])

    assert result.added_count == 1
    assert flaky.attempts == 2

    always = FlakyRepository(collection_repository, failures=10)
    reconciler = SetReconciler(always, cache, tokens, max_retries=2)
    with pytest.raises(VersionConflict):
        reconciler.add_songs(set_id, "owner", ["t2"])
    assert always.attempts == 2


def test_create_set_validates_initial_tracks(reconciler) -> None:
    created = reconciler.create_set(
        "owner",
        "  Late night  ",
        ["t1", "bogus", "t2", "t1"],
        tags=["lofi", " lofi ", ""],
        editor_ids=["editor", "owner"],
    )

    assert created.name == "Late night"
    assert _ids(created.songs) == ["t1", "t2"]
    assert created.tags == ["lofi"]
    assert created.editor_ids == ["editor"]
    assert created.images == ["https://img.example/t1.jpg", "https://img.example/t2.jpg"]


def test_create_set_requires_a_name(reconciler) -> None:
    with pytest.raises(ValueError):
        reconciler.create_set("owner", "   ")


def test_update_details_changes_only_given_fields(reconciler, set_id) -> None:
    updated = reconciler.update_details(set_id, "editor", {"tags": ["a", "b"]})

    assert updated.tags == ["a", "b"]
    assert updated.name == "Sunday"

    updated = reconciler.update_details(set_id, "owner", {"description": None})
    assert updated.description is None

    with pytest.raises(ValueError):
        reconciler.update_details(set_id, "owner", {})
    with pytest.raises(ValueError):
        reconciler.update_details(set_id, "owner", {"owner_id": "me"})
    with pytest.raises(Forbidden):
        reconciler.update_details(set_id, "outsider", {"name": "Mine"})


def test_track_reference_shapes() -> None:
    assert track_reference("t1") == "t1"
    assert track_reference("spotify:track:abc") == "abc"
    assert track_reference({"id": "t1"}) == "t1"
    assert track_reference({"track_id": "t2"}) == "t2"
    assert track_reference(SetSong(track_id="t3", title="")) == "t3"
    assert track_reference({"id": 5}) is None
    assert track_reference("  ") is None


def test_derive_images_limit() -> None:
    songs = [SetSong(f"t{i}", "", album_art_url=f"u{i}") for i in range(8)]

    assert derive_images(songs) == ["u0", "u1", "u2", "u3", "u4"]
    assert derive_images(songs, limit=2) == ["u0", "u1"]
