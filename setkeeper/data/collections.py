from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from setkeeper.config import COLLECTIONS_FILE
from setkeeper.core import Collection, JsonDocument, NotFound, VersionConflict

from .records import deserialize_collection, serialize_collection

UPDATABLE_FIELDS = frozenset(
    {"name", "description", "tags", "songs", "images", "editor_ids"}
)


class CollectionRepository:
    """Repository for Sets.

    update_fields() is the single serialization point for edits: it applies a
    partial update only if the stored version still matches the one the caller
    read, and bumps the version.
    """

    def __init__(self, path: str = COLLECTIONS_FILE) -> None:
        self._doc = JsonDocument(path, "Collections")

    def create(self, collection: Collection) -> Collection:
        now = datetime.now(timezone.utc)
        created = replace(
            collection,
            id=collection.id or uuid4().hex,
            version=1,
            created_at=now,
            updated_at=now,
        )
        with self._doc.transaction() as data:
            if created.id in data:
                raise ValueError(f"Set {created.id} already exists")
            data[created.id] = serialize_collection(created)
        return created

    def find_by_id(self, collection_id: str) -> Optional[Collection]:
        raw = self._doc.load().get(collection_id)
        if not isinstance(raw, dict):
            return None
        return deserialize_collection(raw)

    def update_fields(
        self,
        collection_id: str,
        fields: Dict[str, Any],
        expected_version: int,
    ) -> Collection:
        """
        Atomically set the given fields.

        Raises NotFound if the set disappeared and VersionConflict if someone
        else wrote it since expected_version was read.
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        with self._doc.locked():
            data = self._doc.load()
            raw = data.get(collection_id)
            if not isinstance(raw, dict):
                raise NotFound(collection_id)

            current = deserialize_collection(raw)
            if current.version != expected_version:
                raise VersionConflict(collection_id, expected_version)

            updated = replace(
                current,
                **fields,
                version=current.version + 1,
                updated_at=datetime.now(timezone.utc),
            )
            data[collection_id] = serialize_collection(updated)
            self._doc.save(data)
            return updated
