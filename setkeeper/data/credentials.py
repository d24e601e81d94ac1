from typing import Optional

from setkeeper.config import CREDENTIALS_FILE
from setkeeper.core import CredentialRecord, JsonDocument, log_warning

from .records import deserialize_credential, serialize_credential


class CredentialStore:
    """Durable per-owner storage of Spotify OAuth tokens.

    One JSON document keyed by owner id. Writers replace a whole record;
    compare_and_swap() lets a refresh detect that another writer got there
    first instead of overwriting the newer token.
    """

    def __init__(self, path: str = CREDENTIALS_FILE) -> None:
        self._doc = JsonDocument(path, "Credentials")

    def load(self, owner_id: str) -> Optional[CredentialRecord]:
        raw = self._doc.load().get(owner_id)
        if raw is None:
            return None

        try:
            if not isinstance(raw, dict):
                raise ValueError("entry is not an object")
            return deserialize_credential(owner_id, raw)
        except (KeyError, TypeError, ValueError) as e:
            # A corrupted entry can never be refreshed; drop it so the user re-links.
            log_warning(f"Dropping corrupted credential for user {owner_id} ({e}).")
            self.delete(owner_id)
            return None

    def save(self, record: CredentialRecord) -> None:
        with self._doc.transaction() as data:
            data[record.owner_id] = serialize_credential(record)

    def compare_and_swap(
        self,
        record: CredentialRecord,
        expected_access_token: str,
    ) -> bool:
        """
        Replace the owner's record only if the stored access token is still
        expected_access_token. Returns False (and writes nothing) otherwise.
        """
        with self._doc.locked():
            data = self._doc.load()
            current = data.get(record.owner_id)
            if not isinstance(current, dict):
                return False
            if current.get("access_token") != expected_access_token:
                return False
            data[record.owner_id] = serialize_credential(record)
            self._doc.save(data)
            return True

    def delete(self, owner_id: str) -> bool:
        with self._doc.locked():
            data = self._doc.load()
            if owner_id not in data:
                return False
            del data[owner_id]
            self._doc.save(data)
            return True
