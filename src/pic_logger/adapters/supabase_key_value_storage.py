"""Supabase-backed device storage."""

import base64
import binascii
from dataclasses import dataclass
from typing import Any

import httpx
from postgrest import APIError
from supabase import Client

from pic_logger.domain.errors import StorageError
from pic_logger.services.storage import KeyValueStorage


@dataclass
class SupabaseKeyValueStorage(KeyValueStorage):
    """Stores base64-encoded documents in a key/value table."""

    client: Client
    table: str = "creation_storage"

    def get_item(self, key: str) -> str | None:
        """Return the decoded value for ``key``."""
        response = _execute(
            self.client.table(self.table).select("value").eq("key", key).limit(1)
        )
        if not response.data:
            return None
        stored = response.data[0].get("value")
        if not stored:
            return None
        try:
            return base64.b64decode(stored).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as exc:
            raise StorageError(f"Stored value for {key!r} is corrupt") from exc

    def set_item(self, key: str, value: str) -> None:
        """Upsert the encoded value for ``key``."""
        encoded = base64.b64encode(value.encode("utf-8")).decode("ascii")
        response = _execute(
            self.client.table(self.table).upsert(
                {"key": key, "value": encoded}, on_conflict="key"
            )
        )
        if not response.data:
            raise StorageError(f"Failed to store {key!r}")

    def remove_item(self, key: str) -> None:
        """Delete the row for ``key``."""
        _execute(self.client.table(self.table).delete().eq("key", key))


def _execute(query: Any) -> Any:
    try:
        return query.execute()
    except (APIError, httpx.HTTPError) as exc:
        raise StorageError(str(exc)) from exc
