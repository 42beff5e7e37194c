"""Supabase-backed durable key/value store."""

import base64
import binascii
import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from macro_ledger.services.store import DurableStore

_logger = logging.getLogger(__name__)


@dataclass
class SupabaseDurableStore(DurableStore):
    """Stores each key as a base64 text row in a single table."""

    client: Client
    table: str = "app_state"

    def get_bytes(self, key: str) -> bytes | None:
        """Return the stored bytes for a key, if present and decodable."""
        response = (
            self.client.table(self.table)
            .select("value")
            .eq("key", key)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        raw = response.data[0].get("value")
        if not isinstance(raw, str):
            _logger.warning("Ignoring non-text stored value: key=%s", key)
            return None
        try:
            return base64.b64decode(raw, validate=True)
        except binascii.Error:
            _logger.warning("Ignoring stored value with bad base64: key=%s", key)
            return None

    def set_bytes(self, key: str, value: bytes) -> None:
        """Insert or replace the row for a key."""
        self.client.table(self.table).upsert(
            {
                "key": key,
                "value": base64.b64encode(value).decode("ascii"),
                "updated_at": datetime.now(tz=UTC).isoformat(),
            },
            on_conflict="key",
        ).execute()

    def delete(self, key: str) -> None:
        """Delete the row for a key."""
        self.client.table(self.table).delete().eq("key", key).execute()
