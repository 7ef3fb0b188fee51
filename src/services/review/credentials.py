"""Credential cache for the vision service key and the host access token.

Storage errors never fail a review run: a failed load reads as "absent" and a
failed save is logged and reported as `False`.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.error_handler import StructuredLogger
from crud.stored_secrets import stored_secrets_crud
from services.review.interfaces import KeyValueStoreProtocol
from services.review.models import PUBLISH_TOKEN, SERVICE_KEY, Credentials


logger = logging.getLogger(__name__)
structured_logger = StructuredLogger(__name__)

# Fixed storage keys; no schema versioning.
STORAGE_KEYS: dict[str, str] = {
    SERVICE_KEY: "gemini_api_key",
    PUBLISH_TOKEN: "figma_token",
}


class InMemoryKeyValueStore(KeyValueStoreProtocol):
    """Dict-backed store; lives as long as the process."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._values.get(key)

    async def set(self, key: str, value: str) -> None:
        self._values[key] = value


class SqlKeyValueStore(KeyValueStoreProtocol):
    """Store backed by the `stored_secrets` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, key: str) -> str | None:
        async with self._session_factory() as db:
            return await stored_secrets_crud.get_value(db, key)

    async def set(self, key: str, value: str) -> None:
        async with self._session_factory() as db:
            await stored_secrets_crud.set_value(db, key, value)


class CredentialCache:
    """Load and persist the two review secrets, one key at a time."""

    def __init__(self, store: KeyValueStoreProtocol) -> None:
        self._store = store

    async def load(self, name: str) -> str | None:
        try:
            value = await self._store.get(STORAGE_KEYS[name])
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Credential load failed for %s: %s", name, type(exc).__name__
            )
            return None
        return value or None

    async def save(self, name: str, value: str | None) -> bool:
        """Persist a non-empty value; empty values are never written."""
        if value is None or not value.strip():
            return False
        try:
            await self._store.set(STORAGE_KEYS[name], value.strip())
        except Exception as exc:  # noqa: BLE001
            structured_logger.warning(
                "Credential save failed",
                credential=name,
                error_type=type(exc).__name__,
            )
            return False
        return True

    async def load_all(self) -> Credentials:
        return Credentials(
            service_key=await self.load(SERVICE_KEY),
            publish_token=await self.load(PUBLISH_TOKEN),
        )
