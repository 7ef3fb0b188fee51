from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.stored_secret import StoredSecret


class StoredSecretCRUD:
    """CRUD operations for cached credentials."""

    async def get_value(self, db: AsyncSession, key: str) -> str | None:
        """Return the stored value for `key`, or None if nothing is stored."""
        result = await db.execute(select(StoredSecret).where(StoredSecret.key == key))
        secret = result.scalar_one_or_none()
        return secret.value if secret is not None else None

    async def set_value(self, db: AsyncSession, key: str, value: str) -> StoredSecret:
        """Insert or overwrite the value stored under `key`."""
        secret = await db.get(StoredSecret, key)
        if secret is None:
            secret = StoredSecret(key=key, value=value)
            db.add(secret)
        else:
            secret.value = value
        await db.commit()
        await db.refresh(secret)
        return secret


stored_secrets_crud = StoredSecretCRUD()
