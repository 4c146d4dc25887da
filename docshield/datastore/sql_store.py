"""
SQL-backed key-value store.
"""

from typing import Any

from loguru import logger
from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from docshield.clock import Clock, system_clock
from docshield.datastore.kv import BaseKVStore, ValueType, decode
from docshield.datastore.models import KVEntryDB


class SQLKVStore(BaseKVStore):
    """
    Key-value store on a relational database.

    Each operation runs in its own short session and commits immediately.
    Rows whose ``expires_at`` has passed are treated as absent; they are
    overwritten by the next put to the same key.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Clock = system_clock,
    ):
        self._session_factory = session_factory
        self._clock = clock

    async def get(self, key: str, type: ValueType = "json") -> Any | None:
        now = self._clock()
        async with self._session_factory() as session:
            result = await session.execute(
                select(KVEntryDB.value).where(
                    KVEntryDB.key == key,
                    or_(KVEntryDB.expires_at.is_(None), KVEntryDB.expires_at > now),
                )
            )
            raw = result.scalar_one_or_none()
        if raw is None:
            return None
        return decode(raw, type)

    async def put(self, key: str, value: str, expiration_ttl: int | None = None) -> None:
        expires_at = None
        if expiration_ttl is not None:
            expires_at = self._clock() + expiration_ttl * 1000

        async with self._session_factory() as session:
            await session.merge(KVEntryDB(key=key, value=value, expires_at=expires_at))
            await session.commit()
        logger.trace(f"SQLKVStore PUT {key} (expires_at={expires_at})")

    async def delete(self, key: str) -> None:
        async with self._session_factory() as session:
            await session.execute(delete(KVEntryDB).where(KVEntryDB.key == key))
            await session.commit()
