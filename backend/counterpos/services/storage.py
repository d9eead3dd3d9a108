"""Snapshot storage: each logical key holds the full serialized collection."""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from counterpos.db.base import create_engine, create_session_factory, init_models
from counterpos.models.snapshot import Snapshot

logger = logging.getLogger(__name__)

MEMORY_URL = "memory://"


class StorageError(Exception):
    """Raised when the backing store cannot be read or written."""


class SnapshotStorage:
    async def load(self, key: str) -> str | None:
        raise NotImplementedError

    async def save(self, key: str, value: str) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        return None


class InMemorySnapshotStorage(SnapshotStorage):
    """Process-local storage, used for tests and `memory://` deployments."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(initial or {})

    async def load(self, key: str) -> str | None:
        return self.data.get(key)

    async def save(self, key: str, value: str) -> None:
        self.data[key] = value


class SqlSnapshotStorage(SnapshotStorage):
    def __init__(self, engine: AsyncEngine):
        self._engine = engine
        self._session_factory = create_session_factory(engine)

    @classmethod
    async def connect(cls, database_url: str) -> "SqlSnapshotStorage":
        engine = create_engine(database_url)
        try:
            await init_models(engine)
        except (SQLAlchemyError, OSError) as exc:
            await engine.dispose()
            raise StorageError(f"Cannot initialise snapshot table: {exc}") from exc
        return cls(engine)

    async def load(self, key: str) -> str | None:
        try:
            async with self._session_factory() as session:
                row = await session.get(Snapshot, key)
                return row.value if row else None
        except (SQLAlchemyError, OSError) as exc:
            raise StorageError(f"Cannot read snapshot {key!r}: {exc}") from exc

    async def save(self, key: str, value: str) -> None:
        try:
            async with self._session_factory() as session:
                await session.merge(Snapshot(key=key, value=value))
                await session.commit()
        except (SQLAlchemyError, OSError) as exc:
            raise StorageError(f"Cannot write snapshot {key!r}: {exc}") from exc

    async def close(self) -> None:
        await self._engine.dispose()


async def create_storage(database_url: str) -> SnapshotStorage:
    if database_url == MEMORY_URL:
        logger.info("Using in-memory snapshot storage; state is lost on restart")
        return InMemorySnapshotStorage()
    try:
        return await SqlSnapshotStorage.connect(database_url)
    except StorageError:
        logger.exception("Snapshot database unavailable, falling back to in-memory storage")
        return InMemorySnapshotStorage()
