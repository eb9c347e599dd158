"""Block-height keyed cache of chain derived state"""
import asyncio
import inspect
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, Union

from sqlalchemy import delete
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from dgrants_clr.errors import MalformedPersistedState
from dgrants_clr.models.db import CacheEntry

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class CachedValue:
    """Data stored under a key and the block it was synced at"""
    block_number: int
    data: Any

    def is_stale(self, block_number: int) -> bool:
        return self.block_number < block_number

# Receives the cached value (None on a miss) and returns (data, save)
Refresh = Callable[[Optional[CachedValue]], Union[Tuple[Any, bool], Awaitable[Tuple[Any, bool]]]]
Validator = Callable[[Any], bool]


def _is_mapping(data: Any) -> bool:
    return isinstance(data, dict)


class CacheService:
    """Handles all cache reads and writes"""

    def __init__(self, session: Session):
        if not session:
            raise ValueError("Database session is required")
        self.session = session
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def read(self, key: str, validator: Validator = _is_mapping) -> Optional[CachedValue]:
        """
        Get the cached value for key, possibly stale.

        Entries that cannot be decoded or fail validation are discarded and
        reported as a miss.
        """
        try:
            try:
                entry = self.session.get(CacheEntry, key)
            except ValueError as e:
                self.session.rollback()
                raise MalformedPersistedState(f"Cache entry {key} could not be decoded: {e}")
            if entry is None:
                return None
            if entry.block_number is None or not validator(entry.data):
                raise MalformedPersistedState(f"Cache entry {key} has an unexpected shape")
            return CachedValue(block_number=int(entry.block_number), data=entry.data)
        except MalformedPersistedState as e:
            logger.warning(f"Discarding cache entry: {e}")
            self.discard(key)
            return None
        except SQLAlchemyError as e:
            logger.error(f"Database error reading cache entry {key}: {e}")
            raise

    def write(self, key: str, block_number: int, data: Any) -> None:
        """Persist data for key at the given block"""
        try:
            entry = self.session.get(CacheEntry, key)
            if entry:
                entry.block_number = block_number
                entry.data = data
                entry.updated_at = datetime.utcnow()
            else:
                self.session.add(CacheEntry(key=key, block_number=block_number, data=data))
            self.session.commit()
            logger.debug(f"Cached {key} at block {block_number}")
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Database error writing cache entry {key}: {e}")
            raise

    def discard(self, key: str) -> None:
        """Delete the entry without loading it, its data may not decode"""
        try:
            self.session.execute(delete(CacheEntry).where(CacheEntry.key == key))
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Database error discarding cache entry {key}: {e}")
            raise

    async def sync_storage(self, key: str, block_number: int, refresh: Refresh,
                           validator: Validator = _is_mapping) -> Any:
        """
        Read, refresh and conditionally write back a cache entry.

        The whole cycle holds a per-key lock so concurrent syncs of the same
        key cannot lose updates. Nothing is written unless refresh completes
        and asks for the result to be saved.
        """
        async with self._lock_for(key):
            cached = self.read(key, validator)
            result = refresh(cached)
            if inspect.isawaitable(result):
                result = await result
            data, save = result
            if save:
                self.write(key, block_number, data)
            return data
