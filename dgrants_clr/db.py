# dgrants_clr/db.py
"""Engine and session handling for the block keyed cache"""

import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.exc import SQLAlchemyError

from dgrants_clr.config import settings
from dgrants_clr.models.db import Base
from dgrants_clr.services.cache import CacheService

logger = logging.getLogger(__name__)

class Database:
    """Owns the cache engine and hands out CacheService instances"""

    def __init__(self, url: Optional[str] = None):
        self.url = url or settings.CACHE_DB_URL
        self._engine = None
        self._SessionLocal = None

    def init(self) -> None:
        """
        Connect to the cache database and create the cache table if missing.

        Raises:
            ValueError: If no cache URL is configured
            SQLAlchemyError: If the database cannot be reached
        """
        if not self.url:
            raise ValueError("Cache database URL is required")

        try:
            self._engine = create_engine(self.url)
            Base.metadata.create_all(self._engine)
            self._SessionLocal = sessionmaker(bind=self._engine)
            logger.info(f"Cache database ready at {self._engine.url.render_as_string(hide_password=True)}")
        except SQLAlchemyError as e:
            logger.error(f"Cache database initialization failed: {e}")
            raise

    @property
    def initialized(self) -> bool:
        return self._SessionLocal is not None

    @contextmanager
    def cache(self) -> Generator[CacheService, None, None]:
        """
        CacheService bound to a fresh session, closed on exit.

        CacheService commits each write itself, so an error here only rolls
        back whatever was left pending.

        Raises:
            RuntimeError: If init() has not been called
        """
        if not self._SessionLocal:
            raise RuntimeError("Cache database not initialized. Call init() first.")

        session = self._SessionLocal()
        try:
            yield CacheService(session)
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        """Release pooled connections"""
        if self._engine:
            self._engine.dispose()
            self._engine = None
            self._SessionLocal = None
