"""SQLAlchemy database models for cached on-chain state"""
from datetime import datetime
from sqlalchemy import Column, String, BigInteger, DateTime, JSON
from sqlalchemy.orm import declarative_base

Base = declarative_base()

class CacheEntry(Base):
    """
    Cached value derived from chain state.
    Each key holds the block number the data was last synced at.
    """
    __tablename__ = 'cache_entries'

    key = Column(String, primary_key=True)
    block_number = Column(BigInteger, nullable=False)
    data = Column(JSON, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
