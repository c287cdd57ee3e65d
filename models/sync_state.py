from sqlalchemy import Column, String, DateTime, BigInteger
from datetime import datetime
from models.base import Base


class MigrationState(Base):
    """
    Tracks the incremental sync watermark per named sync process.
    
    Purpose:
    - Resume migration from the last synced source timestamp
    - Avoid re-migrating documents already copied
    
    Design:
    - One row per sync name
    - last_sync_timestamp is a unix timestamp (seconds) and never decreases
    - Row is removed only by an explicit reset, which restarts from 0
    """
    __tablename__ = "migration_state"
    
    name = Column(String(100), primary_key=True)
    
    last_sync_timestamp = Column(BigInteger, nullable=False, default=0)
    total_migrated = Column(BigInteger, nullable=False, default=0)
    last_run_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
