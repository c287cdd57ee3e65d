from sqlalchemy import JSON
from sqlalchemy.orm import declarative_base
from sqlalchemy.dialects.postgresql import JSONB
import enum
import uuid

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def generate_uuid() -> str:
    return str(uuid.uuid4())


# ============================================================================
# ENUMS
# ============================================================================

class StationStatus(str, enum.Enum):
    """Meteorological station status"""
    ACTIVE = "active"
    INACTIVE = "inactive"
    MAINTENANCE = "maintenance"
