from sqlalchemy import JSON, BigInteger, Integer
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base
from datetime import datetime, timezone
import enum

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")

# SQLite only autoincrements INTEGER primary keys
BigIntPK = BigInteger().with_variant(Integer(), "sqlite")


# ============================================================================
# ENUMS
# ============================================================================

class PipelineStage(str, enum.Enum):
    """Pipeline stage an error originated from"""
    EXTRACT = "Extract"
    TRANSFORM = "Transform"
    LOAD = "Load"


class RunState(str, enum.Enum):
    """Pipeline run state machine"""
    EXTRACTING = "Extracting"
    TRANSFORMING = "Transforming"
    LOADING = "Loading"
    COMPLETED = "Completed"
    ABORTED = "Aborted"


class LoadStatus(str, enum.Enum):
    """Per-record load outcome"""
    SUCCESS = "Success"
    FAILED = "Failed"


def utcnow() -> datetime:
    """Timezone-aware UTC now, used for column defaults"""
    return datetime.now(timezone.utc)
