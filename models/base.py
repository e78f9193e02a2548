from datetime import datetime, timezone
from sqlalchemy import BigInteger, Integer
from sqlalchemy.orm import declarative_base
import enum

Base = declarative_base()

# BIGINT primary keys only autoincrement on SQLite as INTEGER
BigIntegerPK = BigInteger().with_variant(Integer, "sqlite")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# ENUMS
# ============================================================================

class ReportType(str, enum.Enum):
    """Report pipelines"""
    ADX = "adx"
    ANURA = "anura"
    GA4 = "ga4"


class ReportStatus(str, enum.Enum):
    """Checkpoint / report run status"""
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
