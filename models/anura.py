from sqlalchemy import Column, String, DateTime, Float, BigInteger, Integer, Index
from models.base import Base, BigIntegerPK, utcnow


class AnuraReportSummary(Base):
    """
    One row per traffic-quality report run.

    start_date / end_date are integer-encoded dates (YYYYMMDD) of the window
    the reports were requested for.
    """
    __tablename__ = "anura_report_summaries"
    report_key_column = "start_date"

    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)

    start_date = Column(BigInteger, nullable=False, index=True)
    end_date = Column(BigInteger, nullable=False)
    report_hours = Column(Integer, nullable=False)
    request_report_id = Column(String(255), nullable=False)
    response_report_id = Column(String(255), nullable=False)
    request_report_name = Column(String(500), nullable=False)
    response_report_name = Column(String(500), nullable=False)

    total_requests = Column(BigInteger, nullable=True)
    total_responses = Column(BigInteger, nullable=True)
    drop_rate = Column(Float, nullable=True)
    good = Column(BigInteger, nullable=True)
    good_rate = Column(Float, nullable=True)
    bad = Column(BigInteger, nullable=True)
    bad_rate = Column(Float, nullable=True)
    warn = Column(BigInteger, nullable=True)
    warn_rate = Column(Float, nullable=True)

    status = Column(String(20), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    display_date = Column(DateTime(timezone=True), nullable=True)


class AnuraSourceMetrics(Base):
    """Traffic-quality metrics per traffic source"""
    __tablename__ = "anura_source_metrics"
    report_key_column = "start_date"

    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)

    start_date = Column(BigInteger, nullable=False)
    end_date = Column(BigInteger, nullable=False)
    report_hours = Column(Integer, nullable=False)
    request_report_id = Column(String(255), nullable=False)
    response_report_id = Column(String(255), nullable=False)
    source = Column(String(500), nullable=False)

    total_requests = Column(BigInteger, nullable=True)
    total_responses = Column(BigInteger, nullable=True)
    drop_rate = Column(Float, nullable=True)
    good = Column(BigInteger, nullable=True)
    good_rate = Column(Float, nullable=True)
    bad = Column(BigInteger, nullable=True)
    bad_rate = Column(Float, nullable=True)
    warn = Column(BigInteger, nullable=True)
    warn_rate = Column(Float, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    display_date = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_anura_source_start", "start_date", "source"),
    )
