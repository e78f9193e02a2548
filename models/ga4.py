from sqlalchemy import Column, String, Date, DateTime, Float, BigInteger, Index
from models.base import Base, BigIntegerPK, utcnow


class Ga4ReportSummary(Base):
    """One row per web-analytics report run (report_date is the analysed day)"""
    __tablename__ = "ga4_report_summaries"
    report_key_column = "report_date"

    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)

    report_date = Column(Date, nullable=False, index=True)

    total_sessions = Column(BigInteger, nullable=True)
    total_revenue = Column(Float, nullable=True)
    total_ad_revenue = Column(Float, nullable=True)
    total_events = Column(BigInteger, nullable=True)
    total_page_views = Column(BigInteger, nullable=True)
    total_engaged_sessions = Column(BigInteger, nullable=True)
    total_users = Column(BigInteger, nullable=True)

    status = Column(String(20), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    display_date = Column(DateTime(timezone=True), nullable=True)


class _Ga4BreakdownColumns:
    """Metric columns shared by every GA4 breakdown table"""
    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)
    report_date = Column(Date, nullable=False)

    sessions = Column(BigInteger, nullable=True)
    revenue = Column(Float, nullable=True)
    ad_revenue = Column(Float, nullable=True)
    events = Column(BigInteger, nullable=True)
    page_views = Column(BigInteger, nullable=True)
    engaged_sessions = Column(BigInteger, nullable=True)
    users = Column(BigInteger, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    display_date = Column(DateTime(timezone=True), nullable=True)


class Ga4SourceMetrics(_Ga4BreakdownColumns, Base):
    __tablename__ = "ga4_source_metrics"
    report_key_column = "report_date"

    source = Column(String(500), nullable=False)

    __table_args__ = (
        Index("idx_ga4_source_date", "report_date", "source"),
    )


class Ga4MediumMetrics(_Ga4BreakdownColumns, Base):
    __tablename__ = "ga4_medium_metrics"
    report_key_column = "report_date"

    medium = Column(String(500), nullable=False)

    __table_args__ = (
        Index("idx_ga4_medium_date", "report_date", "medium"),
    )


class Ga4SourceAndMediumMetrics(_Ga4BreakdownColumns, Base):
    __tablename__ = "ga4_source_and_medium_metrics"
    report_key_column = "report_date"

    source = Column(String(500), nullable=False)
    medium = Column(String(500), nullable=False)

    __table_args__ = (
        Index("idx_ga4_source_medium_date", "report_date", "source", "medium"),
    )
