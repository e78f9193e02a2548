from sqlalchemy import Column, String, Date, DateTime, Float, BigInteger, Index
from models.base import Base, BigIntegerPK, utcnow


class AdxReportSummary(Base):
    """
    One row per ad exchange report run.

    report_date is the run date; display_date is the day the revenue belongs
    to (the day before report_date).
    """
    __tablename__ = "adx_report_summaries"
    report_key_column = "report_date"

    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)

    report_date = Column(Date, nullable=False, index=True)
    report_id = Column(String(255), nullable=False)

    total_revenue = Column(Float, nullable=True)
    total_ad_x_revenue = Column(Float, nullable=True)
    total_ad_server_revenue = Column(Float, nullable=True)
    total_clicks = Column(BigInteger, nullable=True)
    total_impressions = Column(BigInteger, nullable=True)
    total_viewable_impressions = Column(BigInteger, nullable=True)
    total_ad_requests = Column(BigInteger, nullable=True)
    average_ecpm = Column(Float, nullable=True)
    average_ctr = Column(Float, nullable=True)

    status = Column(String(20), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    display_date = Column(DateTime(timezone=True), nullable=True)


class AdxRevenueBySource(Base):
    """Ad exchange revenue broken down by traffic source (custom dimension)"""
    __tablename__ = "adx_revenue_by_source"
    report_key_column = "report_date"

    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)

    report_date = Column(Date, nullable=False)
    report_id = Column(String(255), nullable=False)
    source = Column(String(500), nullable=False)

    revenue = Column(Float, nullable=True)
    ad_server_revenue = Column(Float, nullable=True)
    ad_x_revenue = Column(Float, nullable=True)
    clicks = Column(BigInteger, nullable=True)
    impressions = Column(BigInteger, nullable=True)
    ad_requests = Column(BigInteger, nullable=True)
    average_ecpm = Column(Float, nullable=True)
    average_ctr = Column(Float, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    display_date = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_adx_source_date", "report_date", "source"),
    )
