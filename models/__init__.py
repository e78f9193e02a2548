"""
SQLAlchemy ORM models for the warehouse tables.

Models:
    base: Base declarative class and shared enums (ReportType, ReportStatus)
    adx: Ad exchange summary and revenue-by-source tables
    anura: Traffic-quality summary and per-source metrics tables
    ga4: Web-analytics summary and source / medium / source+medium tables

Warehouse Schema:
    Every table is append-only. Summary tables hold one row per completed
    report run; breakdown tables hold one row per grouping key of that run.
    Each model names the column used to look up a run in
    ``report_key_column``.

Usage:
    from models import AdxReportSummary, Ga4SourceMetrics
    from models.base import ReportStatus
"""

from models.base import Base, ReportType, ReportStatus
from models.adx import AdxReportSummary, AdxRevenueBySource
from models.anura import AnuraReportSummary, AnuraSourceMetrics
from models.ga4 import (
    Ga4ReportSummary,
    Ga4SourceMetrics,
    Ga4MediumMetrics,
    Ga4SourceAndMediumMetrics,
)

__all__ = [
    "Base",
    "ReportType",
    "ReportStatus",
    "AdxReportSummary",
    "AdxRevenueBySource",
    "AnuraReportSummary",
    "AnuraSourceMetrics",
    "Ga4ReportSummary",
    "Ga4SourceMetrics",
    "Ga4MediumMetrics",
    "Ga4SourceAndMediumMetrics",
]
