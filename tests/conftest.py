"""
Pytest configuration and fixtures
"""

import pytest
import pytest_asyncio
from datetime import date
from typing import AsyncGenerator

from core.config import Settings
from core.database import create_engine
from ingestion.checkpoint import JsonCheckpointStore
from ingestion.loaders.warehouse import WarehouseSink


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Fully configured settings with no waiting in polls or between pages"""
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'warehouse.db'}",
        REPORT_DATE=date(2024, 7, 14),
        CHECKPOINT_DIR=str(tmp_path / "checkpoints"),
        RAW_DATA_DIR=str(tmp_path / "raw"),
        POLL_INITIAL_DELAY=0,
        POLL_MAX_DELAY=0,
        POLL_MAX_ATTEMPTS=3,
        PAGE_DELAY=0,
        ADX_NETWORK_CODE="1234",
        ADX_CUSTOM_DIMENSION_KEY_IDS="14045082,15320277",
        ANURA_API_TOKEN="test-token",
        ANURA_INSTANCE_ID=42,
        ANURA_POLL_INTERVAL=0,
        GA4_PROPERTY_ID="987654",
        GA4_PAGE_SIZE=2,
    )


@pytest_asyncio.fixture(scope="function")
async def warehouse(settings) -> AsyncGenerator[WarehouseSink, None]:
    """SQLite-backed warehouse with every table created"""
    sink = WarehouseSink(create_engine(settings))
    await sink.create_tables()

    yield sink

    await sink.dispose()


@pytest.fixture
def checkpoint_dir(settings):
    return settings.CHECKPOINT_DIR


@pytest.fixture
def adx_store(checkpoint_dir) -> JsonCheckpointStore:
    return JsonCheckpointStore(checkpoint_dir, "adx")


def adx_row(source, ad_x_revenue, clicks=0, impressions=0, ad_unit="Top", ad_server_revenue=0.0):
    """Raw Ad Manager fetchRows row in positional form"""
    return {
        "dimensionValues": [
            {"stringValue": "20240713"},
            {"stringValue": "United States"},
            {"stringValue": ad_unit},
            {"stringValue": "Chrome"},
            {"stringValue": source},
            {"stringValue": "campaign-1"},
            {"stringValue": "111"},
            {"stringValue": ad_unit},
        ],
        "metricValueGroups": [
            {
                "primaryValues": [
                    {"doubleValue": ad_x_revenue},
                    {"intValue": str(clicks)},
                    {"intValue": str(impressions)},
                    {"doubleValue": 0.0},
                    {"doubleValue": 0.0},
                    {"intValue": "0"},
                    {"intValue": "10"},
                    {"doubleValue": ad_server_revenue},
                ]
            }
        ],
    }


def ga4_row(source, medium, sessions, revenue=0.0, users=1):
    return {
        "dimensionValues": [
            {"value": "20240713"},
            {"value": source},
            {"value": medium},
            {"value": "summer"},
            {"value": "c-1"},
        ],
        "metricValues": [
            {"value": str(sessions)},
            {"value": str(revenue)},
            {"value": "5"},
            {"value": "3"},
            {"value": "1"},
            {"value": str(users)},
            {"value": "0.5"},
        ],
    }


@pytest.fixture
def mock_adx_rows():
    return [
        adx_row("google", 6.0, clicks=2, impressions=1000),
        adx_row("google", 4.0, clicks=1, impressions=1000, ad_unit="Sidebar"),
        adx_row("", 5.0, clicks=1, impressions=2000),
    ]


@pytest.fixture
def mock_ga4_rows():
    return [
        ga4_row("google", "organic", 10, revenue=2.5),
        ga4_row("google", "cpc", 5, revenue=1.0),
        ga4_row("", "(none)", 3),
    ]


@pytest.fixture
def mock_anura_rows():
    """Request/response rows straddling the 2024-07-13 Los Angeles day"""
    requests = [
        {"SOURCE": "google", "CAMPAIGN": "a", "TIMESTAMP": "2024-07-12T08:00:00Z"},
        {"SOURCE": "google", "CAMPAIGN": "a", "TIMESTAMP": "2024-07-12T12:00:00Z"},
        {"SOURCE": "bing", "CAMPAIGN": "b", "TIMESTAMP": "2024-07-13T06:59:59Z"},
        {"SOURCE": "bing", "CAMPAIGN": "b", "TIMESTAMP": "2024-07-13T07:00:00Z"},
        {"SOURCE": "", "CAMPAIGN": "c", "TIMESTAMP": "2024-07-12T06:00:00Z"},
    ]
    responses = [
        {"SOURCE": "google", "RESULT": "good", "TIMESTAMP": "2024-07-12T08:00:01Z"},
        {"SOURCE": "google", "RESULT": "bad", "TIMESTAMP": "2024-07-12T12:00:01Z"},
        {"SOURCE": "yahoo", "RESULT": "warn", "TIMESTAMP": "2024-07-12T20:00:00Z"},
        {"SOURCE": "bing", "RESULT": "good", "TIMESTAMP": ""},
    ]
    return {"request": requests, "response": responses}


@pytest.fixture
def make_adx_row():
    return adx_row


@pytest.fixture
def make_ga4_row():
    return ga4_row
