"""Pytest configuration and fixtures"""

import pytest
import json
import tempfile
from datetime import date
from pathlib import Path
import yaml

from riplanner.core.config import Settings
from riplanner.core.base.pricing import PricingRecord, ReservedRate, Scenario
from riplanner.core.base.reservation import ReservationRow, ReservationType, UpfrontPayment


DEFAULT_RESERVED = {
    Scenario.NO_UPFRONT_1Y: ReservedRate(upfront_cost=0.0, daily_rate=40.0),
    Scenario.PARTIAL_UPFRONT_1Y: ReservedRate(upfront_cost=3600.0, daily_rate=30.0),
    Scenario.FULL_UPFRONT_1Y: ReservedRate(upfront_cost=9000.0, daily_rate=0.0),
    Scenario.PARTIAL_UPFRONT_3Y: ReservedRate(upfront_cost=10000.0, daily_rate=15.0),
    Scenario.FULL_UPFRONT_3Y: ReservedRate(upfront_cost=20000.0, daily_rate=0.0),
}


@pytest.fixture(scope="session")
def test_settings():
    """Create test settings"""
    return Settings(
        environment="test",
        debug=True,
        logging={
            "level": "DEBUG",
            "structured": False,
            "console": False
        },
        projection={
            "max_renewals_per_chain": 50
        }
    )


@pytest.fixture
def make_row():
    """Factory for reservation rows; defaults to one 12 month Partial Upfront mysql RI"""
    def _make(**overrides) -> ReservationRow:
        fields = {
            "id": "ri-1",
            "start_date": date(2024, 11, 1),
            "end_date": date(2025, 10, 31),
            "count": 1,
            "instance_class": "db.r5.large",
            "region": "us-east-1",
            "multi_az": False,
            "engine": "mysql",
            "upfront_payment": UpfrontPayment.PARTIAL_UPFRONT,
            "duration_months": 12,
            "edition": "standard",
            "type": ReservationType.ACTUAL,
        }
        fields.update(overrides)
        return ReservationRow(**fields)
    return _make


@pytest.fixture
def make_record():
    """Factory for pricing records; defaults to mysql db.r5.large at 50/day on-demand"""
    def _make(**overrides) -> PricingRecord:
        fields = {
            "region": "us-east-1",
            "instance_class": "db.r5.large",
            "multi_az": False,
            "engine": "mysql",
            "edition": None,
            "daily_on_demand_rate": 50.0,
            "reserved": dict(DEFAULT_RESERVED),
        }
        fields.update(overrides)
        return PricingRecord(**fields)
    return _make


@pytest.fixture
def sample_portfolio_data():
    """Portfolio document in the camelCase export format"""
    return {
        "metadata": {"source": "test-export", "firstFullYear": 2026},
        "reservations": [
            {
                "id": "ri-a",
                "startDate": "2024-06-15",
                "endDate": "2025-06-14",
                "count": 1,
                "instanceClass": "db.r5.large",
                "region": "us-east-1",
                "multiAz": False,
                "engine": "mysql",
                "upfrontPayment": "Partial Upfront",
                "durationMonths": 12
            },
            {
                "id": "ri-b",
                "startDate": "2024-08-01",
                "endDate": "2025-07-31",
                "count": 2,
                "instanceClass": "db.r5.xlarge",
                "region": "us-east-1",
                "multiAz": False,
                "engine": "mysql",
                "upfrontPayment": "Partial Upfront",
                "durationMonths": 12
            }
        ]
    }


@pytest.fixture
def sample_pricing_files():
    """Pricing catalog entries matching the sample portfolio"""
    def entry(instance, on_demand_daily, partial_daily, partial_upfront):
        return {
            "region": "us-east-1",
            "instance": instance,
            "deployment": "single-az",
            "engine": "mysql",
            "onDemand": {"daily": on_demand_daily},
            "savingsOptions": {
                "1yr_No Upfront": {"upfront": 0, "daily": on_demand_daily * 0.8},
                "1yr_Partial Upfront": {"upfront": partial_upfront, "daily": partial_daily},
                "1yr_All Upfront": {"upfront": partial_upfront * 2, "daily": 0},
                "3yr_Partial Upfront": {"upfront": partial_upfront * 3, "daily": partial_daily / 2},
                "3yr_All Upfront": {"upfront": partial_upfront * 5, "daily": 0}
            }
        }
    return [
        entry("db.r5.large", 10.0, 5.0, 100.0),
        entry("db.r5.xlarge", 20.0, 10.0, 200.0),
    ]


@pytest.fixture
def temp_dir():
    with tempfile.TemporaryDirectory() as tmp:
        yield Path(tmp)


@pytest.fixture
def portfolio_file(temp_dir, sample_portfolio_data):
    path = temp_dir / "portfolio.json"
    path.write_text(json.dumps(sample_portfolio_data))
    return path


@pytest.fixture
def pricing_dir(temp_dir, sample_pricing_files):
    """Catalog laid out as <region>/<instance>/<region>_<instance>_<deployment>-<engine>.json"""
    root = temp_dir / "pricing"
    for data in sample_pricing_files:
        folder = root / data["region"] / data["instance"]
        folder.mkdir(parents=True, exist_ok=True)
        name = f"{data['region']}_{data['instance']}_{data['deployment']}-{data['engine']}.json"
        (folder / name).write_text(json.dumps(data))
    return root


@pytest.fixture
def temp_config_file(temp_dir):
    """Create temporary config file"""
    path = temp_dir / "riplanner.yaml"
    config = {
        "app_name": "riplanner-test",
        "environment": "test",
        "aggregation": {"diagnostics_cap": 25},
        "projection": {"max_renewals_per_chain": 40},
        "logging": {"level": "WARNING", "console": False},
    }
    path.write_text(yaml.dump(config))
    return path


def pytest_configure(config):
    """Configure pytest"""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
