"""Tests for validation module"""

import pytest
from datetime import date
from pydantic import ValidationError as PydanticValidationError

from riplanner.core.base.pricing import Scenario
from riplanner.core.base.reservation import UpfrontPayment
from riplanner.core.exceptions import ValidationError
from riplanner.core.validation import (
    PortfolioDocument, PricingFileInput, ReservationInput, Validator,
)


@pytest.mark.unit
class TestValidator:
    """Test Validator class"""

    def test_parse_date(self):
        assert Validator.parse_date("2024-11-16") == date(2024, 11, 16)
        assert Validator.parse_date("2024-11-16T00:00:00Z") == date(2024, 11, 16)
        assert Validator.parse_date(None) is None

        with pytest.raises(ValidationError):
            Validator.parse_date("16/11/2024")

    def test_validate_date_range(self):
        assert Validator.validate_date_range("2024-01-01", None) == (date(2024, 1, 1), None)

        with pytest.raises(ValidationError):
            Validator.validate_date_range("2024-02-01", "2024-01-01")

    def test_validate_duration_months(self):
        assert Validator.validate_duration_months("36") == 36

        with pytest.raises(ValidationError):
            Validator.validate_duration_months(24)

    def test_validate_upfront_payment(self):
        assert Validator.validate_upfront_payment("Partial") == UpfrontPayment.PARTIAL_UPFRONT
        assert Validator.validate_upfront_payment("AllUpfront") == UpfrontPayment.ALL_UPFRONT
        assert Validator.validate_upfront_payment("Full Upfront") == UpfrontPayment.ALL_UPFRONT
        assert Validator.validate_upfront_payment("no_upfront") == UpfrontPayment.NO_UPFRONT

        with pytest.raises(ValidationError):
            Validator.validate_upfront_payment("Half Upfront")

    def test_validate_count(self):
        assert Validator.validate_count("3") == 3

        with pytest.raises(ValidationError):
            Validator.validate_count(0)

    def test_validate_scenario(self):
        assert Validator.validate_scenario("partialUpfront_3y") == Scenario.PARTIAL_UPFRONT_3Y
        assert Validator.validate_scenario("1yr_No Upfront") == Scenario.NO_UPFRONT_1Y

        with pytest.raises(ValidationError):
            Validator.validate_scenario("2yr_No Upfront")

    def test_validate_json_and_yaml(self):
        assert Validator.validate_json('{"a": 1}') == {"a": 1}
        assert Validator.validate_yaml("a: 1") == {"a": 1}

        with pytest.raises(ValidationError):
            Validator.validate_json("{not json")


@pytest.mark.unit
class TestReservationInput:
    """Test ReservationInput model"""

    def test_camel_case_document(self, sample_portfolio_data):
        reservation = ReservationInput.model_validate(sample_portfolio_data["reservations"][0])

        assert reservation.start_date == date(2024, 6, 15)
        assert reservation.instance_class == "db.r5.large"
        assert reservation.upfront_payment == UpfrontPayment.PARTIAL_UPFRONT
        assert reservation.edition == "standard"

    def test_numeric_id(self, sample_portfolio_data):
        data = dict(sample_portfolio_data["reservations"][0], id=42)
        assert ReservationInput.model_validate(data).id == "42"

    def test_invalid_duration(self, sample_portfolio_data):
        data = dict(sample_portfolio_data["reservations"][0], durationMonths=24)
        with pytest.raises(PydanticValidationError):
            ReservationInput.model_validate(data)

    def test_end_before_start(self, sample_portfolio_data):
        data = dict(sample_portfolio_data["reservations"][0], endDate="2024-01-01")
        with pytest.raises(PydanticValidationError):
            ReservationInput.model_validate(data)

    def test_unknown_upfront(self, sample_portfolio_data):
        data = dict(sample_portfolio_data["reservations"][0], upfrontPayment="Sometimes")
        with pytest.raises(PydanticValidationError):
            ReservationInput.model_validate(data)


@pytest.mark.unit
class TestPortfolioDocument:
    """Test PortfolioDocument model"""

    def test_to_portfolio(self, sample_portfolio_data):
        portfolio = PortfolioDocument.model_validate(sample_portfolio_data).to_portfolio()

        assert len(portfolio) == 2
        assert portfolio.first_full_year == 2026
        assert portfolio.source == "test-export"
        assert portfolio.total_instances == 3

    def test_fallback_ids(self, sample_portfolio_data):
        for reservation in sample_portfolio_data["reservations"]:
            del reservation["id"]
        portfolio = PortfolioDocument.model_validate(sample_portfolio_data).to_portfolio()
        assert [r.id for r in portfolio.rows] == ["ri-1", "ri-2"]

    def test_rows_alias(self, sample_portfolio_data):
        data = {"rows": sample_portfolio_data["reservations"]}
        assert len(PortfolioDocument.model_validate(data).reservations) == 2


@pytest.mark.unit
class TestPricingFileInput:
    """Test PricingFileInput model"""

    def test_to_record(self, sample_pricing_files):
        record = PricingFileInput.model_validate(sample_pricing_files[0]).to_record()

        assert record.instance_class == "db.r5.large"
        assert record.multi_az is False
        assert record.on_demand_daily == 10.0
        assert record.reserved_rate(Scenario.PARTIAL_UPFRONT_1Y).upfront_cost == 100.0
        assert record.daily_rate(Scenario.PARTIAL_UPFRONT_1Y) == 5.0

    def test_license_joins_engine(self):
        record = PricingFileInput.model_validate({
            "region": "us-east-1",
            "instance": "db.m5.large",
            "deployment": "Multi-AZ",
            "engine": "oracle-se2",
            "license": "byol",
            "onDemand": {"hourly": 1.0},
            "savingsOptions": {"1yr_No Upfront": {"upfront": 0, "effectiveHourly": 0.5}},
        }).to_record()

        assert record.engine == "oracle-se2-byol"
        assert record.multi_az is True
        assert record.on_demand_daily == 24.0
        assert record.daily_rate(Scenario.NO_UPFRONT_1Y) == 12.0

    def test_unknown_savings_option(self, sample_pricing_files):
        data = dict(sample_pricing_files[0], savingsOptions={"5yr_No Upfront": {"daily": 1}})
        with pytest.raises(PydanticValidationError):
            PricingFileInput.model_validate(data)

    def test_invalid_deployment(self, sample_pricing_files):
        data = dict(sample_pricing_files[0], deployment="triple-az")
        with pytest.raises(PydanticValidationError):
            PricingFileInput.model_validate(data)

    def test_negative_rate(self, sample_pricing_files):
        data = dict(sample_pricing_files[0], onDemand={"daily": -1})
        with pytest.raises(PydanticValidationError):
            PricingFileInput.model_validate(data)
