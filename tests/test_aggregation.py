"""Tests for monthly cost aggregation"""

import pytest
from datetime import date

from riplanner.analysis.aggregation import (
    CostAggregationEngine, GroupingMode, ON_DEMAND_MONTHLY, SAVINGS_MONTHLY, SAVINGS_UPFRONT,
)
from riplanner.analysis.horizon import year_end
from riplanner.analysis.renewal import RenewalProjector
from riplanner.core.base.pricing import PricingRecord, ReservedRate, Scenario
from riplanner.core.base.reservation import Portfolio, ReservationType, UpfrontPayment
from riplanner.core.config import Settings
from riplanner.core.exceptions import ValidationError


@pytest.fixture
def engine(test_settings):
    return CostAggregationEngine(test_settings)


def no_upfront_record(make_record, reserved_daily=30.0, on_demand_daily=50.0):
    return make_record(
        daily_on_demand_rate=on_demand_daily,
        reserved={Scenario.NO_UPFRONT_1Y: ReservedRate(upfront_cost=0.0, daily_rate=reserved_daily)},
    )


@pytest.mark.unit
class TestCostAggregation:
    """Test CostAggregationEngine"""

    def test_savings_for_full_month(self, engine, make_row, make_record):
        row = make_row(upfront_payment=UpfrontPayment.NO_UPFRONT)
        result = engine.aggregate([row], [no_upfront_record(make_record)])

        november = result.get("2024-11", row.criteria().group_key())
        assert november.on_demand_cost == 1500.0
        assert november.ri_cost == 900.0
        assert november.savings_amount == 600.0
        assert november.savings_percentage == pytest.approx(40.0)

    def test_open_ended_start_month(self, engine, make_row, make_record):
        row = make_row(upfront_payment=UpfrontPayment.NO_UPFRONT,
                       start_date=date(2024, 11, 16), end_date=None)
        result = engine.aggregate([row], [no_upfront_record(make_record)])

        assert result.get("2024-11", row.criteria().group_key()).ri_cost == 450.0
        # open-ended rows run for their duration
        assert len(result.month_keys()) == 12

    def test_upfront_lands_in_start_month(self, engine, make_row, make_record):
        row = make_row(start_date=date(2025, 9, 10), end_date=date(2026, 9, 9))
        record = make_record(reserved={
            Scenario.PARTIAL_UPFRONT_1Y: ReservedRate(upfront_cost=3600.0, daily_rate=10.0),
        })
        result = engine.aggregate([row], [record])

        assert result.month_total("2025-09").ri_cost >= 3600.0
        assert result.month_total("2025-10").ri_cost < 3600.0
        assert result.get("2025-09", row.criteria().group_key()).upfront_cost == 3600.0

    def test_rows_sharing_a_group_are_stacked(self, engine, make_row, make_record):
        rows = [
            make_row(id="a", upfront_payment=UpfrontPayment.NO_UPFRONT),
            make_row(id="b", upfront_payment=UpfrontPayment.NO_UPFRONT, count=2),
        ]
        result = engine.aggregate(rows, [no_upfront_record(make_record)])

        november = result.get("2024-11", rows[0].criteria().group_key())
        assert november.ri_cost == 2700.0
        assert november.on_demand_cost == 4500.0
        assert len(november.details) == 2
        assert november.savings_percentage == pytest.approx(40.0)

    def test_unmatched_rows_are_skipped(self, engine, make_row, make_record):
        result = engine.aggregate([make_row(engine="postgres")], [make_record()])

        assert result.months == {}
        assert result.diagnostics.unmatched_count == 1
        assert len(result.diagnostics.unmatched_pricing) == 1
        assert len(result.diagnostics.unmatched_samples) == 1
        assert "unmatched pricing" in result.diagnostics.error_message()

    def test_invalid_pricing_is_skipped(self, engine, make_row, make_record):
        record = make_record(reserved={
            Scenario.PARTIAL_UPFRONT_1Y: ReservedRate(upfront_cost=0.0, daily_rate=60.0),
        })
        result = engine.aggregate([make_row()], [record])

        assert result.months == {}
        assert len(result.diagnostics.invalid_pricing) == 1
        assert "invalid pricing" in result.diagnostics.invalid_pricing[0].key

    def test_missing_rate_is_flagged(self, engine, make_row, make_record):
        record = make_record(daily_on_demand_rate=None)
        row = make_row()
        result = engine.aggregate([row], [record])

        missing = result.diagnostics.missing_rates
        assert len(missing) == 1
        assert missing[0].context["rate_type"] == "onDemand"
        assert result.get("2024-11", row.criteria().group_key()).on_demand_cost == 0.0

    def test_zero_rate_is_not_missing(self, engine, make_row, make_record):
        row = make_row(upfront_payment=UpfrontPayment.ALL_UPFRONT)
        result = engine.aggregate([row], [make_record()])

        assert result.diagnostics.missing_rates == []
        assert result.get("2024-11", row.criteria().group_key()).ri_cost == 9000.0

    def test_zero_count_is_flagged(self, engine, make_row, make_record):
        result = engine.aggregate([make_row(count=0)], [make_record()])

        assert result.months == {}
        assert len(result.diagnostics.zero_count) == 1
        assert result.diagnostics.has_errors

    def test_runaway_span_is_truncated(self, make_row, make_record):
        engine = CostAggregationEngine(Settings(aggregation={"max_months_per_row": 3}))
        result = engine.aggregate([make_row()], [make_record()])

        assert len(result.month_keys()) == 3
        assert len(result.diagnostics.runaway) == 1

    def test_diagnostics_are_capped(self, make_row, make_record):
        engine = CostAggregationEngine(Settings(aggregation={"diagnostics_cap": 2}))
        rows = [make_row(id=f"ri-{i}", engine="postgres") for i in range(5)]
        result = engine.aggregate(rows, [make_record()])

        assert result.diagnostics.unmatched_count == 5
        assert len(result.diagnostics.unmatched_pricing) == 2
        assert len(result.diagnostics.unmatched_samples) == 2

    def test_cost_type_grouping(self, engine, make_row, make_record):
        result = engine.aggregate([make_row()], [make_record()], GroupingMode.COST_TYPE)

        assert set(result.group_keys()) == {SAVINGS_UPFRONT, SAVINGS_MONTHLY, ON_DEMAND_MONTHLY}
        assert result.get("2024-11", SAVINGS_UPFRONT).ri_cost == 3600.0
        assert result.get("2024-11", SAVINGS_MONTHLY).ri_cost == 900.0
        assert result.get("2024-11", ON_DEMAND_MONTHLY).on_demand_cost == 1500.0
        assert result.get("2024-12", SAVINGS_UPFRONT).ri_cost == 0.0
        assert result.month_total("2024-11").ri_cost == 4500.0

    def test_projected_rows_count_as_renewals(self, engine, make_row, make_record):
        row = make_row(type=ReservationType.PROJECTED, id="ri-1-renew-1", origin_id="ri-1")
        result = engine.aggregate([row], [make_record()])

        november = result.get("2024-11", row.criteria().group_key())
        assert november.ri_cost == 0.0
        assert november.renewal_cost == 4500.0
        assert november.savings_amount == 1500.0 - 4500.0

    def test_horizon_end_clips_months(self, engine, make_row, make_record):
        result = engine.aggregate([make_row()], [make_record()], horizon_end=date(2025, 1, 15))
        assert result.month_keys() == ["2024-11", "2024-12", "2025-01"]

    def test_by_year(self, engine, make_row, make_record):
        row = make_row(upfront_payment=UpfrontPayment.NO_UPFRONT)
        years = engine.aggregate([row], [no_upfront_record(make_record)]).by_year()

        assert [y.year for y in years] == [2024, 2025]
        assert years[0].months == 2
        assert years[0].is_partial
        assert years[0].on_demand_cost == 50.0 * 61

    def test_requires_arguments(self, engine, make_record):
        with pytest.raises(ValidationError):
            engine.aggregate(None, [make_record()])
        with pytest.raises(ValidationError):
            engine.aggregate([], None)
        with pytest.raises(ValidationError):
            engine.aggregate([], [make_record()], grouping="by-color")


@pytest.mark.integration
class TestEndToEndAggregation:
    """Two reservations renewed through the first full year"""

    @pytest.fixture
    def records(self):
        def record(instance, on_demand):
            return PricingRecord(
                region="us-east-1", instance_class=instance, multi_az=False, engine="mysql",
                daily_on_demand_rate=on_demand,
                reserved={Scenario.PARTIAL_UPFRONT_1Y: ReservedRate(upfront_cost=100.0, daily_rate=on_demand / 2)},
            )
        return [record("db.r5.large", 10.0), record("db.r5.xlarge", 20.0)]

    @pytest.fixture
    def result(self, test_settings, make_row, records):
        rows = [
            make_row(id="ri-a", start_date=date(2024, 6, 15), end_date=date(2025, 6, 14)),
            make_row(id="ri-b", start_date=date(2024, 8, 1), end_date=date(2025, 7, 31),
                     count=2, instance_class="db.r5.xlarge"),
        ]
        projection = RenewalProjector(test_settings).project(Portfolio(rows=rows, first_full_year=2026))
        engine = CostAggregationEngine(test_settings)
        return engine.aggregate(projection.portfolio.rows, records, horizon_end=year_end(2026)), rows

    def test_span(self, result):
        aggregation, _ = result
        assert aggregation.month_keys()[0] == "2024-06"
        assert aggregation.month_keys()[-1] == "2026-12"
        assert "2027-01" not in aggregation.months

    def test_on_demand_per_row(self, result):
        aggregation, rows = result
        small, large = (r.criteria().group_key() for r in rows)

        assert aggregation.get("2024-06", small).on_demand_cost == 10.0 * 16
        assert aggregation.get("2025-03", small).on_demand_cost == 10.0 * 31
        # original and first renewal meet mid June
        assert aggregation.get("2025-06", small).on_demand_cost == pytest.approx(10.0 * 30)
        assert aggregation.get("2026-12", small).on_demand_cost == 10.0 * 31

        assert aggregation.get("2024-07", large) is None
        assert aggregation.get("2024-08", large).on_demand_cost == 20.0 * 31 * 2
        assert aggregation.get("2026-02", large).on_demand_cost == 20.0 * 28 * 2
        assert aggregation.get("2026-12", large).on_demand_cost == 20.0 * 31 * 2

    def test_no_diagnostics(self, result):
        aggregation, _ = result
        assert not aggregation.diagnostics.has_errors
        assert aggregation.diagnostics.matched_count == 6
