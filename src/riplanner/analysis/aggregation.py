import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, Any, Iterable, List, Optional, Union

from .pricing_index import PricingIndex
from .proration import (
    active_days_in_month, month_key, parse_month_key, prorate_month,
)
from ..core.base.pricing import PricingRecord
from ..core.base.reservation import ReservationRow
from ..core.config import Settings, get_settings
from ..core.exceptions import ValidationError
from ..core.logging import get_performance_logger

logger = logging.getLogger(__name__)


class GroupingMode(str, Enum):
    RI_TYPE = "ri-type"
    COST_TYPE = "cost-type"


SAVINGS_UPFRONT = "Savings Upfront"
SAVINGS_MONTHLY = "Savings Monthly"
ON_DEMAND_MONTHLY = "On Demand Monthly"
COST_TYPE_GROUPS = (SAVINGS_UPFRONT, SAVINGS_MONTHLY, ON_DEMAND_MONTHLY)

DEFAULT_OPEN_ENDED_MONTHS = 12


@dataclass
class AggregateDetail:
    """One reservation's contribution to one aggregate cell"""
    reservation_id: str
    key: str
    active_days: int
    count: int
    recurring_cost: float = 0.0
    upfront_cost: float = 0.0
    on_demand_cost: float = 0.0
    is_renewal: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reservation_id": self.reservation_id,
            "key": self.key,
            "active_days": self.active_days,
            "count": self.count,
            "recurring_cost": self.recurring_cost,
            "upfront_cost": self.upfront_cost,
            "on_demand_cost": self.on_demand_cost,
            "is_renewal": self.is_renewal,
        }


@dataclass
class MonthlyCostAggregate:
    """Reserved and on-demand cost of one group in one month.

    ``ri_cost`` holds purchased reservations, ``renewal_cost`` holds projected
    renewals; savings are always recomputed from the running totals.
    """
    month_key: str
    group_key: str
    ri_cost: float = 0.0
    renewal_cost: float = 0.0
    upfront_cost: float = 0.0
    recurring_cost: float = 0.0
    on_demand_cost: float = 0.0
    savings_amount: float = 0.0
    savings_percentage: float = 0.0
    details: List[AggregateDetail] = field(default_factory=list)

    @property
    def reserved_cost(self) -> float:
        return self.ri_cost + self.renewal_cost

    def add(self, detail: AggregateDetail) -> None:
        reserved = detail.recurring_cost + detail.upfront_cost
        if detail.is_renewal:
            self.renewal_cost += reserved
        else:
            self.ri_cost += reserved
        self.upfront_cost += detail.upfront_cost
        self.recurring_cost += detail.recurring_cost
        self.on_demand_cost += detail.on_demand_cost
        self.details.append(detail)
        self._recompute_savings()

    def _recompute_savings(self) -> None:
        self.savings_amount = self.on_demand_cost - self.reserved_cost
        if self.on_demand_cost > 0:
            self.savings_percentage = (1 - self.reserved_cost / self.on_demand_cost) * 100
        else:
            self.savings_percentage = 0.0

    def to_dict(self, include_details: bool = False) -> Dict[str, Any]:
        data = {
            "month_key": self.month_key,
            "group_key": self.group_key,
            "ri_cost": self.ri_cost,
            "renewal_cost": self.renewal_cost,
            "upfront_cost": self.upfront_cost,
            "recurring_cost": self.recurring_cost,
            "on_demand_cost": self.on_demand_cost,
            "savings_amount": self.savings_amount,
            "savings_percentage": self.savings_percentage,
        }
        if include_details:
            data["details"] = [d.to_dict() for d in self.details]
        return data


@dataclass
class DiagnosticEntry:
    """A data-quality problem found while aggregating"""
    key: str
    reservation_id: str
    reason: str
    month_key: Optional[str] = None
    context: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "reservation_id": self.reservation_id,
            "reason": self.reason,
            "month_key": self.month_key,
            "context": self.context,
        }


BUCKETS = (
    "unmatched_pricing", "invalid_pricing", "missing_rates",
    "zero_active_days", "zero_count", "runaway",
)


@dataclass
class AggregationDiagnostics:
    """Typed, capped buckets of problems returned alongside results"""
    cap: int = 1000
    matched_count: int = 0
    unmatched_count: int = 0
    unmatched_samples: List[DiagnosticEntry] = field(default_factory=list)
    unmatched_pricing: List[DiagnosticEntry] = field(default_factory=list)
    invalid_pricing: List[DiagnosticEntry] = field(default_factory=list)
    missing_rates: List[DiagnosticEntry] = field(default_factory=list)
    zero_active_days: List[DiagnosticEntry] = field(default_factory=list)
    zero_count: List[DiagnosticEntry] = field(default_factory=list)
    runaway: List[DiagnosticEntry] = field(default_factory=list)

    def record(self, bucket: str, entry: DiagnosticEntry) -> None:
        if bucket not in BUCKETS:
            raise ValueError(f"Unknown diagnostics bucket: {bucket}")
        entries = getattr(self, bucket)
        if len(entries) < self.cap:
            entries.append(entry)

    def record_unmatched(self, bucket: str, entry: DiagnosticEntry) -> None:
        self.unmatched_count += 1
        if len(self.unmatched_samples) < self.cap:
            self.unmatched_samples.append(entry)
        self.record(bucket, entry)

    @property
    def has_errors(self) -> bool:
        return any(getattr(self, bucket) for bucket in BUCKETS)

    def summary(self) -> Dict[str, int]:
        counts = {bucket: len(getattr(self, bucket)) for bucket in BUCKETS}
        counts["matched"] = self.matched_count
        counts["unmatched"] = self.unmatched_count
        return counts

    def error_message(self) -> Optional[str]:
        """One-line description of what went wrong, or None when clean"""
        parts = []
        if self.unmatched_pricing:
            parts.append(
                f"{len(self.unmatched_pricing)} unmatched pricing record(s) "
                f"(e.g., {self.unmatched_pricing[0].key})"
            )
        if self.invalid_pricing:
            parts.append(
                f"{len(self.invalid_pricing)} invalid pricing record(s) "
                f"(e.g., {self.invalid_pricing[0].key})"
            )
        if self.missing_rates:
            parts.append(f"{len(self.missing_rates)} missing rate(s)")
        if self.zero_active_days:
            parts.append(f"{len(self.zero_active_days)} month(s) with zero active days")
        if self.zero_count:
            parts.append(f"{len(self.zero_count)} reservation(s) with zero count")
        if self.runaway:
            parts.append(f"{len(self.runaway)} reservation(s) exceeded the month limit")
        return "; ".join(parts) if parts else None

    def to_dict(self) -> Dict[str, Any]:
        data = {bucket: [e.to_dict() for e in getattr(self, bucket)] for bucket in BUCKETS}
        data["matched_count"] = self.matched_count
        data["unmatched_count"] = self.unmatched_count
        return data


@dataclass
class YearSummary:
    """Reserved against on-demand cost for one calendar year"""
    year: int
    ri_cost: float
    on_demand_cost: float
    months: int

    @property
    def savings_amount(self) -> float:
        return self.on_demand_cost - self.ri_cost

    @property
    def savings_percentage(self) -> float:
        if self.on_demand_cost <= 0:
            return 0.0
        return self.savings_amount / self.on_demand_cost * 100

    @property
    def is_partial(self) -> bool:
        return self.months < 12

    def to_dict(self) -> Dict[str, Any]:
        return {
            "year": self.year,
            "ri_cost": self.ri_cost,
            "on_demand_cost": self.on_demand_cost,
            "savings_amount": self.savings_amount,
            "savings_percentage": self.savings_percentage,
            "months": self.months,
            "is_partial": self.is_partial,
        }


@dataclass
class AggregationResult:
    """Month keyed, group keyed cost table plus diagnostics"""
    months: Dict[str, Dict[str, MonthlyCostAggregate]]
    diagnostics: AggregationDiagnostics
    grouping: GroupingMode = GroupingMode.RI_TYPE

    def month_keys(self) -> List[str]:
        return sorted(self.months.keys())

    def group_keys(self) -> List[str]:
        keys = set()
        for groups in self.months.values():
            keys.update(groups.keys())
        return sorted(keys)

    def get(self, month: str, group: str) -> Optional[MonthlyCostAggregate]:
        return self.months.get(month, {}).get(group)

    def month_total(self, month: str) -> YearSummary:
        groups = self.months.get(month, {}).values()
        year, _ = parse_month_key(month)
        return YearSummary(
            year=year,
            ri_cost=sum(g.reserved_cost for g in groups),
            on_demand_cost=sum(g.on_demand_cost for g in groups),
            months=1,
        )

    def by_year(self) -> List[YearSummary]:
        """Savings breakdown per calendar year, oldest first"""
        years: Dict[int, YearSummary] = {}
        for month in self.month_keys():
            total = self.month_total(month)
            summary = years.get(total.year)
            if summary is None:
                years[total.year] = total
            else:
                summary.ri_cost += total.ri_cost
                summary.on_demand_cost += total.on_demand_cost
                summary.months += 1
        return [years[y] for y in sorted(years)]

    def totals(self) -> Dict[str, float]:
        years = self.by_year()
        ri_cost = sum(y.ri_cost for y in years)
        on_demand_cost = sum(y.on_demand_cost for y in years)
        savings = on_demand_cost - ri_cost
        return {
            "total_ri_cost": ri_cost,
            "total_on_demand_cost": on_demand_cost,
            "total_savings": savings,
            "savings_percentage": savings / on_demand_cost * 100 if on_demand_cost > 0 else 0.0,
        }

    def to_dict(self, include_details: bool = False) -> Dict[str, Any]:
        return {
            "grouping": self.grouping.value,
            "months": {
                month: {
                    group: agg.to_dict(include_details)
                    for group, agg in sorted(groups.items())
                }
                for month, groups in sorted(self.months.items())
            },
            "by_year": [y.to_dict() for y in self.by_year()],
            "totals": self.totals(),
            "diagnostics": self.diagnostics.summary(),
        }


class CostAggregationEngine:
    """Turns reservations and a pricing catalog into monthly cost aggregates"""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.config = self.settings.aggregation
        self.performance = get_performance_logger()

    def aggregate(self,
                  rows: Iterable[ReservationRow],
                  pricing: Union[PricingIndex, Iterable[PricingRecord]],
                  grouping: Union[GroupingMode, str] = GroupingMode.RI_TYPE,
                  horizon_end: Optional[date] = None) -> AggregationResult:
        """Aggregate reservation cost per month and group.

        Months after the month of ``horizon_end`` are left out when it is given.

        Bad data never raises: unmatched keys, invalid pricing, missing rates,
        zero counts and zero-day months land in the diagnostics buckets.
        """
        if rows is None:
            raise ValidationError("Reservation rows are required")
        if pricing is None:
            raise ValidationError("Pricing data is required")
        try:
            grouping = GroupingMode(grouping)
        except ValueError:
            raise ValidationError(f"Unsupported grouping mode: {grouping}")

        index = pricing if isinstance(pricing, PricingIndex) else PricingIndex(pricing)
        diagnostics = AggregationDiagnostics(cap=self.config.diagnostics_cap)
        months: Dict[str, Dict[str, MonthlyCostAggregate]] = {}

        rows = list(rows)
        with self.performance.timer("aggregate", rows=len(rows), grouping=grouping.value):
            for row in rows:
                self._aggregate_row(row, index, grouping, months, diagnostics, horizon_end)

        logger.info(
            f"Aggregated {diagnostics.matched_count} of {len(rows)} reservations "
            f"into {len(months)} months ({diagnostics.unmatched_count} unmatched)"
        )
        return AggregationResult(months=months, diagnostics=diagnostics, grouping=grouping)

    def _aggregate_row(self, row: ReservationRow, index: PricingIndex, grouping: GroupingMode,
                       months: Dict[str, Dict[str, MonthlyCostAggregate]],
                       diagnostics: AggregationDiagnostics,
                       horizon_end: Optional[date] = None) -> None:
        criteria = row.criteria()
        key = criteria.to_key()
        variant = index.get(key)

        if variant is None:
            diagnostics.record_unmatched("unmatched_pricing", DiagnosticEntry(
                key=key,
                reservation_id=row.id,
                reason="No matching pricing record found for this configuration",
                context=row.to_dict(),
            ))
            if diagnostics.unmatched_count <= self.config.log_unmatched_limit:
                logger.warning(f"No pricing match for reservation {row.id}: {key}")
            return

        if variant.is_invalid:
            diagnostics.record_unmatched("invalid_pricing", DiagnosticEntry(
                key=f"{key} (invalid pricing: reserved > on-demand)",
                reservation_id=row.id,
                reason=(
                    f"Invalid pricing data: reserved rate ({variant.daily_reserved_rate}) "
                    f"> on-demand rate ({variant.daily_on_demand_rate})"
                ),
            ))
            return

        diagnostics.matched_count += 1

        if variant.daily_reserved_rate is None:
            diagnostics.record("missing_rates", DiagnosticEntry(
                key=key, reservation_id=row.id, reason="Missing daily reserved rate",
                context={"rate_type": "reserved"},
            ))
        if variant.daily_on_demand_rate is None:
            diagnostics.record("missing_rates", DiagnosticEntry(
                key=key, reservation_id=row.id, reason="Missing daily on-demand rate",
                context={"rate_type": "onDemand"},
            ))

        if row.count <= 0:
            diagnostics.record("zero_count", DiagnosticEntry(
                key=key, reservation_id=row.id, reason=f"Reservation count is {row.count}",
            ))
            return

        for year, month in self._touched_months(row, key, diagnostics, horizon_end):
            mk = month_key(year, month)
            days = active_days_in_month(row.start_date, row.end_date, year, month)
            if days == 0:
                diagnostics.record("zero_active_days", DiagnosticEntry(
                    key=key, reservation_id=row.id, month_key=mk,
                    reason="Reservation has no active days in this month",
                ))
                continue

            proration = prorate_month(
                row.start_date, row.end_date, year, month,
                variant.daily_reserved_rate, variant.upfront_cost, row.count,
            )
            on_demand = (variant.daily_on_demand_rate or 0.0) * days * row.count

            if grouping == GroupingMode.RI_TYPE:
                self._cell(months, mk, criteria.group_key()).add(AggregateDetail(
                    reservation_id=row.id, key=key, active_days=days, count=row.count,
                    recurring_cost=proration.recurring_cost,
                    upfront_cost=proration.upfront_cost,
                    on_demand_cost=on_demand,
                    is_renewal=row.is_projected,
                ))
            else:
                split = {
                    SAVINGS_UPFRONT: (0.0, proration.upfront_cost, 0.0),
                    SAVINGS_MONTHLY: (proration.recurring_cost, 0.0, 0.0),
                    ON_DEMAND_MONTHLY: (0.0, 0.0, on_demand),
                }
                for group, (recurring, upfront, od) in split.items():
                    self._cell(months, mk, group).add(AggregateDetail(
                        reservation_id=row.id, key=key, active_days=days, count=row.count,
                        recurring_cost=recurring, upfront_cost=upfront, on_demand_cost=od,
                        is_renewal=row.is_projected,
                    ))

    def _touched_months(self, row: ReservationRow, key: str,
                        diagnostics: AggregationDiagnostics,
                        horizon_end: Optional[date] = None):
        limit = self.config.max_months_per_row
        start = row.start_date
        if row.end_date is None:
            span = row.duration_months or DEFAULT_OPEN_ENDED_MONTHS
        else:
            span = (row.end_date.year - start.year) * 12 + row.end_date.month - start.month + 1

        if span > limit:
            diagnostics.record("runaway", DiagnosticEntry(
                key=key, reservation_id=row.id,
                reason=f"Reservation spans {span} months, limited to {limit}",
            ))
            logger.error(f"Reservation {row.id} spans {span} months, truncating to {limit}")
            span = limit

        year, month = start.year, start.month
        for _ in range(max(span, 0)):
            if horizon_end is not None and (year, month) > (horizon_end.year, horizon_end.month):
                return
            yield year, month
            month += 1
            if month > 12:
                year, month = year + 1, 1

    @staticmethod
    def _cell(months: Dict[str, Dict[str, MonthlyCostAggregate]], mk: str,
              group: str) -> MonthlyCostAggregate:
        groups = months.setdefault(mk, {})
        if group not in groups:
            groups[group] = MonthlyCostAggregate(month_key=mk, group_key=group)
        return groups[group]
