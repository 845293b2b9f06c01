from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, List, Optional

from .criteria import MatchingCriteria
from .reservation import UpfrontPayment
from ..exceptions import ValidationError


class Scenario(str, Enum):
    """The six ways of paying for the same capacity"""
    ON_DEMAND = "onDemand"
    NO_UPFRONT_1Y = "noUpfront_1y"
    PARTIAL_UPFRONT_1Y = "partialUpfront_1y"
    FULL_UPFRONT_1Y = "fullUpfront_1y"
    PARTIAL_UPFRONT_3Y = "partialUpfront_3y"
    FULL_UPFRONT_3Y = "fullUpfront_3y"

    @property
    def is_reserved(self) -> bool:
        return self != Scenario.ON_DEMAND

    @property
    def duration_months(self) -> Optional[int]:
        terms = _SCENARIO_TERMS.get(self)
        return terms[1] if terms else None

    @property
    def upfront_payment(self) -> Optional[UpfrontPayment]:
        terms = _SCENARIO_TERMS.get(self)
        return terms[0] if terms else None

    @property
    def catalog_label(self) -> Optional[str]:
        """Savings option key used by pricing catalog files, e.g. ``1yr_No Upfront``"""
        terms = _SCENARIO_TERMS.get(self)
        if not terms:
            return None
        return f"{terms[1] // 12}yr_{terms[0].value}"

    @property
    def display_name(self) -> str:
        if not self.is_reserved:
            return "On Demand"
        return f"{self.duration_months // 12}yr {self.upfront_payment.value}"

    @classmethod
    def from_terms(cls, upfront_payment: Any, duration_months: int) -> "Scenario":
        upfront = UpfrontPayment.parse(upfront_payment)
        for scenario, terms in _SCENARIO_TERMS.items():
            if terms == (upfront, duration_months):
                return scenario
        raise ValidationError(
            f"No reservation scenario for {upfront.value} over {duration_months} months"
        )

    @classmethod
    def from_catalog_label(cls, label: str) -> "Scenario":
        for scenario in cls.reserved():
            if scenario.catalog_label.lower() == (label or "").strip().lower():
                return scenario
        raise ValidationError(f"Unknown savings option: {label!r}")

    @classmethod
    def reserved(cls) -> List["Scenario"]:
        return [s for s in cls if s.is_reserved]


_SCENARIO_TERMS = {
    Scenario.NO_UPFRONT_1Y: (UpfrontPayment.NO_UPFRONT, 12),
    Scenario.PARTIAL_UPFRONT_1Y: (UpfrontPayment.PARTIAL_UPFRONT, 12),
    Scenario.FULL_UPFRONT_1Y: (UpfrontPayment.ALL_UPFRONT, 12),
    Scenario.PARTIAL_UPFRONT_3Y: (UpfrontPayment.PARTIAL_UPFRONT, 36),
    Scenario.FULL_UPFRONT_3Y: (UpfrontPayment.ALL_UPFRONT, 36),
}


@dataclass(frozen=True)
class ReservedRate:
    """Rates for one reservation variant of a SKU"""
    upfront_cost: Optional[float] = None
    daily_rate: Optional[float] = None


@dataclass(frozen=True)
class PricingVariant:
    """One SKU flattened to a single upfront/term combination"""

    criteria: MatchingCriteria
    daily_on_demand_rate: Optional[float] = None
    daily_reserved_rate: Optional[float] = None
    upfront_cost: Optional[float] = None
    record: Optional["PricingRecord"] = field(default=None, compare=False, repr=False)

    @property
    def key(self) -> str:
        return self.criteria.to_key()

    @property
    def is_invalid(self) -> bool:
        """Reserved rate above on-demand makes the record unusable"""
        if self.daily_reserved_rate is None or self.daily_on_demand_rate is None:
            return False
        return self.daily_reserved_rate > self.daily_on_demand_rate

    def aliased(self, engine: str, edition: Optional[str]) -> "PricingVariant":
        return PricingVariant(
            criteria=self.criteria.with_engine(engine, edition),
            daily_on_demand_rate=self.daily_on_demand_rate,
            daily_reserved_rate=self.daily_reserved_rate,
            upfront_cost=self.upfront_cost,
            record=self.record,
        )


@dataclass(frozen=True)
class PricingRecord:
    """A priced SKU with its on-demand rate and every reservation variant"""

    region: str
    instance_class: str
    multi_az: bool
    engine: str
    edition: Optional[str] = None
    daily_on_demand_rate: Optional[float] = None
    hourly_on_demand_rate: Optional[float] = None
    reserved: Dict[Scenario, Optional[ReservedRate]] = field(default_factory=dict)

    @property
    def on_demand_daily(self) -> Optional[float]:
        if self.daily_on_demand_rate is not None:
            return self.daily_on_demand_rate
        if self.hourly_on_demand_rate is not None:
            return self.hourly_on_demand_rate * 24
        return None

    def reserved_rate(self, scenario: Scenario) -> Optional[ReservedRate]:
        return self.reserved.get(scenario)

    def daily_rate(self, scenario: Scenario) -> Optional[float]:
        """Daily rate paid under a scenario, on-demand included"""
        if not scenario.is_reserved:
            return self.on_demand_daily
        rate = self.reserved_rate(scenario)
        return rate.daily_rate if rate else None

    def upfront_cost(self, scenario: Scenario) -> Optional[float]:
        if not scenario.is_reserved:
            return 0.0
        rate = self.reserved_rate(scenario)
        return rate.upfront_cost if rate else None

    def variant(self, upfront_payment: Any, duration_months: int) -> Optional[PricingVariant]:
        scenario = Scenario.from_terms(upfront_payment, duration_months)
        rate = self.reserved_rate(scenario)
        if rate is None:
            return None
        return PricingVariant(
            criteria=MatchingCriteria(
                instance_class=self.instance_class,
                region=self.region,
                multi_az=self.multi_az,
                engine=self.engine,
                edition=self.edition,
                upfront_payment=scenario.upfront_payment.value,
                duration_months=scenario.duration_months,
            ),
            daily_on_demand_rate=self.on_demand_daily,
            daily_reserved_rate=rate.daily_rate,
            upfront_cost=rate.upfront_cost,
            record=self,
        )

    def variants(self) -> List[PricingVariant]:
        """Every reservation variant present on this record"""
        result = []
        for scenario in Scenario.reserved():
            variant = self.variant(scenario.upfront_payment, scenario.duration_months)
            if variant is not None:
                result.append(variant)
        return result

    @classmethod
    def from_catalog(cls, data: Dict[str, Any]) -> "PricingRecord":
        """Build a record from a pricing catalog entry.

        Catalog entries carry ``instance``, ``deployment`` (``single-az`` or
        ``multi-az``), an ``engine`` token with an optional separate ``license``
        token, ``onDemand`` rates and a ``savingsOptions`` map keyed by labels
        such as ``1yr_Partial Upfront``. A reservation's daily rate falls back to
        ``effectiveHourly * 24`` when ``daily`` is absent.
        """
        engine = (data.get("engine") or "").strip()
        license_token = (data.get("license") or "").strip()
        if license_token and not engine.lower().endswith(f"-{license_token.lower()}"):
            engine = f"{engine}-{license_token}"

        deployment = (data.get("deployment") or "").strip().lower()
        on_demand = data.get("onDemand") or {}

        reserved = {}
        for label, option in (data.get("savingsOptions") or {}).items():
            scenario = Scenario.from_catalog_label(label)
            if not option:
                reserved[scenario] = None
                continue
            daily = option.get("daily")
            if daily is None and option.get("effectiveHourly") is not None:
                daily = round(option["effectiveHourly"] * 24, 6)
            reserved[scenario] = ReservedRate(
                upfront_cost=option.get("upfront"),
                daily_rate=daily,
            )

        return cls(
            region=(data.get("region") or "").strip(),
            instance_class=(data.get("instance") or data.get("instance_class") or "").strip(),
            multi_az=deployment == "multi-az" or bool(data.get("multi_az")),
            engine=engine,
            edition=data.get("edition") or None,
            daily_on_demand_rate=on_demand.get("daily"),
            hourly_on_demand_rate=on_demand.get("hourly"),
            reserved=reserved,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "region": self.region,
            "instance_class": self.instance_class,
            "multi_az": self.multi_az,
            "engine": self.engine,
            "edition": self.edition,
            "daily_on_demand_rate": self.on_demand_daily,
            "reserved": {
                scenario.value: (
                    {"upfront_cost": rate.upfront_cost, "daily_rate": rate.daily_rate}
                    if rate else None
                )
                for scenario, rate in self.reserved.items()
            },
        }
