import re
from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Dict, Any, List, Optional

from .criteria import MatchingCriteria
from ..exceptions import ValidationError


DEFAULT_EDITION = "standard"
VALID_DURATIONS = (12, 36)


class UpfrontPayment(str, Enum):
    NO_UPFRONT = "No Upfront"
    PARTIAL_UPFRONT = "Partial Upfront"
    ALL_UPFRONT = "All Upfront"

    @classmethod
    def parse(cls, value: Any) -> "UpfrontPayment":
        """Normalize the upfront spellings found in purchase exports"""
        if isinstance(value, cls):
            return value
        token = re.sub(r"[\s_\-]+", "", str(value or "")).lower()
        token = token.replace("upfront", "")
        aliases = {
            "no": cls.NO_UPFRONT,
            "none": cls.NO_UPFRONT,
            "partial": cls.PARTIAL_UPFRONT,
            "all": cls.ALL_UPFRONT,
            "full": cls.ALL_UPFRONT,
        }
        if token not in aliases:
            raise ValidationError(f"Invalid upfront payment: {value!r}")
        return aliases[token]


class ReservationType(str, Enum):
    ACTUAL = "actual"
    PROJECTED = "projected"


@dataclass(frozen=True)
class ReservationRow:
    """One purchased (or projected) group of identical reserved instances"""

    id: str
    start_date: date
    end_date: Optional[date]
    count: int
    instance_class: str
    region: str
    multi_az: bool
    engine: str
    upfront_payment: UpfrontPayment
    duration_months: int
    edition: Optional[str] = DEFAULT_EDITION
    type: ReservationType = ReservationType.ACTUAL
    origin_id: Optional[str] = None

    @property
    def is_projected(self) -> bool:
        return self.type == ReservationType.PROJECTED

    @property
    def is_open_ended(self) -> bool:
        return self.end_date is None

    def criteria(self) -> MatchingCriteria:
        return MatchingCriteria(
            instance_class=self.instance_class,
            region=self.region,
            multi_az=self.multi_az,
            engine=self.engine,
            edition=self.edition,
            upfront_payment=self.upfront_payment.value,
            duration_months=self.duration_months,
        )

    def renewed(self, renewal_id: str, start_date: date, end_date: date,
                upfront_payment: UpfrontPayment, duration_months: int) -> "ReservationRow":
        """Copy identity fields into a projected renewal row"""
        return replace(
            self,
            id=renewal_id,
            start_date=start_date,
            end_date=end_date,
            upfront_payment=upfront_payment,
            duration_months=duration_months,
            type=ReservationType.PROJECTED,
            origin_id=self.origin_id or self.id,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "count": self.count,
            "instance_class": self.instance_class,
            "region": self.region,
            "multi_az": self.multi_az,
            "engine": self.engine,
            "edition": self.edition,
            "upfront_payment": self.upfront_payment.value,
            "duration_months": self.duration_months,
            "type": self.type.value,
            "origin_id": self.origin_id,
        }


@dataclass
class Portfolio:
    """A set of reservations and the horizon they are planned against"""

    rows: List[ReservationRow] = field(default_factory=list)
    first_full_year: Optional[int] = None
    source: Optional[str] = None

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self):
        return iter(self.rows)

    @property
    def actual_rows(self) -> List[ReservationRow]:
        return [r for r in self.rows if r.type == ReservationType.ACTUAL]

    @property
    def projected_rows(self) -> List[ReservationRow]:
        return [r for r in self.rows if r.type == ReservationType.PROJECTED]

    @property
    def total_instances(self) -> int:
        return sum(r.count for r in self.actual_rows)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "metadata": {
                "source": self.source,
                "first_full_year": self.first_full_year,
            },
            "reservations": [r.to_dict() for r in self.rows],
        }
