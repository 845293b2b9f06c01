from dataclasses import dataclass
from typing import Dict, Iterable

from ..core.base.reservation import DEFAULT_EDITION, ReservationRow


@dataclass(frozen=True)
class PricingKey:
    """Identifies the catalog file that prices a reservation"""
    region: str
    instance_class: str
    deployment: str
    engine_key: str

    @classmethod
    def for_row(cls, row: ReservationRow) -> "PricingKey":
        engine_key = row.engine
        if row.edition and row.edition.lower() != DEFAULT_EDITION:
            engine_key = f"{engine_key}-{row.edition}"
        return cls(
            region=row.region,
            instance_class=row.instance_class,
            deployment="multi-az" if row.multi_az else "single-az",
            engine_key=engine_key,
        )

    @property
    def file_name(self) -> str:
        return f"{self.region}_{self.instance_class}_{self.deployment}-{self.engine_key}.json"

    @property
    def relative_path(self) -> str:
        """Catalog path, ``<region>/<instance>/<file_name>``"""
        return f"{self.region}/{self.instance_class}/{self.file_name}"

    def __str__(self) -> str:
        return f"{self.region}_{self.instance_class}_{self.deployment}-{self.engine_key}"


def categorize(rows: Iterable[ReservationRow]) -> Dict[PricingKey, int]:
    """Instance count per pricing catalog entry"""
    counts: Dict[PricingKey, int] = {}
    for row in rows:
        key = PricingKey.for_row(row)
        counts[key] = counts.get(key, 0) + row.count
    return counts
