from dataclasses import dataclass
from typing import Optional


KEY_SEPARATOR = "|"


@dataclass(frozen=True)
class MatchingCriteria:
    """The seven fields a reservation is priced by"""

    instance_class: str
    region: str
    multi_az: bool
    engine: str
    edition: Optional[str]
    upfront_payment: str
    duration_months: int

    def to_key(self) -> str:
        """Stable, case-insensitive composite key.

        Field order is fixed; every text field is trimmed, ``multi_az`` renders
        as ``true``/``false`` and a missing edition renders as an empty string.
        """
        parts = [
            (self.instance_class or "").strip(),
            (self.region or "").strip(),
            "true" if self.multi_az else "false",
            (self.engine or "").strip(),
            (self.edition or "").strip(),
            str(getattr(self.upfront_payment, "value", self.upfront_payment) or "").strip(),
            str(self.duration_months),
        ]
        return KEY_SEPARATOR.join(parts).lower()

    def equals(self, other: Optional["MatchingCriteria"]) -> bool:
        if other is None:
            return False
        return self.to_key() == other.to_key()

    def group_key(self) -> str:
        """Human readable rendering used to label aggregate groups"""
        deployment = "Multi-AZ" if self.multi_az else "Single-AZ"
        edition = f" {self.edition}" if self.edition else ""
        upfront = getattr(self.upfront_payment, "value", self.upfront_payment)
        return (
            f"{self.instance_class} {self.region} {deployment} "
            f"{self.engine}{edition} {upfront} {self.duration_months}mo"
        )

    def with_engine(self, engine: str, edition: Optional[str]) -> "MatchingCriteria":
        return MatchingCriteria(
            instance_class=self.instance_class,
            region=self.region,
            multi_az=self.multi_az,
            engine=engine,
            edition=edition,
            upfront_payment=self.upfront_payment,
            duration_months=self.duration_months,
        )


def build_key(criteria: MatchingCriteria) -> str:
    """Build the lookup key for a set of matching criteria"""
    return criteria.to_key()


def group_key(criteria: MatchingCriteria) -> str:
    """Build the human readable group label for a set of matching criteria"""
    return criteria.group_key()
