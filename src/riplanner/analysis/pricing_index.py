"""Pricing lookup by matching key.

Exact keys are indexed first, then alias keys fill the gaps left by the
different ways engine, edition and license tokens get encoded:

(a) split: an unhyphenated-edition record whose engine is ``base-rest`` is
    also indexed as engine ``base`` with edition ``rest``
(b) combine: a record with an edition and an unhyphenated engine is also
    indexed as engine ``engine-edition`` with no edition
(c) license stripping: a trailing license token (see ``LICENSE_SUFFIXES``) is
    removed from the edition or the engine and the stripped form is indexed
    in both split and combined shapes
(d) default edition: a record without an edition is also indexed under
    ``DEFAULT_EDITION``

Aliases never replace an existing key. Lookups are a single dict access.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple, Union

from ..core.base.criteria import MatchingCriteria
from ..core.base.pricing import PricingRecord, PricingVariant
from ..core.base.reservation import DEFAULT_EDITION
from ..core.exceptions import ValidationError

logger = logging.getLogger(__name__)


# Trailing tokens treated as license markers, longest first
LICENSE_SUFFIXES = (
    "bring-your-own-license",
    "license-included",
    "licenseincluded",
    "license",
    "byol",
    "li",
)


def strip_license_suffix(token: Optional[str]) -> Optional[str]:
    """Remove a trailing license marker from a hyphenated token.

    Returns ``None`` when the token carries no license suffix or when nothing
    would remain after stripping it.
    """
    if not token:
        return None
    parts = token.split("-")
    lowered = [p.lower() for p in parts]
    for suffix in LICENSE_SUFFIXES:
        suffix_parts = suffix.split("-")
        n = len(suffix_parts)
        if len(parts) > n and lowered[-n:] == suffix_parts:
            return "-".join(parts[:-n])
    return None


def alias_forms(engine: str, edition: Optional[str]) -> List[Tuple[str, Optional[str]]]:
    """Alternate (engine, edition) encodings under which a record is also indexed"""
    engine = (engine or "").strip()
    edition = (edition or "").strip() or None
    forms = []

    # (a) split fused engine
    if edition is None and "-" in engine:
        base, rest = engine.split("-", 1)
        forms.append((base, rest))

    # (b) fuse separate edition into the engine
    if edition is not None and "-" not in engine:
        forms.append((f"{engine}-{edition}", None))

    # (c) license suffix on the edition
    stripped_edition = strip_license_suffix(edition)
    if stripped_edition:
        forms.append((engine, stripped_edition))
        if "-" not in engine:
            forms.append((f"{engine}-{stripped_edition}", None))

    # (c) license suffix on the engine
    stripped_engine = strip_license_suffix(engine)
    if stripped_engine:
        forms.append((stripped_engine, None))
        base, _, middle = stripped_engine.partition("-")
        if middle:
            forms.append((base, middle))

    # (d) default edition
    if edition is None:
        forms.append((engine, DEFAULT_EDITION))

    return forms


def sku_key(instance_class: str, region: str, multi_az: bool, engine: str,
            edition: Optional[str]) -> str:
    """Key of a SKU regardless of payment terms"""
    return MatchingCriteria(
        instance_class=instance_class, region=region, multi_az=multi_az,
        engine=engine, edition=edition, upfront_payment="", duration_months=0,
    ).to_key()


@dataclass
class MatchResult:
    """Outcome of a single pricing lookup"""
    key: str
    variant: Optional[PricingVariant] = None
    reason: Optional[str] = None

    @property
    def matched(self) -> bool:
        return self.variant is not None


class PricingIndex:
    """Matching key to pricing variant lookup table"""

    def __init__(self, records: Optional[Iterable[Union[PricingRecord, PricingVariant]]] = None):
        self._entries: Dict[str, PricingVariant] = {}
        self._aliases: Dict[str, str] = {}
        self._records: Dict[str, PricingRecord] = {}
        if records is not None:
            self.load(records)

    def load(self, records: Iterable[Union[PricingRecord, PricingVariant]]) -> "PricingIndex":
        """Clear the index and repopulate it from a pricing catalog"""
        if records is None:
            raise ValidationError("Pricing records are required")

        self._entries = {}
        self._aliases = {}
        self._records = {}

        variants = []
        skus = []
        for record in records:
            if isinstance(record, PricingVariant):
                variants.append(record)
            else:
                variants.extend(record.variants())
                skus.append(record)

        self._load_records(skus)

        for variant in variants:
            if variant.key not in self._entries:
                self._entries[variant.key] = variant

        for variant in variants:
            criteria = variant.criteria
            for engine, edition in alias_forms(criteria.engine, criteria.edition):
                alias = variant.aliased(engine, edition)
                if alias.key not in self._entries:
                    self._entries[alias.key] = alias
                    self._aliases[alias.key] = variant.key

        logger.debug(
            f"Loaded pricing index with {len(self._entries)} keys "
            f"({len(self._aliases)} aliases) from {len(variants)} variants"
        )
        return self

    def _load_records(self, records: List[PricingRecord]) -> None:
        """Index whole SKUs by their term-less key so on-demand pricing resolves too"""
        for record in records:
            key = sku_key(record.instance_class, record.region, record.multi_az,
                          record.engine, record.edition)
            self._records.setdefault(key, record)
        for record in records:
            for engine, edition in alias_forms(record.engine, record.edition):
                key = sku_key(record.instance_class, record.region, record.multi_az,
                              engine, edition)
                self._records.setdefault(key, record)

    def get(self, criteria: Union[MatchingCriteria, str]) -> Optional[PricingVariant]:
        key = criteria if isinstance(criteria, str) else criteria.to_key()
        return self._entries.get(key)

    def match(self, criteria: MatchingCriteria) -> MatchResult:
        key = criteria.to_key()
        variant = self._entries.get(key)
        if variant is None:
            return MatchResult(key=key, reason="No matching pricing record found for this configuration")
        return MatchResult(key=key, variant=variant)

    def batch_match(self, criteria_list: List[MatchingCriteria]) -> List[MatchResult]:
        return [self.match(c) for c in criteria_list]

    def is_alias(self, key: str) -> bool:
        return key in self._aliases

    def keys(self) -> List[str]:
        return list(self._entries.keys())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, item) -> bool:
        key = item if isinstance(item, str) else item.to_key()
        return key in self._entries

    def record_for(self, criteria: MatchingCriteria) -> Optional[PricingRecord]:
        """Whole SKU a reservation belongs to, ignoring its payment terms"""
        return self._records.get(sku_key(
            criteria.instance_class, criteria.region, criteria.multi_az,
            criteria.engine, criteria.edition,
        ))

    def record_lookup(self):
        """Callable mapping a reservation row to its SKU record"""
        return lambda row: self.record_for(row.criteria())
