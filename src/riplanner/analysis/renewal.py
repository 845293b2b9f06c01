import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Dict, List, Optional, Union

from .horizon import compute_first_full_year, year_end
from .proration import term_end
from ..core.base.pricing import Scenario
from ..core.base.reservation import (
    Portfolio, ReservationRow, ReservationType, UpfrontPayment, VALID_DURATIONS,
)
from ..core.config import Settings, get_settings
from ..core.exceptions import ProjectionError, RunawayProjectionError, ValidationError
from ..core.logging import get_performance_logger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenewalScenario:
    """Term and payment style applied to every renewal"""
    duration_months: int
    upfront_payment: UpfrontPayment

    @classmethod
    def from_scenario(cls, scenario: Scenario) -> "RenewalScenario":
        if not scenario.is_reserved:
            raise ValidationError("On-demand is not a renewal scenario")
        return cls(duration_months=scenario.duration_months,
                   upfront_payment=scenario.upfront_payment)

    @classmethod
    def parse(cls, value: Union[str, Scenario, "RenewalScenario"]) -> "RenewalScenario":
        """Accept a scenario, its key (``partialUpfront_3y``) or a catalog label
        (``3yr_Partial Upfront``)"""
        if isinstance(value, RenewalScenario):
            return value
        if isinstance(value, Scenario):
            return cls.from_scenario(value)
        try:
            return cls.from_scenario(Scenario(value))
        except ValueError:
            return cls.from_scenario(Scenario.from_catalog_label(value))

    @property
    def label(self) -> str:
        return f"{self.duration_months // 12}yr {self.upfront_payment.value}"


@dataclass
class ProjectionResult:
    """Projected portfolio plus the chains that could not be projected"""
    portfolio: Portfolio
    first_full_year: int
    errors: List[ProjectionError] = field(default_factory=list)

    @property
    def runaway(self) -> List[RunawayProjectionError]:
        return [e for e in self.errors if isinstance(e, RunawayProjectionError)]

    @property
    def data_errors(self) -> List[ProjectionError]:
        return [e for e in self.errors if not isinstance(e, RunawayProjectionError)]

    def chains(self) -> Dict[str, List[ReservationRow]]:
        """Rows grouped by the reservation they descend from, in date order"""
        chains: Dict[str, List[ReservationRow]] = {}
        for row in self.portfolio.rows:
            chains.setdefault(row.origin_id or row.id, []).append(row)
        for rows in chains.values():
            rows.sort(key=lambda r: r.start_date)
        return chains


class RenewalProjector:
    """Extends every reservation with back-to-back renewals past the horizon"""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.max_renewals = self.settings.projection.max_renewals_per_chain
        self.performance = get_performance_logger()

    def project(self, portfolio: Portfolio,
                scenario: Optional[Union[RenewalScenario, Scenario, str]] = None) -> ProjectionResult:
        """Copy the portfolio and append a renewal chain to every actual row.

        Without a scenario each row renews on its own terms. A chain that
        cannot be built is left as the original row and reported in
        ``errors``; a chain that hits the iteration cap is reported as a
        ``RunawayProjectionError``.
        """
        if portfolio is None:
            raise ValidationError("Portfolio is required")
        renewal = RenewalScenario.parse(scenario) if scenario is not None else None
        horizon_year = self._horizon_year(portfolio)

        rows: List[ReservationRow] = []
        errors: List[ProjectionError] = []

        with self.performance.timer("project", rows=len(portfolio.rows)):
            for row in portfolio.rows:
                rows.append(row)
                if row.type != ReservationType.ACTUAL:
                    continue
                try:
                    rows.extend(self.project_row(row, horizon_year, renewal))
                except RunawayProjectionError as e:
                    logger.error(f"Renewal chain aborted: {e}", extra={'reservation_id': row.id})
                    errors.append(e)
                except ProjectionError as e:
                    logger.warning(f"Renewal skipped: {e}", extra={'reservation_id': row.id})
                    errors.append(e)

        projected = Portfolio(rows=rows, first_full_year=horizon_year, source=portfolio.source)
        logger.info(
            f"Projected {len(projected.projected_rows)} renewals for "
            f"{len(portfolio.rows)} reservations through {horizon_year}"
        )
        return ProjectionResult(portfolio=projected, first_full_year=horizon_year, errors=errors)

    def project_strict(self, portfolio: Portfolio,
                       scenario: Optional[Union[RenewalScenario, Scenario, str]] = None) -> ProjectionResult:
        """Like ``project`` but raises the first chain failure"""
        result = self.project(portfolio, scenario)
        if result.errors:
            raise result.errors[0]
        return result

    def project_row(self, row: ReservationRow, horizon_year: int,
                    renewal: Optional[RenewalScenario] = None) -> List[ReservationRow]:
        """Renewals of one reservation until one ends after Dec 31 of ``horizon_year``"""
        if row.end_date is None:
            raise ProjectionError(row.id, "open-ended reservation has no expiry to renew from")
        if row.end_date < row.start_date:
            raise ProjectionError(row.id, f"end date {row.end_date} precedes start date {row.start_date}")

        term = renewal.duration_months if renewal else row.duration_months
        upfront = renewal.upfront_payment if renewal else row.upfront_payment
        if renewal is None and term not in VALID_DURATIONS:
            logger.debug(f"Reservation {row.id} renews with non-standard term of {term} months")

        horizon = year_end(horizon_year)
        chain: List[ReservationRow] = []
        previous_end = row.end_date
        n = 0
        while True:
            n += 1
            if n > self.max_renewals:
                raise RunawayProjectionError(row.id, self.max_renewals)
            try:
                start = previous_end + timedelta(days=1)
                end = term_end(start, term)
            except (OverflowError, ValueError):
                raise ProjectionError(row.id, f"renewal {n} after {previous_end} runs past the last supported date")
            chain.append(row.renewed(f"{row.id}-renew-{n}", start, end, upfront, term))
            if end > horizon:
                return chain
            previous_end = end

    def _horizon_year(self, portfolio: Portfolio) -> int:
        if portfolio.first_full_year is not None:
            return portfolio.first_full_year
        if self.settings.projection.default_first_full_year is not None:
            return self.settings.projection.default_first_full_year
        return compute_first_full_year(portfolio.rows)
