from .criteria import MatchingCriteria, build_key, group_key
from .reservation import Portfolio, ReservationRow, ReservationType, UpfrontPayment
from .pricing import PricingRecord, PricingVariant, ReservedRate, Scenario

__all__ = [
    'MatchingCriteria', 'build_key', 'group_key',
    'Portfolio', 'ReservationRow', 'ReservationType', 'UpfrontPayment',
    'PricingRecord', 'PricingVariant', 'ReservedRate', 'Scenario',
]
