from .portfolio import PortfolioCollector
from .pricing_catalog import PricingCatalogCollector

__all__ = ['PortfolioCollector', 'PricingCatalogCollector']
