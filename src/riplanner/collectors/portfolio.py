from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from .base import BaseCollector, CollectorConfig
from ..core.base.reservation import Portfolio
from ..core.exceptions import DataCollectionError, ValidationError
from ..core.validation import PortfolioDocument, Validator


class PortfolioCollector(BaseCollector):
    """Loads a reservation portfolio from a JSON or YAML document"""

    def __init__(self, config: Optional[CollectorConfig] = None):
        super().__init__(config)
        self.portfolio: Optional[Portfolio] = None

    def collect(self, path: Path) -> Portfolio:
        data = self.read_document(path)
        if isinstance(data, list):
            data = {"reservations": data}
        if not isinstance(data, dict):
            raise DataCollectionError(f"{path} does not contain a portfolio document")

        self.portfolio = self.parse(data, source=str(path))
        self.logger.info(f"Loaded {len(self.portfolio)} reservations from {path}")
        return self.portfolio

    def parse(self, data: Dict[str, Any], source: Optional[str] = None) -> Portfolio:
        try:
            document = PortfolioDocument.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid portfolio document: {e}")

        portfolio = document.to_portfolio()
        if portfolio.source is None:
            portfolio.source = source

        if self.config.strict:
            for row in portfolio.rows:
                Validator.validate_count(row.count)
        return portfolio
