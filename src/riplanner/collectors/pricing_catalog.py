from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from .base import BaseCollector, CollectorConfig
from ..analysis.categorizer import categorize
from ..core.base.pricing import PricingRecord
from ..core.base.reservation import Portfolio
from ..core.exceptions import DataCollectionError, RiPlannerError
from ..core.validation import PricingFileInput


class PricingCatalogCollector(BaseCollector):
    """Loads pricing catalog files into pricing records.

    A directory is scanned recursively; files that cannot be read or fail
    validation are recorded in ``errors`` and skipped unless ``strict``.
    """

    def __init__(self, config: Optional[CollectorConfig] = None):
        super().__init__(config)
        self.records: List[PricingRecord] = []
        self.missing_files: List[str] = []

    def collect(self, path: Path) -> List[PricingRecord]:
        path = Path(path)
        if not path.exists():
            raise DataCollectionError(f"Pricing path does not exist: {path}")

        files = sorted(path.rglob(self.config.pattern)) if path.is_dir() else [path]
        self.records = [r for r in (self.load_file(f) for f in files) if r is not None]
        self.logger.info(f"Loaded {len(self.records)} pricing records from {len(files)} files")
        return self.records

    def collect_for(self, portfolio: Portfolio, root: Path) -> List[PricingRecord]:
        """Load only the catalog files the portfolio's reservations need"""
        root = Path(root)
        self.records = []
        self.missing_files = []
        for key in categorize(portfolio.rows):
            file_path = root / key.relative_path
            if not file_path.exists():
                self.missing_files.append(key.relative_path)
                continue
            record = self.load_file(file_path)
            if record is not None:
                self.records.append(record)

        if self.missing_files:
            self.logger.warning(
                f"{len(self.missing_files)} pricing file(s) missing, e.g. {self.missing_files[0]}"
            )
        return self.records

    def load_file(self, path: Path) -> Optional[PricingRecord]:
        try:
            data = self.read_document(path)
            return PricingFileInput.model_validate(data).to_record()
        except (RiPlannerError, PydanticValidationError) as e:
            if self.config.strict:
                raise DataCollectionError(f"Invalid pricing file {path}: {e}")
            self.record_error(str(path), e)
            return None
