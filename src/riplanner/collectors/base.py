from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Dict, Any, Optional
import json
import logging

import yaml

from ..core.exceptions import DataCollectionError


@dataclass
class CollectorConfig:
    """Configuration for file collectors"""
    strict: bool = False
    encoding: str = "utf-8"
    pattern: str = "*.json"


class BaseCollector(ABC):
    """Abstract base class for loading planner inputs from disk"""

    def __init__(self, config: Optional[CollectorConfig] = None):
        self.config = config or CollectorConfig()
        self.logger = logging.getLogger(self.__class__.__name__)
        self.errors: List[Dict[str, Any]] = []

    @abstractmethod
    def collect(self, path: Path):
        """Load and validate the input at ``path``"""
        pass

    def read_document(self, path: Path) -> Any:
        """Parse a JSON or YAML document chosen by file suffix"""
        path = Path(path)
        if not path.exists():
            raise DataCollectionError(f"File does not exist: {path}")
        try:
            with open(path, "r", encoding=self.config.encoding) as f:
                if path.suffix.lower() in (".yaml", ".yml"):
                    return yaml.safe_load(f)
                return json.load(f)
        except (json.JSONDecodeError, yaml.YAMLError, UnicodeDecodeError) as e:
            raise DataCollectionError(f"Cannot parse {path}: {e}")

    def record_error(self, source: str, error: Exception) -> None:
        self.logger.warning(f"Error collecting from {source}: {error}")
        self.errors.append({
            "source": source,
            "error": str(error),
            "timestamp": datetime.now(),
        })

    def get_summary(self) -> Dict[str, Any]:
        return {
            "total_errors": len(self.errors),
            "errors": self.errors,
        }
