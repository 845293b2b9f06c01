"""Configuration management for riplanner"""

import yaml
import json
from pathlib import Path
from typing import Dict, Any, Optional
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import logging

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class AggregationConfig(BaseModel):
    """Monthly cost aggregation limits"""
    diagnostics_cap: int = Field(default=1000, ge=1)
    max_months_per_row: int = Field(default=2400, ge=1)
    log_unmatched_limit: int = Field(default=5, ge=0)


class ProjectionConfig(BaseModel):
    """Renewal projection settings"""
    max_renewals_per_chain: int = Field(default=1000, ge=1)
    default_first_full_year: Optional[int] = None

    @field_validator('default_first_full_year')
    @classmethod
    def validate_year(cls, year: Optional[int]) -> Optional[int]:
        if year is not None and not 1900 <= year <= 9999:
            raise ValueError(f"first full year out of range: {year}")
        return year


class LoggingConfig(BaseModel):
    """Logging configuration"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[Path] = None
    max_bytes: int = 10485760  # 10MB
    backup_count: int = 5
    console: bool = True
    structured: bool = False


class ReportingConfig(BaseModel):
    """Reporting configuration"""
    output_dir: Path = Path("./reports")
    currency_symbol: str = "$"
    decimal_places: int = Field(default=2, ge=0, le=6)


class Settings(BaseSettings):
    """Main application settings"""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="RIPLANNER_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "riplanner"
    version: str = "0.1.0"
    environment: str = "development"
    debug: bool = False

    aggregation: AggregationConfig = Field(default_factory=AggregationConfig)
    projection: ProjectionConfig = Field(default_factory=ProjectionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    reporting: ReportingConfig = Field(default_factory=ReportingConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> "Settings":
        """Load settings from YAML file"""
        path = Path(path)
        if not path.exists():
            logger.warning(f"Configuration file {path} not found, using defaults")
            return cls()

        try:
            with open(path, 'r') as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}")

        return cls(**data if data else {})

    @classmethod
    def from_json(cls, path: Path) -> "Settings":
        """Load settings from JSON file"""
        path = Path(path)
        if not path.exists():
            logger.warning(f"Configuration file {path} not found, using defaults")
            return cls()

        try:
            with open(path, 'r') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {path}: {e}")

        return cls(**data)

    @classmethod
    def from_file(cls, path: Path) -> "Settings":
        """Load settings choosing the parser by file suffix"""
        path = Path(path)
        if path.suffix in (".yaml", ".yml"):
            return cls.from_yaml(path)
        return cls.from_json(path)

    def logging_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for ``riplanner.core.logging.setup_logging``"""
        return {
            "level": "DEBUG" if self.debug else self.logging.level,
            "log_file": self.logging.file,
            "structured": self.logging.structured,
            "console": self.logging.console,
            "fmt": self.logging.format,
            "max_bytes": self.logging.max_bytes,
            "backup_count": self.logging.backup_count,
        }


# Global settings instance
settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get global settings instance"""
    global settings
    if settings is None:
        # Try to load from default locations
        config_paths = [
            Path.home() / ".riplanner" / "config.yaml",
            Path.home() / ".riplanner" / "config.json",
            Path("./riplanner.yaml"),
            Path("./riplanner.json"),
        ]

        for path in config_paths:
            if path.exists():
                settings = Settings.from_file(path)
                logger.info(f"Loaded configuration from {path}")
                break
        else:
            settings = Settings()
            logger.debug("Using default configuration")

    return settings


def reload_settings(path: Optional[Path] = None) -> Settings:
    """Reload settings from file"""
    global settings

    if path:
        settings = Settings.from_file(Path(path))
    else:
        settings = None
        settings = get_settings()

    return settings
