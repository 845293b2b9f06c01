"""Input validation for portfolio and pricing documents"""

from typing import Any, Dict, List, Optional, Union
from datetime import datetime, date
from pathlib import Path
import json
import yaml
from pydantic import (
    AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator,
)

from .base.pricing import PricingRecord, Scenario
from .base.reservation import (
    DEFAULT_EDITION, Portfolio, ReservationRow, UpfrontPayment, VALID_DURATIONS,
)
from .exceptions import ValidationError as CustomValidationError


class Validator:
    """Central validation utility"""

    @classmethod
    def parse_date(cls, value: Union[str, date, datetime, None]) -> Optional[date]:
        """Parse an ISO date, tolerating a time component"""
        if value is None or value == "":
            return None
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        try:
            return datetime.fromisoformat(str(value).strip().replace("Z", "+00:00")).date()
        except ValueError:
            raise CustomValidationError(f"Invalid date: {value}")

    @classmethod
    def validate_date_range(cls, start_date: Union[str, date],
                            end_date: Optional[Union[str, date]]) -> tuple:
        """Validate an inclusive date range; an open end is allowed"""
        start_date = cls.parse_date(start_date)
        end_date = cls.parse_date(end_date)
        if start_date is None:
            raise CustomValidationError("Start date is required")
        if end_date is not None and start_date > end_date:
            raise CustomValidationError(f"Start date {start_date} is after end date {end_date}")
        return start_date, end_date

    @classmethod
    def validate_duration_months(cls, months: Union[int, str]) -> int:
        try:
            value = int(months)
        except (ValueError, TypeError):
            raise CustomValidationError(f"Invalid duration: {months}")
        if value not in VALID_DURATIONS:
            raise CustomValidationError(f"Duration must be one of {VALID_DURATIONS} months: {months}")
        return value

    @classmethod
    def validate_upfront_payment(cls, value: Any) -> UpfrontPayment:
        return UpfrontPayment.parse(value)

    @classmethod
    def validate_count(cls, count: Union[int, str]) -> int:
        try:
            value = int(count)
        except (ValueError, TypeError):
            raise CustomValidationError(f"Invalid count: {count}")
        if value < 1:
            raise CustomValidationError(f"Count must be at least 1: {count}")
        return value

    @classmethod
    def validate_scenario(cls, value: Union[str, Scenario]) -> Scenario:
        """Accept a scenario key (``noUpfront_1y``) or catalog label (``1yr_No Upfront``)"""
        if isinstance(value, Scenario):
            return value
        try:
            return Scenario(value)
        except ValueError:
            return Scenario.from_catalog_label(value)

    @classmethod
    def validate_year(cls, year: Union[int, str]) -> int:
        try:
            value = int(year)
        except (ValueError, TypeError):
            raise CustomValidationError(f"Invalid year: {year}")
        if not 1900 <= value <= 9999:
            raise CustomValidationError(f"Year out of range: {year}")
        return value

    @classmethod
    def validate_json(cls, json_str: str) -> Dict[str, Any]:
        """Validate and parse JSON string"""
        try:
            return json.loads(json_str)
        except json.JSONDecodeError as e:
            raise CustomValidationError(f"Invalid JSON: {e}")

    @classmethod
    def validate_yaml(cls, yaml_str: str) -> Dict[str, Any]:
        """Validate and parse YAML string"""
        try:
            return yaml.safe_load(yaml_str)
        except yaml.YAMLError as e:
            raise CustomValidationError(f"Invalid YAML: {e}")

    @classmethod
    def validate_file_path(cls, file_path: Union[str, Path], must_exist: bool = False) -> Path:
        """Validate file path"""
        path = Path(file_path) if isinstance(file_path, str) else file_path
        if must_exist and not path.exists():
            raise CustomValidationError(f"File does not exist: {path}")
        return path


class RequestValidator(BaseModel):
    """Base model for document validation"""
    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
        populate_by_name=True,
        extra="ignore",
    )


class ReservationInput(RequestValidator):
    """One reservation as found in a portfolio document"""
    id: Optional[str] = None
    start_date: date = Field(validation_alias=AliasChoices("start_date", "startDate"))
    end_date: Optional[date] = Field(default=None, validation_alias=AliasChoices("end_date", "endDate"))
    count: int = 1
    instance_class: str = Field(min_length=1, validation_alias=AliasChoices("instance_class", "instanceClass"))
    region: str = Field(min_length=1)
    multi_az: bool = Field(default=False, validation_alias=AliasChoices("multi_az", "multiAz", "multiAZ"))
    engine: str = Field(min_length=1)
    edition: Optional[str] = DEFAULT_EDITION
    upfront_payment: UpfrontPayment = Field(
        validation_alias=AliasChoices("upfront_payment", "upfrontPayment", "upfront")
    )
    duration_months: int = Field(
        default=12, validation_alias=AliasChoices("duration_months", "durationMonths")
    )

    @field_validator('id', mode='before')
    @classmethod
    def coerce_id(cls, value: Any) -> Any:
        return str(value) if value is not None else None

    @field_validator('start_date', 'end_date', mode='before')
    @classmethod
    def parse_dates(cls, value: Any) -> Any:
        try:
            return Validator.parse_date(value)
        except CustomValidationError as e:
            raise ValueError(str(e))

    @field_validator('upfront_payment', mode='before')
    @classmethod
    def parse_upfront(cls, value: Any) -> UpfrontPayment:
        try:
            return UpfrontPayment.parse(value)
        except CustomValidationError as e:
            raise ValueError(str(e))

    @field_validator('duration_months')
    @classmethod
    def check_duration(cls, months: int) -> int:
        if months not in VALID_DURATIONS:
            raise ValueError(f"duration must be one of {VALID_DURATIONS} months")
        return months

    @field_validator('edition', mode='before')
    @classmethod
    def default_edition(cls, edition: Any) -> Any:
        if edition is None or str(edition).strip() == "":
            return DEFAULT_EDITION
        return edition

    @model_validator(mode='after')
    def check_dates(self) -> "ReservationInput":
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError(f"end date {self.end_date} precedes start date {self.start_date}")
        return self

    def to_row(self, fallback_id: str) -> ReservationRow:
        return ReservationRow(
            id=self.id or fallback_id,
            start_date=self.start_date,
            end_date=self.end_date,
            count=self.count,
            instance_class=self.instance_class,
            region=self.region,
            multi_az=self.multi_az,
            engine=self.engine,
            edition=self.edition,
            upfront_payment=self.upfront_payment,
            duration_months=self.duration_months,
        )


class PortfolioMetadata(RequestValidator):
    source: Optional[str] = None
    first_full_year: Optional[int] = Field(
        default=None, ge=1900, le=9999,
        validation_alias=AliasChoices("first_full_year", "firstFullYear"),
    )


class PortfolioDocument(RequestValidator):
    """A portfolio file: metadata plus reservations"""
    metadata: PortfolioMetadata = Field(default_factory=PortfolioMetadata)
    reservations: List[ReservationInput] = Field(
        default_factory=list, validation_alias=AliasChoices("reservations", "rows"),
    )

    def to_portfolio(self) -> Portfolio:
        rows = [r.to_row(f"ri-{i + 1}") for i, r in enumerate(self.reservations)]
        return Portfolio(
            rows=rows,
            first_full_year=self.metadata.first_full_year,
            source=self.metadata.source,
        )


class OnDemandInput(RequestValidator):
    hourly: Optional[float] = Field(default=None, ge=0)
    daily: Optional[float] = Field(default=None, ge=0)


class SavingsOptionInput(RequestValidator):
    upfront: Optional[float] = Field(default=None, ge=0)
    hourly: Optional[float] = Field(default=None, ge=0)
    effective_hourly: Optional[float] = Field(default=None, ge=0, alias="effectiveHourly")
    daily: Optional[float] = Field(default=None, ge=0)


class PricingFileInput(RequestValidator):
    """A pricing catalog file for one SKU"""
    region: str = Field(min_length=1)
    instance: str = Field(min_length=1, validation_alias=AliasChoices("instance", "instanceClass"))
    deployment: str = Field(default="single-az", pattern=r"^(single-az|multi-az)$")
    engine: str = Field(min_length=1)
    license: Optional[str] = None
    on_demand: OnDemandInput = Field(default_factory=OnDemandInput, alias="onDemand")
    savings_options: Optional[Dict[str, Optional[SavingsOptionInput]]] = Field(
        default=None, alias="savingsOptions"
    )

    @field_validator('deployment', mode='before')
    @classmethod
    def normalize_deployment(cls, value: Any) -> Any:
        return str(value).strip().lower() if value is not None else "single-az"

    @field_validator('savings_options')
    @classmethod
    def check_labels(cls, options: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        for label in (options or {}):
            try:
                Scenario.from_catalog_label(label)
            except CustomValidationError as e:
                raise ValueError(str(e))
        return options

    def to_record(self) -> PricingRecord:
        return PricingRecord.from_catalog(self.model_dump(by_alias=True))
