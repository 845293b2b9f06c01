"""Custom exceptions for riplanner"""

class RiPlannerError(Exception):
    """Base exception for all riplanner errors"""
    pass


class ConfigurationError(RiPlannerError):
    """Raised when configuration is invalid"""
    pass


class ValidationError(RiPlannerError):
    """Raised when input validation fails"""
    pass


class DataCollectionError(RiPlannerError):
    """Raised when portfolio or pricing files cannot be loaded"""
    pass


class PricingDataError(RiPlannerError):
    """Raised when pricing data is unusable for a calculation"""
    pass


class MissingRateError(PricingDataError):
    """Raised when a pricing variant or one of its rates is absent"""
    def __init__(self, key: str, scenario: str, message: str = "no rate available"):
        self.key = key
        self.scenario = scenario
        super().__init__(f"[{scenario}] {key}: {message}")


class ProjectionError(RiPlannerError):
    """Raised when a renewal chain cannot be projected"""
    def __init__(self, reservation_id: str, message: str):
        self.reservation_id = reservation_id
        super().__init__(f"[{reservation_id}] {message}")


class RunawayProjectionError(ProjectionError):
    """Raised when a date-chaining loop exceeds its iteration cap"""
    def __init__(self, reservation_id: str, limit: int):
        self.limit = limit
        super().__init__(reservation_id, f"renewal chain exceeded {limit} iterations")


class ReportGenerationError(RiPlannerError):
    """Raised when report generation fails"""
    pass
