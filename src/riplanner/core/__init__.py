from .config import Settings, get_settings, reload_settings
from .exceptions import RiPlannerError
from .logging import setup_logging, get_logger

__all__ = ['Settings', 'get_settings', 'reload_settings', 'RiPlannerError', 'setup_logging', 'get_logger']
