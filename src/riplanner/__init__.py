"""Reserved instance cost planning: monthly aggregation, renewal projection
and scenario comparison against on-demand pricing."""

__version__ = "0.1.0"
