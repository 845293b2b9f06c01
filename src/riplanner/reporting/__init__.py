from .comparison_report import ComparisonReport, format_currency, format_percent

__all__ = ['ComparisonReport', 'format_currency', 'format_percent']
