"""
Gold Layer - Quality checks and business reports with DuckDB SQL.
"""

from .processor import GoldProcessor, ReportResult, REPORTS

__all__ = [
    "GoldProcessor",
    "ReportResult",
    "REPORTS",
]
