"""
Shared utilities for the data pipeline.
"""

from .config import PipelineConfig, load_config
from .logging import setup_logging, get_logger
from .quality_report import generate_quality_report

__all__ = [
    "PipelineConfig",
    "load_config",
    "setup_logging",
    "get_logger",
    "generate_quality_report",
]
