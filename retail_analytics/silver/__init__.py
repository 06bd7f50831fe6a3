"""
Silver Layer - Data Cleaning and Validation with Polars + Pydantic.
"""

from .cleaner import DateNormalizer, SilverCleaner
from .processor import ProcessingResult, SilverProcessor
from .schemas import OrderLineSchema, get_pydantic_schema

__all__ = [
    "DateNormalizer",
    "SilverCleaner",
    "ProcessingResult",
    "SilverProcessor",
    "OrderLineSchema",
    "get_pydantic_schema",
]
