"""
Bronze Layer - Raw ingestion with Polars.
"""

from .ingester import BronzeIngester

__all__ = ["BronzeIngester"]
