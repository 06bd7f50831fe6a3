"""
Retail Sales Analytics - Medallion Architecture.

Technologies:
- Bronze: Polars (file I/O)
- Silver: Polars + Pydantic (date normalization + validation)
- Gold: DuckDB SQL (quality checks and business reports)
"""

from .bronze import BronzeIngester
from .silver import SilverProcessor
from .gold import GoldProcessor

__all__ = [
    "BronzeIngester",
    "SilverProcessor",
    "GoldProcessor",
]
