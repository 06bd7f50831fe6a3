"""
Pydantic Schemas for Silver Layer Validation.

Defines the typed order-line schema. Validation rules distinguish between
rows that cannot be aggregated at all (quarantine) and rows that break a
business invariant (keep, the Gold quality check counts them).

Design Decisions:
- Ship date before order date is KEPT (counted as an illogical shipment)
- Zero or negative sales are KEPT (counted as non-positive sales)
- Missing customer id / order date are KEPT (counted as missing)
- Sales text that is not a number is QUARANTINED (cannot be summed)
"""

from typing import Optional, Dict, Type
from datetime import date

import polars as pl
from pydantic import BaseModel, Field, field_validator


class OrderLineSchema(BaseModel):
    """One line item of a retail order after date normalization."""
    line_number: int = Field(..., ge=1, alias="_line_number")
    order_id: Optional[str] = None
    order_date_raw: Optional[str] = None
    order_date: Optional[date] = None
    ship_date_raw: Optional[str] = None
    ship_date: Optional[date] = None
    ship_mode: Optional[str] = None
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    category: Optional[str] = None
    # Non-positive values are legitimate input for the quality check
    sales: Optional[float] = Field(default=None, allow_inf_nan=False)

    source_file: Optional[str] = Field(default=None, alias="_source_file")
    loaded_at: Optional[str] = Field(default=None, alias="_loaded_at")

    model_config = {"extra": "ignore", "populate_by_name": True}

    @field_validator("order_id", "customer_id", "customer_name", "category", "ship_mode")
    @classmethod
    def blank_is_missing(cls, v):
        """Whitespace-only identifiers count as missing."""
        if v is None or str(v).strip() == "":
            return None
        return v

    @field_validator("sales", mode="before")
    @classmethod
    def sales_blank_is_missing(cls, v):
        if isinstance(v, str) and v.strip() == "":
            return None
        return v


# Column order and dtypes of the Silver order_lines table
SILVER_ORDER_LINE_SCHEMA: Dict[str, pl.DataType] = {
    "_line_number": pl.Int64,
    "order_id": pl.String,
    "order_date_raw": pl.String,
    "order_date": pl.Date,
    "ship_date_raw": pl.String,
    "ship_date": pl.Date,
    "ship_mode": pl.String,
    "customer_id": pl.String,
    "customer_name": pl.String,
    "category": pl.String,
    "sales": pl.Float64,
    "_source_file": pl.String,
    "_loaded_at": pl.String,
}


SCHEMA_REGISTRY: Dict[str, Type[BaseModel]] = {
    "order_line": OrderLineSchema,
}


def get_pydantic_schema(schema_name: str) -> Type[BaseModel]:
    """Get Pydantic schema class by name."""
    schema = SCHEMA_REGISTRY.get(schema_name)
    if not schema:
        raise ValueError(f"Unknown schema: {schema_name}. Available: {list(SCHEMA_REGISTRY.keys())}")
    return schema
