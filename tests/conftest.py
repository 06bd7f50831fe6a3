"""
Shared test fixtures for the data pipeline tests.
"""

from datetime import date
from pathlib import Path

import pytest
import polars as pl

from retail_analytics.silver.schemas import SILVER_ORDER_LINE_SCHEMA


REFERENCE_DATE = date(2019, 1, 1)


@pytest.fixture
def tmp_dir(tmp_path):
    """Provide a temporary directory for test outputs."""
    return tmp_path


@pytest.fixture
def reference_date():
    """Fixed analysis date so recency does not depend on the wall clock."""
    return REFERENCE_DATE


@pytest.fixture
def sample_sources_config():
    """Minimal sources.yaml equivalent."""
    return {
        "sources": {
            "order_lines": {
                "file": "superstore.csv",
                "format": "csv",
                "schema": "order_line",
            },
        }
    }


@pytest.fixture
def sample_schemas_config():
    """Minimal schemas.yaml equivalent."""
    return {
        "schemas": {
            "order_line": {
                "fields": {
                    "order_id": {"source": "Order ID", "type": "string", "clean": "trim"},
                    "order_date": {"source": "Order Date", "type": "date", "clean": "date_dmy"},
                    "ship_date": {"source": "Ship Date", "type": "date", "clean": "date_dmy"},
                    "ship_mode": {"source": "Ship Mode", "type": "string", "clean": "trim"},
                    "customer_id": {"source": "Customer ID", "type": "string", "clean": "trim"},
                    "customer_name": {"source": "Customer Name", "type": "string", "clean": "trim"},
                    "category": {"source": "Category", "type": "string", "clean": "trim"},
                    "sales": {"source": "Sales", "type": "float", "clean": "numeric"},
                },
            },
        }
    }


@pytest.fixture
def sample_cleaning_rules():
    """Minimal cleaning_rules.yaml equivalent."""
    return {
        "cleaners": {
            "trim": {
                "type": "string",
                "operations": ["trim", "normalize_whitespace", "blank_to_null"],
            },
            "date_dmy": {
                "type": "date",
                "pattern": "^[0-9]{2}/[0-9]{2}/[0-9]{4}$",
                "format": "%d/%m/%Y",
                "keep_raw": True,
            },
            "numeric": {"type": "numeric", "strip_chars": "$ ", "thousands_separator": ","},
        }
    }


@pytest.fixture
def sample_input_dir(tmp_path):
    """Create a small raw Superstore export for Bronze ingestion."""
    input_dir = tmp_path / "data"
    input_dir.mkdir()

    csv_content = "Row ID,Order ID,Order Date,Ship Date,Ship Mode,Customer ID,Customer Name,Category,Sales\n"
    csv_content += "1,CA-001,08/11/2017,11/11/2017,Second Class,CG-100, Claire Gute ,Furniture,261.96\n"
    csv_content += "2,CA-001,08/11/2017,11/11/2017,Second Class,CG-100,Claire Gute,Furniture,\"$1,000.50\"\n"
    csv_content += "3,CA-002,31/02/2018,05/03/2018,Standard Class,DV-200,Darrin Van Huff,Technology,90.57\n"
    csv_content += "4,CA-003,2018-03-05,09/03/2018,Standard Class,SO-300,Sean O'Donnell,Office Supplies,3.54\n"
    csv_content += "5,CA-004,20/03/2018,18/03/2018,First Class,,Nobody,Furniture,0\n"
    csv_content += "6,CA-005,01/04/2018,03/04/2018,Same Day,DV-200,Darrin Van Huff,Technology,N/A\n"
    (input_dir / "superstore.csv").write_text(csv_content)

    return input_dir


@pytest.fixture
def write_silver(tmp_path):
    """
    Factory writing an order_lines Silver CSV from column lists.

    Missing columns are filled with nulls; ``_line_number`` defaults to
    input order and ``*_raw`` columns default to the DD/MM/YYYY text of
    their typed date, as real Silver output has them.
    """
    def _write(**columns) -> Path:
        n = len(next(iter(columns.values())))
        for typed in ("order_date", "ship_date"):
            raw = f"{typed}_raw"
            if typed in columns and raw not in columns:
                columns[raw] = [
                    d.strftime("%d/%m/%Y") if d is not None else None
                    for d in columns[typed]
                ]
        data = {}
        for name, dtype in SILVER_ORDER_LINE_SCHEMA.items():
            if name in columns:
                data[name] = pl.Series(name, columns[name], dtype=dtype)
            elif name == "_line_number":
                data[name] = pl.Series(name, list(range(1, n + 1)), dtype=dtype)
            else:
                data[name] = pl.Series(name, [None] * n, dtype=dtype)
        silver = tmp_path / "silver"
        silver.mkdir(exist_ok=True)
        pl.DataFrame(data).write_csv(silver / "order_lines.csv")
        return silver

    return _write
