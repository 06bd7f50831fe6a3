"""
Gold Layer Processor - DuckDB SQL.

Computes the quality check and business reports from the Silver order-line
table using SQL aggregations and window functions.
"""

from pathlib import Path
from typing import Dict, Any, List, Optional
from datetime import date
from dataclasses import dataclass

import duckdb
import polars as pl
from loguru import logger


# Report tables in the order they are computed
REPORTS = (
    "quality_check",
    "category_sales",
    "monthly_trends",
    "customer_rfm",
    "shipping_performance",
)

# Column layout of the Silver order_lines CSV
ORDER_LINE_COLUMNS = {
    "_line_number": "BIGINT",
    "order_id": "VARCHAR",
    "order_date_raw": "VARCHAR",
    "order_date": "DATE",
    "ship_date_raw": "VARCHAR",
    "ship_date": "DATE",
    "ship_mode": "VARCHAR",
    "customer_id": "VARCHAR",
    "customer_name": "VARCHAR",
    "category": "VARCHAR",
    "sales": "DOUBLE",
    "_source_file": "VARCHAR",
    "_loaded_at": "VARCHAR",
}


@dataclass
class ReportResult:
    """Result of report computation."""
    report_table: str
    row_count: int
    columns: List[str]


class GoldProcessor:
    """
    Computes Gold layer report tables using DuckDB SQL.

    Report tables:
    - quality_check: illogical shipments, non-positive sales, missing fields
    - category_sales: total sales and share of grand total per category
    - monthly_trends: monthly sales with month-over-month growth
    - customer_rfm: recency, frequency, monetary and their quartiles
    - shipping_performance: average delivery days and lateness per ship mode

    Every report is a pure function of the order_lines table and is
    recomputed from scratch on each call.
    """

    def __init__(
        self,
        silver_dir: Path,
        output_dir: Path,
        db_path: Path = None,
        reference_date: Optional[date] = None,
        late_shipment_days: int = 7,
        segments: int = 4,
        table_name: str = "order_lines",
    ):
        self.silver_dir = Path(silver_dir)
        self.output_dir = Path(output_dir) / "gold"
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.db_path = db_path
        self.reference_date = reference_date or date.today()
        self.late_shipment_days = int(late_shipment_days)
        self.segments = int(segments)
        self.table_name = table_name
        self.logger = logger.bind(component="GoldProcessor")
        self._loaded = False

        if db_path:
            db_path = Path(db_path)
            db_path.parent.mkdir(parents=True, exist_ok=True)
            self.conn = duckdb.connect(str(db_path))
            self.logger.info(f"DuckDB: {db_path}")
        else:
            self.conn = duckdb.connect(":memory:")
            self.logger.info("DuckDB: in-memory")

    def process_all(self) -> Dict[str, ReportResult]:
        """Compute all report tables."""
        self.logger.info("=" * 60)
        self.logger.info("GOLD LAYER: Computing reports (DuckDB SQL)")
        self.logger.info("=" * 60)
        self.logger.info(f"Recency reference date: {self.reference_date.isoformat()}")

        self._load_silver_data()

        results = {}
        for name in REPORTS:
            results[name] = self.compute(name)

        total_rows = sum(r.row_count for r in results.values())
        self.logger.info(f"Gold complete: {len(results)} reports, {total_rows} rows")

        return results

    def compute(self, report: str) -> ReportResult:
        """Compute (or recompute) a single report table."""
        if report not in REPORTS:
            raise ValueError(f"Unknown report: {report}. Available: {list(REPORTS)}")
        if not self._loaded:
            self._load_silver_data()

        self.logger.info(f"Computing {report}...")
        sql = self._load_sql(f"{report}.sql").format(**self._sql_params())
        self.conn.execute(sql)
        return self._export_and_describe(report)

    def fetch(self, report: str) -> pl.DataFrame:
        """Return a computed report table as a Polars DataFrame."""
        cursor = self.conn.execute(f"SELECT * FROM {report}")
        columns = [col[0] for col in cursor.description]
        rows = cursor.fetchall()
        return pl.DataFrame(rows, schema=columns, orient="row")

    def quality_summary(self) -> Dict[str, Any]:
        """Return the single quality_check row as a dict."""
        df = self.fetch("quality_check")
        return df.row(0, named=True) if len(df) else {}

    def _sql_params(self) -> Dict[str, Any]:
        return {
            "reference_date": self.reference_date.isoformat(),
            "late_shipment_days": self.late_shipment_days,
            "segments": self.segments,
        }

    def _load_silver_data(self) -> None:
        """
        Register the Silver order-line CSV as a typed DuckDB view.

        Silver dates are ISO text; the DD/MM/YYYY ``*_raw`` columns must not
        drive format sniffing.
        """
        csv_file = self.silver_dir / f"{self.table_name}.csv"
        if not csv_file.exists():
            raise FileNotFoundError(f"Silver table not found: {csv_file}")

        columns = ", ".join(f"'{name}': '{dtype}'" for name, dtype in ORDER_LINE_COLUMNS.items())
        self.conn.execute(f"""
            CREATE OR REPLACE VIEW order_lines AS
            SELECT * FROM read_csv(
                '{csv_file}',
                header = true,
                auto_detect = false,
                dateformat = '%Y-%m-%d',
                columns = {{{columns}}}
            )
        """)
        self._loaded = True
        self.logger.debug(f"Loaded view: order_lines ← {csv_file.name}")

    def _export_and_describe(self, table_name: str) -> ReportResult:
        """Export table to CSV and return metadata."""
        csv_path = self.output_dir / f"{table_name}.csv"
        self.conn.execute(f"COPY {table_name} TO '{csv_path}' (HEADER, DELIMITER ',')")

        desc = self.conn.execute(f"SELECT * FROM {table_name} LIMIT 0").description
        columns = [col[0] for col in desc]
        row_count = self.conn.execute(f"SELECT COUNT(*) FROM {table_name}").fetchone()[0]

        self.logger.info(f"✓ {table_name}: {row_count} rows, {len(columns)} columns")

        return ReportResult(report_table=table_name, row_count=row_count, columns=columns)

    def _load_sql(self, filename: str) -> str:
        """Load SQL query from file."""
        sql_path = Path(__file__).parent / "sql" / filename
        if not sql_path.exists():
            raise FileNotFoundError(f"SQL file not found: {sql_path}")
        return sql_path.read_text()

    def close(self) -> None:
        """Close DuckDB connection."""
        if self.conn:
            self.conn.close()
            self.logger.debug("DuckDB connection closed")
