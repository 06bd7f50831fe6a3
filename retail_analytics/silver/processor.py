"""
Silver Layer Processor - Polars + Pydantic.

Orchestrates header mapping, cleaning, date normalization and validation
from Bronze to Silver using Polars for data manipulation and Pydantic for
schema validation.
"""

from pathlib import Path
from typing import Dict, Any, List
from dataclasses import dataclass, field
import json

import polars as pl
from pydantic import ValidationError
from loguru import logger

from .cleaner import SilverCleaner
from .schemas import get_pydantic_schema, SILVER_ORDER_LINE_SCHEMA


@dataclass
class ProcessingResult:
    """Result of processing a single source."""
    source_name: str
    total_records: int = 0
    valid_records: int = 0
    quarantined_records: int = 0
    fields_cleaned: Dict[str, int] = field(default_factory=dict)
    unparsed_dates: Dict[str, int] = field(default_factory=dict)
    error_counts: Dict[str, int] = field(default_factory=dict)

    @property
    def pass_rate(self) -> float:
        if self.total_records == 0:
            return 0.0
        return self.valid_records / self.total_records

    @property
    def quarantine_rate(self) -> float:
        if self.total_records == 0:
            return 0.0
        return self.quarantined_records / self.total_records


class SilverProcessor:
    """
    Processes data from Bronze to Silver layer using Polars.

    Pipeline per source:
    1. Read Bronze CSV (all text)
    2. Map source headers to snake_case field names
    3. Apply Polars-based cleaning (trim, blank to null, DD/MM/YYYY dates)
    4. Validate each row with Pydantic schemas
    5. Write valid records to Silver, quarantine rows that cannot be read

    Business invariant violations are not filtered here; the Gold quality
    check reports them.
    """

    def __init__(
        self,
        sources_config: Dict[str, Any],
        schemas_config: Dict[str, Any],
        cleaning_rules: Dict[str, Any],
        bronze_dir: Path,
        output_dir: Path,
        max_quarantine_rate: float = 0.05,
    ):
        self.sources = sources_config.get("sources", {})
        self.schemas_config = schemas_config.get("schemas", {})
        self.cleaner = SilverCleaner(cleaning_rules)
        self.bronze_dir = Path(bronze_dir)
        self.output_dir = Path(output_dir) / "silver"
        self.quarantine_dir = Path(output_dir).parent / "quarantine"
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.quarantine_dir.mkdir(parents=True, exist_ok=True)
        self.max_quarantine_rate = max_quarantine_rate
        self.logger = logger.bind(component="SilverProcessor")

    def process_all(self) -> Dict[str, ProcessingResult]:
        """Process all sources from Bronze to Silver."""
        self.logger.info("=" * 60)
        self.logger.info("SILVER LAYER: Cleaning and validating (Polars + Pydantic)")
        self.logger.info("=" * 60)

        results = {}

        for source_name, config in self.sources.items():
            schema_name = config.get("schema", source_name)
            result = self._process_source(source_name, schema_name)
            results[source_name] = result

            status = "✓" if result.valid_records > 0 else "✗"
            extras = []
            if result.quarantined_records > 0:
                extras.append(f"{result.quarantined_records} quarantined")
            for col, count in result.unparsed_dates.items():
                if count:
                    extras.append(f"{count} unparsed {col}")
            extra_str = f" ({', '.join(extras)})" if extras else ""

            self.logger.info(
                f"{status} {source_name}: {result.valid_records}/{result.total_records} "
                f"valid ({result.pass_rate:.1%}){extra_str}"
            )

            if result.quarantine_rate > self.max_quarantine_rate:
                self.logger.warning(
                    f"{source_name}: quarantine rate {result.quarantine_rate:.1%} "
                    f"exceeds {self.max_quarantine_rate:.1%}"
                )

        total_valid = sum(r.valid_records for r in results.values())
        total_quarantined = sum(r.quarantined_records for r in results.values())
        total_cleaned = sum(sum(r.fields_cleaned.values()) for r in results.values())

        self.logger.info(
            f"Silver complete: {total_valid} valid, {total_quarantined} quarantined, "
            f"{total_cleaned} fields cleaned"
        )

        return results

    def _process_source(
        self,
        source_name: str,
        schema_name: str,
    ) -> ProcessingResult:
        """Process a single source: map headers → clean → validate."""
        result = ProcessingResult(source_name=source_name)

        bronze_path = self.bronze_dir / f"{source_name}.csv"
        if not bronze_path.exists():
            self.logger.error(f"Bronze file not found: {bronze_path}")
            return result

        df = pl.read_csv(bronze_path, infer_schema_length=0)
        result.total_records = len(df)

        schema_def = self.schemas_config.get(schema_name, {})
        fields = schema_def.get("fields", {})

        # Step 1: Source headers → field names
        df = self._map_columns(df, fields)

        # Step 2: Apply Polars-based cleaning
        df, cleaning_stats = self._apply_cleaning(df, fields)
        result.fields_cleaned = cleaning_stats
        result.unparsed_dates = dict(self.cleaner.unparsed_dates)

        # Step 3: Validate with Pydantic
        pydantic_schema = get_pydantic_schema(schema_name)

        valid_records = []
        quarantined_records = []

        for row_idx, row in enumerate(df.iter_rows(named=True)):
            try:
                validated = pydantic_schema.model_validate(row)
                valid_records.append(validated.model_dump(by_alias=True))
            except ValidationError as e:
                result.quarantined_records += 1
                for err in e.errors():
                    err_type = err.get("type", "unknown")
                    result.error_counts[err_type] = result.error_counts.get(err_type, 0) + 1
                quarantined_records.append({
                    "row_index": row_idx,
                    "record": {k: str(v) if v is not None else None for k, v in row.items()},
                    "errors": [
                        {
                            "field": ".".join(str(x) for x in err["loc"]),
                            "type": err["type"],
                            "msg": err["msg"],
                        }
                        for err in e.errors()
                    ],
                })

        result.valid_records = len(valid_records)

        # Written even when empty so Gold always finds the table
        valid_df = pl.DataFrame(valid_records, schema=SILVER_ORDER_LINE_SCHEMA)
        valid_df.write_csv(self.output_dir / f"{source_name}.csv")

        if quarantined_records:
            self._save_quarantine(source_name, quarantined_records)

        return result

    def _map_columns(
        self,
        df: pl.DataFrame,
        fields: Dict[str, Any],
    ) -> pl.DataFrame:
        """Rename source headers to field names; add missing fields as null."""
        renames = {}
        for field_name, field_def in fields.items():
            source = field_def.get("source", field_name)
            if source in df.columns and source != field_name:
                renames[source] = field_name
        df = df.rename(renames)

        missing = [f for f in fields if f not in df.columns]
        if missing:
            self.logger.warning(f"Source is missing columns {missing}; filling with nulls")
            df = df.with_columns([pl.lit(None, dtype=pl.String).alias(f) for f in missing])
        return df

    def _apply_cleaning(
        self,
        df: pl.DataFrame,
        fields: Dict[str, Any],
    ) -> tuple[pl.DataFrame, Dict[str, int]]:
        """Apply Polars-based cleaning transformations."""
        stats = {}
        self.cleaner.unparsed_dates.clear()

        for field_name, field_def in fields.items():
            if field_name not in df.columns:
                continue

            clean_rule = field_def.get("clean")
            if not clean_rule:
                continue

            df, changed = self.cleaner.clean_column(df, field_name, clean_rule)
            if changed:
                stats[field_name] = stats.get(field_name, 0) + 1

        return df, stats

    def _save_quarantine(
        self,
        source_name: str,
        records: List[Dict[str, Any]],
    ) -> None:
        """Save quarantined records to JSON."""
        output_path = self.quarantine_dir / f"{source_name}_quarantine.json"
        with open(output_path, 'w') as f:
            json.dump(records, f, indent=2, default=str)
        self.logger.debug(f"Saved {len(records)} quarantined → {output_path.name}")
