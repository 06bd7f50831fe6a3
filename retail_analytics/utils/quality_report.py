"""
Data Quality Report Generator.

Generates a markdown quality report from pipeline results.
"""

from pathlib import Path
from typing import Dict, Any, Optional
from datetime import datetime
import json

from loguru import logger


QUALITY_CHECKS = [
    ("illogical_shipments", "Ship date earlier than order date"),
    ("non_positive_sales", "Sales amount zero or negative"),
    ("missing_customers", "Customer ID missing"),
    ("missing_order_dates", "Order date missing or unparseable"),
    ("missing_ship_dates", "Ship date missing or unparseable"),
]


def generate_quality_report(
    bronze_results: Dict[str, Any],
    silver_results: Dict[str, Any],
    gold_results: Dict[str, Any],
    output_path: Path,
    quality_summary: Optional[Dict[str, Any]] = None,
) -> Path:
    """
    Generate a markdown data quality report.

    Args:
        bronze_results: Results from Bronze layer
        silver_results: Results from Silver layer (ProcessingResult objects)
        gold_results: Results from Gold layer (ReportResult objects)
        output_path: Path to write the report
        quality_summary: The quality_check row from the Gold layer

    Returns:
        Path to the generated report
    """
    log = logger.bind(component="QualityReport")

    lines = []
    lines.append("# Data Quality Report")
    lines.append(f"\n**Generated:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    lines.append(f"\n**Pipeline:** Polars (Bronze/Silver) → DuckDB (Gold)")
    lines.append("")

    # --- Bronze Summary ---
    lines.append("---")
    lines.append("\n## Bronze Layer (Ingestion)")
    lines.append("")
    lines.append("| Source | Format | Records | Status |")
    lines.append("|--------|--------|---------|--------|")

    total_bronze = 0
    for source, result in bronze_results.items():
        if isinstance(result, dict):
            rows = result.get("row_count", 0)
            fmt = result.get("format", "?")
            success = "✓" if result.get("success") else "✗"
            total_bronze += rows
            lines.append(f"| {source} | {fmt} | {rows:,} | {success} |")

    lines.append(f"| **Total** | | **{total_bronze:,}** | |")
    lines.append("")

    # --- Silver Summary ---
    lines.append("---")
    lines.append("\n## Silver Layer (Cleaning & Validation)")
    lines.append("")
    lines.append("| Source | Total | Valid | Quarantined | Pass Rate |")
    lines.append("|--------|-------|-------|-------------|-----------|")

    total_valid = 0
    total_quarantined = 0

    for source, result in silver_results.items():
        total_valid += result.valid_records
        total_quarantined += result.quarantined_records
        lines.append(
            f"| {source} | {result.total_records:,} | {result.valid_records:,} | "
            f"{result.quarantined_records} | {result.pass_rate:.1%} |"
        )

    overall_rate = total_valid / total_bronze * 100 if total_bronze > 0 else 0
    lines.append(
        f"| **Total** | **{total_bronze:,}** | **{total_valid:,}** | "
        f"**{total_quarantined}** | **{overall_rate:.1f}%** |"
    )
    lines.append("")

    # --- Date normalization ---
    lines.append("### Date Normalization")
    lines.append("")
    lines.append("Values not matching DD/MM/YYYY, or naming an impossible calendar day, "
                 "are kept as raw text and normalized to empty.")
    lines.append("")
    lines.append("| Source | Column | Unparsed Values |")
    lines.append("|--------|--------|-----------------|")
    for source, result in silver_results.items():
        for column, count in result.unparsed_dates.items():
            lines.append(f"| {source} | {column} | {count} |")
    lines.append("")

    # --- Error Breakdown ---
    lines.append("### Validation Error Breakdown")
    lines.append("")

    all_errors: Dict[str, int] = {}
    for result in silver_results.values():
        for err_type, count in result.error_counts.items():
            all_errors[err_type] = all_errors.get(err_type, 0) + count

    if all_errors:
        lines.append("| Error Type | Count |")
        lines.append("|------------|-------|")
        for err_type, count in sorted(all_errors.items(), key=lambda x: -x[1]):
            lines.append(f"| {err_type} | {count} |")
    else:
        lines.append("No validation errors found.")
    lines.append("")

    # --- Quality checks ---
    if quality_summary:
        lines.append("---")
        lines.append("\n## Data Quality Checks")
        lines.append("")
        lines.append(f"Checked {quality_summary.get('total_rows', 0):,} order lines. "
                     "Rows are reported, not removed.")
        lines.append("")
        lines.append("| Check | Description | Rows |")
        lines.append("|-------|-------------|------|")
        for key, description in QUALITY_CHECKS:
            if key in quality_summary:
                lines.append(f"| {key} | {description} | {quality_summary[key]:,} |")
        lines.append("")

    # --- Gold Summary ---
    lines.append("---")
    lines.append("\n## Gold Layer (Reports)")
    lines.append("")
    lines.append("| Report | Rows | Columns |")
    lines.append("|--------|------|---------|")

    for name, result in gold_results.items():
        lines.append(f"| {name} | {result.row_count:,} | {len(result.columns)} |")
    lines.append("")

    # --- Quarantine Files ---
    quarantine_dir = output_path.parent / "quarantine"
    if quarantine_dir.exists():
        quarantine_files = sorted(quarantine_dir.glob("*.json"))
        if quarantine_files:
            lines.append("---")
            lines.append("\n## Quarantine Files")
            lines.append("")
            for qf in quarantine_files:
                try:
                    with open(qf) as f:
                        records = json.load(f)
                    lines.append(f"- `{qf.name}`: {len(records)} records")
                except (OSError, json.JSONDecodeError):
                    lines.append(f"- `{qf.name}`: (unable to read)")
            lines.append("")

    report_text = "\n".join(lines)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w') as f:
        f.write(report_text)

    log.info(f"Quality report → {output_path}")
    return output_path
