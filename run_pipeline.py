"""
Medallion Pipeline Runner.

Orchestrates the Bronze → Silver → Gold retail analytics pipeline.

Technologies:
- Bronze: Polars (file I/O)
- Silver: Polars + Pydantic (date normalization + validation)
- Gold: DuckDB SQL (quality check, category, monthly, RFM, shipping reports)
"""

import sys
import shutil
import argparse
from pathlib import Path
from datetime import datetime, date
from typing import Optional

import yaml
from loguru import logger

from retail_analytics.bronze import BronzeIngester
from retail_analytics.silver import SilverProcessor
from retail_analytics.gold import GoldProcessor
from retail_analytics.utils.config import load_config
from retail_analytics.utils.logging import setup_logging
from retail_analytics.utils.quality_report import generate_quality_report


PROJECT_DIR = Path(__file__).parent
LAYERS = ["bronze", "silver", "gold"]


def load_configs(config_dir: Path) -> dict:
    """Load the source, schema and cleaning-rule YAML configurations."""
    configs = {}

    config_files = {
        "sources": "sources.yaml",
        "schemas": "schemas.yaml",
        "cleaning_rules": "cleaning_rules.yaml",
    }

    for name, filename in config_files.items():
        path = config_dir / filename
        if path.exists():
            with open(path) as f:
                configs[name] = yaml.safe_load(f) or {}
        else:
            logger.bind(component="Pipeline").warning(f"Config not found: {path}")
            configs[name] = {}

    return configs


def run_pipeline(
    layers: list[str] = None,
    verbose: bool = False,
    fresh: bool = False,
    config_dir: Optional[Path] = None,
    input_dir: Optional[Path] = None,
    output_dir: Optional[Path] = None,
    reference_date: Optional[date] = None,
) -> dict:
    """
    Run the medallion pipeline.

    Args:
        layers: Specific layers to run (bronze, silver, gold), or None for all
        verbose: Enable verbose logging
        fresh: Delete existing outputs and start fresh
        config_dir: Directory holding the YAML configs (default: ./config)
        input_dir: Override for data.input_dir
        output_dir: Override for data.output_dir
        reference_date: Override for analytics.reference_date

    Returns:
        Dictionary with pipeline results
    """
    config_dir = Path(config_dir) if config_dir else PROJECT_DIR / "config"
    config = load_config(config_dir / "pipeline_config.yaml")
    if input_dir is not None:
        config.data.input_dir = Path(input_dir)
    if output_dir is not None:
        config.data.output_dir = Path(output_dir)
    if reference_date is not None:
        config.analytics.reference_date = reference_date

    processed_dir = config.processed_dir

    setup_logging(
        config.logs_dir,
        level="DEBUG" if verbose else config.logging.level,
        log_format=config.logging.format,
        console=config.logging.console,
        file=config.logging.file,
    )
    log = logger.bind(component="Pipeline")

    configs = load_configs(config_dir)

    # Clean outputs if fresh
    if fresh:
        for subdir in LAYERS:
            path = processed_dir / subdir
            if path.exists():
                shutil.rmtree(path)
                log.info(f"Cleaned: {path}")
        if config.quarantine_dir.exists():
            shutil.rmtree(config.quarantine_dir)
            log.info(f"Cleaned: {config.quarantine_dir}")

    if layers is None:
        layers = list(LAYERS)

    results = {
        "started_at": datetime.now().isoformat(),
        "layers": {},
    }

    # Keep raw result objects for quality report
    bronze_results_raw = {}
    silver_results_raw = {}
    gold_results_raw = {}
    quality_summary = {}

    log.info("=" * 70)
    log.info(f"RETAIL ANALYTICS PIPELINE ({config.name} v{config.version})")
    log.info("=" * 70)
    log.info(f"Layers: {', '.join(layers)}")

    try:
        if "bronze" in layers:
            ingester = BronzeIngester(
                sources_config=configs["sources"],
                input_dir=config.data.input_dir,
                output_dir=processed_dir,
            )
            bronze_results_raw = ingester.ingest_all()
            results["layers"]["bronze"] = bronze_results_raw

        if "silver" in layers:
            processor = SilverProcessor(
                sources_config=configs["sources"],
                schemas_config=configs["schemas"],
                cleaning_rules=configs["cleaning_rules"],
                bronze_dir=processed_dir / "bronze",
                output_dir=processed_dir,
                max_quarantine_rate=config.validation.max_quarantine_rate,
            )
            silver_results_raw = processor.process_all()
            results["layers"]["silver"] = {
                name: {
                    "valid": r.valid_records,
                    "quarantined": r.quarantined_records,
                    "unparsed_dates": r.unparsed_dates,
                    "pass_rate": r.pass_rate,
                }
                for name, r in silver_results_raw.items()
            }

        if "gold" in layers:
            gold_processor = GoldProcessor(
                silver_dir=processed_dir / "silver",
                output_dir=processed_dir,
                db_path=config.duckdb.database_path,
                reference_date=config.analytics.effective_reference_date(),
                late_shipment_days=config.analytics.late_shipment_days,
                segments=config.analytics.segments,
            )
            try:
                gold_results_raw = gold_processor.process_all()
                quality_summary = gold_processor.quality_summary()
            finally:
                gold_processor.close()

            results["layers"]["gold"] = {
                name: {
                    "rows": r.row_count,
                    "columns": len(r.columns),
                }
                for name, r in gold_results_raw.items()
            }
            results["quality_check"] = quality_summary

        results["status"] = "success"

        if bronze_results_raw and silver_results_raw and gold_results_raw:
            report_path = generate_quality_report(
                bronze_results=bronze_results_raw,
                silver_results=silver_results_raw,
                gold_results=gold_results_raw,
                output_path=config.data.output_dir / "quality_report.md",
                quality_summary=quality_summary,
            )
            results["quality_report"] = str(report_path)

    except Exception as e:
        log.error(f"Pipeline failed: {e}")
        results["status"] = "failed"
        results["error"] = str(e)
        raise

    results["completed_at"] = datetime.now().isoformat()

    log.info("=" * 70)
    log.info("PIPELINE COMPLETE")
    log.info("=" * 70)

    return results


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Run Retail Analytics Pipeline")
    parser.add_argument(
        "--layers",
        nargs="+",
        choices=LAYERS,
        help="Specific layers to run",
    )
    parser.add_argument(
        "--fresh",
        action="store_true",
        help="Delete existing outputs and start fresh",
    )
    parser.add_argument(
        "--config-dir",
        type=Path,
        help="Directory holding the YAML configs",
    )
    parser.add_argument(
        "--reference-date",
        type=date.fromisoformat,
        help="Date recency is measured against (YYYY-MM-DD); defaults to today",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()

    results = run_pipeline(
        layers=args.layers,
        verbose=args.verbose,
        fresh=args.fresh,
        config_dir=args.config_dir,
        reference_date=args.reference_date,
    )

    if results["status"] == "success":
        print("\n✓ Pipeline completed successfully")

        if "bronze" in results.get("layers", {}):
            bronze = results["layers"]["bronze"]
            total = sum(r.get("row_count", 0) for r in bronze.values() if isinstance(r, dict))
            print(f"  Bronze (Polars): {len(bronze)} sources → {total} rows")

        if "silver" in results.get("layers", {}):
            silver = results["layers"]["silver"]
            total_valid = sum(r.get("valid", 0) for r in silver.values())
            total_quarantined = sum(r.get("quarantined", 0) for r in silver.values())
            print(f"  Silver (Polars + Pydantic): {total_valid} valid, {total_quarantined} quarantined")

        if "gold" in results.get("layers", {}):
            gold = results["layers"]["gold"]
            print(f"  Gold (DuckDB SQL): {len(gold)} reports")
            for key, value in results.get("quality_check", {}).items():
                print(f"    {key}: {value}")

        if "quality_report" in results:
            print(f"  Quality report → {results['quality_report']}")
    else:
        print(f"\n✗ Pipeline failed: {results.get('error', 'Unknown error')}")
        sys.exit(1)


if __name__ == "__main__":
    main()
