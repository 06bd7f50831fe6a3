"""
Configuration management for the retail analytics pipeline.

Uses Pydantic Settings for type-safe configuration with YAML file support
and environment variable overrides.
"""

from pathlib import Path
from typing import Optional
from datetime import date

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class DataConfig(BaseModel):
    """Data paths configuration."""
    input_dir: Path = Field(default=Path("./data"))
    output_dir: Path = Field(default=Path("./outputs"))


class AnalyticsConfig(BaseModel):
    """Report computation settings."""
    reference_date: Optional[date] = Field(
        default=None,
        description="Date recency is measured against; today when unset"
    )
    late_shipment_days: int = Field(
        default=7,
        ge=0,
        description="Shipments taking longer than this many days are late"
    )
    segments: int = Field(
        default=4,
        ge=1,
        description="Number of equal-count buckets for RFM scoring"
    )

    def effective_reference_date(self) -> date:
        """Reference date to use for this run."""
        return self.reference_date or date.today()


class ValidationConfig(BaseModel):
    """Validation settings."""
    max_quarantine_rate: float = Field(
        default=0.05,
        description="Maximum acceptable quarantine rate before warning"
    )


class DuckDBConfig(BaseModel):
    """DuckDB settings. No path means an in-memory database."""
    database_path: Optional[Path] = Field(default=None)


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = Field(default="INFO")
    format: Optional[str] = Field(default=None)
    console: bool = Field(default=True)
    file: bool = Field(default=True)


class PipelineConfig(BaseSettings):
    """
    Main pipeline configuration.

    Configuration is loaded from:
    1. Default values
    2. YAML config file (if provided)
    3. Environment variables (prefix: PIPELINE_)
    """
    name: str = Field(default="retail_sales_analytics")
    version: str = Field(default="1.0.0")

    data: DataConfig = Field(default_factory=DataConfig)
    analytics: AnalyticsConfig = Field(default_factory=AnalyticsConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    duckdb: DuckDBConfig = Field(default_factory=DuckDBConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {
        "env_prefix": "PIPELINE_",
        "env_nested_delimiter": "__",
    }

    @property
    def processed_dir(self) -> Path:
        """Get the processed output directory."""
        return self.data.output_dir / "processed"

    @property
    def quarantine_dir(self) -> Path:
        """Get the quarantine output directory."""
        return self.data.output_dir / "quarantine"

    @property
    def logs_dir(self) -> Path:
        """Get the logs directory."""
        return self.data.output_dir / "logs"


def load_config(config_path: Optional[Path] = None) -> PipelineConfig:
    """
    Load pipeline configuration from YAML file.

    Args:
        config_path: Path to YAML config file. If None, uses defaults.

    Returns:
        PipelineConfig instance with loaded settings.
    """
    if config_path is None:
        # Try default location
        default_path = Path("config/pipeline_config.yaml")
        if default_path.exists():
            config_path = default_path

    if config_path and config_path.exists():
        with open(config_path, "r") as f:
            yaml_config = yaml.safe_load(f) or {}

        # Extract nested configs
        pipeline_config = yaml_config.get("pipeline") or {}

        return PipelineConfig(
            name=pipeline_config.get("name", "retail_sales_analytics"),
            version=pipeline_config.get("version", "1.0.0"),
            data=DataConfig(**(yaml_config.get("data") or {})),
            analytics=AnalyticsConfig(**(yaml_config.get("analytics") or {})),
            validation=ValidationConfig(**(yaml_config.get("validation") or {})),
            duckdb=DuckDBConfig(**(yaml_config.get("duckdb") or {})),
            logging=LoggingConfig(**(yaml_config.get("logging") or {})),
        )

    return PipelineConfig()
