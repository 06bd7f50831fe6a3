"""
Silver Layer Cleaner.

Applies cleaning rules from config to standardize order-line data using
Polars vectorized column operations.
"""

from typing import Dict, Any

import polars as pl
from loguru import logger


DMY_PATTERN = r"^[0-9]{2}/[0-9]{2}/[0-9]{4}$"
DMY_FORMAT = "%d/%m/%Y"


class DateNormalizer:
    """
    Converts DD/MM/YYYY text into a typed Date column.

    Only text matching the strict two-digit/two-digit/four-digit pattern is
    parsed. Anything else, including impossible calendar dates such as
    31/02/2024, becomes null instead of raising. The source text is kept
    alongside the typed value in ``<column>_raw``.
    """

    def __init__(self, pattern: str = DMY_PATTERN, date_format: str = DMY_FORMAT):
        self.pattern = pattern
        self.date_format = date_format

    def expression(self, column: str) -> pl.Expr:
        """Polars expression mapping a text column to a Date (or null)."""
        text = pl.col(column).str.strip_chars()
        parsed = text.str.to_date(self.date_format, strict=False)
        # Year 0 parses in Polars but has no Python date
        return (
            pl.when(text.str.contains(self.pattern) & (parsed.dt.year() >= 1))
            .then(parsed)
            .otherwise(pl.lit(None, dtype=pl.Date))
        )

    def normalize(
        self,
        df: pl.DataFrame,
        column: str,
        keep_raw: bool = True,
    ) -> tuple[pl.DataFrame, int]:
        """
        Normalize one date column.

        Args:
            df: Input DataFrame.
            column: Text column holding DD/MM/YYYY dates.
            keep_raw: Copy the source text into ``<column>_raw``.

        Returns:
            Tuple of (transformed DataFrame, number of non-empty values that
            did not parse). A column that is already typed is returned as is.
        """
        if df[column].dtype == pl.Date:
            return df, 0

        raw_column = f"{column}_raw"
        columns = [self.expression(column).alias(column)]
        if keep_raw:
            columns.insert(0, pl.col(column).alias(raw_column))
        out = df.with_columns(columns)

        had_text = df[column].str.strip_chars().str.len_chars().fill_null(0) > 0
        unparsed = int((had_text & out[column].is_null()).sum())
        return out, unparsed


class SilverCleaner:
    """
    Applies cleaning rules to standardize data via Polars vectorized expressions.

    Supports:
    - String trimming / whitespace normalization / blank to null
    - DD/MM/YYYY date normalization (see DateNormalizer)
    - Numeric text cleanup (currency symbols, thousands separators)
    """

    def __init__(self, cleaning_rules: Dict[str, Any]):
        """
        Initialize cleaner with rules from config.

        Args:
            cleaning_rules: Cleaning rules from cleaning_rules.yaml
        """
        self.rules = cleaning_rules.get("cleaners", {})
        self.logger = logger.bind(component="SilverCleaner")
        # Unparsed value count per date column, reset per source by the processor
        self.unparsed_dates: Dict[str, int] = {}

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def clean_column(
        self,
        df: pl.DataFrame,
        field_name: str,
        rule_name: str,
    ) -> tuple[pl.DataFrame, bool]:
        """
        Apply a cleaning rule to an entire DataFrame column.

        Args:
            df: Input DataFrame.
            field_name: Column to clean.
            rule_name: Key in ``self.rules`` (e.g. "trim", "date_dmy").

        Returns:
            Tuple of (transformed DataFrame, whether the column was changed).
        """
        rule = self.rules.get(rule_name)
        if not rule:
            self.logger.warning(f"Unknown cleaning rule '{rule_name}' for {field_name}")
            return df, False

        rule_type = rule.get("type")

        if rule_type == "string":
            return self._clean_column_string(df, field_name, rule)
        elif rule_type == "date":
            return self._clean_column_date(df, field_name, rule)
        elif rule_type == "numeric":
            return self._clean_column_numeric(df, field_name, rule)
        else:
            self.logger.warning(
                f"Unsupported rule type '{rule_type}' for {field_name}"
            )
            return df, False

    # ------------------------------------------------------------------
    # Internal helpers (one per rule type)
    # ------------------------------------------------------------------

    @staticmethod
    def _is_text(df: pl.DataFrame, col: str) -> bool:
        return df[col].dtype in (pl.String, pl.Utf8)

    def _clean_column_string(
        self, df: pl.DataFrame, col: str, rule: Dict[str, Any],
    ) -> tuple[pl.DataFrame, bool]:
        if not self._is_text(df, col):
            return df, False
        operations = rule.get("operations", [])
        changed = False
        if "trim" in operations:
            df = df.with_columns(pl.col(col).str.strip_chars().alias(col))
            changed = True
        if "normalize_whitespace" in operations:
            df = df.with_columns(
                pl.col(col).str.replace_all(r"\s+", " ").alias(col)
            )
            changed = True
        if "blank_to_null" in operations:
            df = df.with_columns(
                pl.when(pl.col(col).str.strip_chars().str.len_chars() == 0)
                .then(pl.lit(None, dtype=pl.String))
                .otherwise(pl.col(col))
                .alias(col)
            )
            changed = True
        return df, changed

    def _clean_column_date(
        self, df: pl.DataFrame, col: str, rule: Dict[str, Any],
    ) -> tuple[pl.DataFrame, bool]:
        if not self._is_text(df, col):
            return df, False
        normalizer = DateNormalizer(
            pattern=rule.get("pattern", DMY_PATTERN),
            date_format=rule.get("format", DMY_FORMAT),
        )
        df, unparsed = normalizer.normalize(df, col, keep_raw=rule.get("keep_raw", True))
        self.unparsed_dates[col] = unparsed
        if unparsed:
            self.logger.warning(f"{col}: {unparsed} values did not match {normalizer.date_format}")
        return df, True

    def _clean_column_numeric(
        self, df: pl.DataFrame, col: str, rule: Dict[str, Any],
    ) -> tuple[pl.DataFrame, bool]:
        # Leaves the column as text; the schema decides what parses as a number.
        # The thousands separator is only dropped from properly grouped values,
        # so a decimal comma ("261,96") stays and fails validation.
        if not self._is_text(df, col):
            return df, False
        strip = rule.get("strip_chars", "")
        expr = pl.col(col).str.strip_chars()
        if strip:
            expr = expr.str.replace_all(f"[{_escape_class(strip)}]", "")
        sep = rule.get("thousands_separator")
        if sep:
            sep_re = _escape_class(sep)
            grouped = rf"^[-+]?[0-9]{{1,3}}([{sep_re}][0-9]{{3}})+(\.[0-9]+)?$"
            expr = (
                pl.when(expr.str.contains(grouped))
                .then(expr.str.replace_all(f"[{sep_re}]", ""))
                .otherwise(expr)
            )
        df = df.with_columns(expr.alias(col))
        return df, True


def _escape_class(chars: str) -> str:
    """Escape characters for use inside a regex character class."""
    special = set("\\]^-[")
    return "".join(f"\\{c}" if c in special else c for c in chars)

