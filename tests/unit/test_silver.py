"""
Unit tests for Silver layer: date normalization, cleaning and validation.
"""

import json
from datetime import date

import pytest
import polars as pl

from retail_analytics.bronze.ingester import BronzeIngester
from retail_analytics.silver.cleaner import DateNormalizer, SilverCleaner
from retail_analytics.silver.processor import SilverProcessor
from retail_analytics.silver.schemas import OrderLineSchema, get_pydantic_schema


class TestDateNormalizer:
    """Tests for DD/MM/YYYY date normalization."""

    @pytest.fixture
    def normalizer(self):
        return DateNormalizer()

    def test_valid_dates(self, normalizer):
        df = pl.DataFrame({"order_date": ["08/11/2017", "29/02/2024", "01/01/2015"]})
        out, unparsed = normalizer.normalize(df, "order_date")

        assert out["order_date"].dtype == pl.Date
        assert out["order_date"].to_list() == [
            date(2017, 11, 8), date(2024, 2, 29), date(2015, 1, 1),
        ]
        assert unparsed == 0

    def test_impossible_calendar_date_is_null(self, normalizer):
        """31/02/2024 matches the pattern but is not a real day."""
        df = pl.DataFrame({"order_date": ["31/02/2024"]})
        out, unparsed = normalizer.normalize(df, "order_date")

        assert out["order_date"][0] is None
        assert unparsed == 1

    def test_pattern_mismatch_is_null(self, normalizer):
        df = pl.DataFrame({"order_date": ["2018-03-05", "8/11/2017", "08/11/17", "soon"]})
        out, unparsed = normalizer.normalize(df, "order_date")

        assert out["order_date"].null_count() == 4
        assert unparsed == 4

    def test_empty_values_not_counted_as_unparsed(self, normalizer):
        df = pl.DataFrame({"order_date": [None, "", "08/11/2017"]})
        out, unparsed = normalizer.normalize(df, "order_date")

        assert out["order_date"].to_list() == [None, None, date(2017, 11, 8)]
        assert unparsed == 0

    def test_surrounding_whitespace_tolerated(self, normalizer):
        df = pl.DataFrame({"order_date": [" 08/11/2017 "]})
        out, _ = normalizer.normalize(df, "order_date")
        assert out["order_date"][0] == date(2017, 11, 8)

    def test_raw_text_kept(self, normalizer):
        """Normalization adds a typed column without discarding the source text."""
        df = pl.DataFrame({"order_date": ["08/11/2017", "31/02/2024"]})
        out, _ = normalizer.normalize(df, "order_date")

        assert out["order_date_raw"].to_list() == ["08/11/2017", "31/02/2024"]
        # Input frame is untouched
        assert df.columns == ["order_date"]
        assert df["order_date"].dtype == pl.String

    def test_idempotent(self, normalizer):
        df = pl.DataFrame({"order_date": ["08/11/2017", "bad"]})
        once, _ = normalizer.normalize(df, "order_date")
        twice, unparsed = normalizer.normalize(once, "order_date")

        assert twice.equals(once)
        assert unparsed == 0

    def test_no_unparsed_text_survives(self, normalizer):
        """Every normalized value is a date or null, never text."""
        values = ["08/11/2017", "31/02/2024", "x", None, "00/00/0000", "12/13/2020", "01/01/0000"]
        df = pl.DataFrame({"ship_date": values})
        out, unparsed = normalizer.normalize(df, "ship_date")

        assert out["ship_date"].dtype == pl.Date
        assert out["ship_date"].to_list() == [date(2017, 11, 8), None, None, None, None, None, None]
        assert unparsed == 5

    def test_year_zero_is_null(self, normalizer):
        df = pl.DataFrame({"order_date": ["01/01/0000", "01/01/0001"]})
        out, unparsed = normalizer.normalize(df, "order_date")

        assert out["order_date"].to_list() == [None, date(1, 1, 1)]
        assert unparsed == 1


class TestSilverCleaner:
    """Tests for the SilverCleaner column rules."""

    @pytest.fixture
    def cleaner(self, sample_cleaning_rules):
        return SilverCleaner(sample_cleaning_rules)

    def test_trim_and_blank_to_null(self, cleaner):
        df = pl.DataFrame({"customer_id": ["  CG-100 ", "   ", None, "DV  200"]})
        out, changed = cleaner.clean_column(df, "customer_id", "trim")

        assert changed is True
        assert out["customer_id"].to_list() == ["CG-100", None, None, "DV 200"]

    def test_numeric_strips_currency(self, cleaner):
        df = pl.DataFrame({"sales": ["$1,000.50", " 12.5 ", "N/A"]})
        out, changed = cleaner.clean_column(df, "sales", "numeric")

        assert changed is True
        # Stays text; the schema decides what is a number
        assert out["sales"].to_list() == ["1000.50", "12.5", "N/A"]

    def test_decimal_comma_not_merged(self, cleaner):
        """Only digit-grouped values lose their separators."""
        df = pl.DataFrame({"sales": ["261,96", "1,234,567", "-1,000", "12,34.5"]})
        out, _ = cleaner.clean_column(df, "sales", "numeric")

        assert out["sales"].to_list() == ["261,96", "1234567", "-1000", "12,34.5"]

    def test_decimal_comma_quarantined(self):
        from pydantic import ValidationError
        with pytest.raises(ValidationError):
            OrderLineSchema.model_validate({"_line_number": 1, "sales": "261,96"})

    def test_date_rule_tracks_unparsed(self, cleaner):
        df = pl.DataFrame({"order_date": ["08/11/2017", "31/02/2018", "2018-03-05"]})
        out, changed = cleaner.clean_column(df, "order_date", "date_dmy")

        assert changed is True
        assert out["order_date"].dtype == pl.Date
        assert cleaner.unparsed_dates["order_date"] == 2

    def test_unknown_rule(self, cleaner):
        df = pl.DataFrame({"x": ["a"]})
        out, changed = cleaner.clean_column(df, "x", "nonexistent_rule")

        assert changed is False
        assert out.equals(df)

    def test_non_text_column_skipped(self, cleaner):
        df = pl.DataFrame({"sales": [1.0, 2.0]})
        out, changed = cleaner.clean_column(df, "sales", "numeric")
        assert changed is False


class TestOrderLineSchema:
    """Tests for the Pydantic order-line schema."""

    def test_invariant_violations_are_valid_rows(self):
        """Negative sales and ship-before-order are reported later, not rejected."""
        row = OrderLineSchema.model_validate({
            "_line_number": "1",
            "order_id": "CA-1",
            "order_date": date(2018, 3, 20),
            "ship_date": date(2018, 3, 18),
            "customer_id": None,
            "sales": "-5",
        })
        assert row.sales == -5.0
        assert row.customer_id is None

    def test_non_numeric_sales_rejected(self):
        from pydantic import ValidationError
        with pytest.raises(ValidationError):
            OrderLineSchema.model_validate({"_line_number": 1, "sales": "N/A"})

    @pytest.mark.parametrize("value", ["NaN", "nan", "inf", "-Infinity"])
    def test_non_finite_sales_rejected(self, value):
        """Values that would poison sums are quarantined like other non-numbers."""
        from pydantic import ValidationError
        with pytest.raises(ValidationError):
            OrderLineSchema.model_validate({"_line_number": 1, "sales": value})

    def test_blank_sales_is_missing(self):
        row = OrderLineSchema.model_validate({"_line_number": 1, "sales": "  "})
        assert row.sales is None

    def test_dump_uses_column_names(self):
        row = OrderLineSchema.model_validate({"_line_number": 3, "_source_file": "a.csv"})
        dumped = row.model_dump(by_alias=True)
        assert dumped["_line_number"] == 3
        assert dumped["_source_file"] == "a.csv"

    def test_unknown_schema(self):
        with pytest.raises(ValueError, match="Unknown schema"):
            get_pydantic_schema("customer")


class TestSilverProcessor:
    """Tests for Silver processing from Bronze output."""

    def _run_bronze_then_silver(
        self, sample_sources_config, sample_schemas_config,
        sample_cleaning_rules, sample_input_dir, tmp_path,
    ):
        """Helper: run Bronze to create CSVs, then Silver to process them."""
        output_dir = tmp_path / "outputs" / "processed"
        output_dir.mkdir(parents=True)

        BronzeIngester(
            sources_config=sample_sources_config,
            input_dir=sample_input_dir,
            output_dir=output_dir,
        ).ingest_all()

        processor = SilverProcessor(
            sources_config=sample_sources_config,
            schemas_config=sample_schemas_config,
            cleaning_rules=sample_cleaning_rules,
            bronze_dir=output_dir / "bronze",
            output_dir=output_dir,
        )
        return processor.process_all(), output_dir

    def test_counts(
        self, sample_sources_config, sample_schemas_config,
        sample_cleaning_rules, sample_input_dir, tmp_path,
    ):
        results, _ = self._run_bronze_then_silver(
            sample_sources_config, sample_schemas_config,
            sample_cleaning_rules, sample_input_dir, tmp_path,
        )

        result = results["order_lines"]
        assert result.total_records == 6
        assert result.valid_records == 5
        assert result.quarantined_records == 1
        assert result.unparsed_dates == {"order_date": 2, "ship_date": 0}
        assert result.error_counts.get("float_parsing") == 1

    def test_silver_output_columns(
        self, sample_sources_config, sample_schemas_config,
        sample_cleaning_rules, sample_input_dir, tmp_path,
    ):
        _, output_dir = self._run_bronze_then_silver(
            sample_sources_config, sample_schemas_config,
            sample_cleaning_rules, sample_input_dir, tmp_path,
        )

        df = pl.read_csv(output_dir / "silver" / "order_lines.csv", infer_schema_length=0)
        assert df.columns[:4] == ["_line_number", "order_id", "order_date_raw", "order_date"]

        first = df.row(0, named=True)
        assert first["customer_name"] == "Claire Gute"
        assert first["order_date"] == "2017-11-08"
        assert first["order_date_raw"] == "08/11/2017"

        assert float(df["sales"][1]) == pytest.approx(1000.50)

    def test_invariant_violations_kept(
        self, sample_sources_config, sample_schemas_config,
        sample_cleaning_rules, sample_input_dir, tmp_path,
    ):
        """Rows with bad dates, zero sales or no customer stay in Silver."""
        _, output_dir = self._run_bronze_then_silver(
            sample_sources_config, sample_schemas_config,
            sample_cleaning_rules, sample_input_dir, tmp_path,
        )

        df = pl.read_csv(output_dir / "silver" / "order_lines.csv", infer_schema_length=0)
        assert df["order_id"].to_list() == ["CA-001", "CA-001", "CA-002", "CA-003", "CA-004"]

        bad_date = df.filter(pl.col("order_id") == "CA-002").row(0, named=True)
        assert bad_date["order_date"] is None
        assert bad_date["order_date_raw"] == "31/02/2018"

        no_customer = df.filter(pl.col("order_id") == "CA-004").row(0, named=True)
        assert no_customer["customer_id"] is None

    def test_quarantine_file(
        self, sample_sources_config, sample_schemas_config,
        sample_cleaning_rules, sample_input_dir, tmp_path,
    ):
        _, output_dir = self._run_bronze_then_silver(
            sample_sources_config, sample_schemas_config,
            sample_cleaning_rules, sample_input_dir, tmp_path,
        )

        quarantine_file = output_dir.parent / "quarantine" / "order_lines_quarantine.json"
        assert quarantine_file.exists()

        records = json.loads(quarantine_file.read_text())
        assert len(records) == 1
        assert records[0]["record"]["order_id"] == "CA-005"
        assert records[0]["errors"][0]["field"] == "sales"

    def test_missing_bronze_file(
        self, sample_sources_config, sample_schemas_config,
        sample_cleaning_rules, tmp_path,
    ):
        output_dir = tmp_path / "outputs" / "processed"
        processor = SilverProcessor(
            sources_config=sample_sources_config,
            schemas_config=sample_schemas_config,
            cleaning_rules=sample_cleaning_rules,
            bronze_dir=output_dir / "bronze",
            output_dir=output_dir,
        )

        results = processor.process_all()
        assert results["order_lines"].total_records == 0
        assert results["order_lines"].pass_rate == 0.0

    def test_year_zero_date_kept_as_missing(
        self, sample_sources_config, sample_schemas_config,
        sample_cleaning_rules, tmp_path,
    ):
        """A pattern-valid date outside the calendar becomes null, not an error."""
        input_dir = tmp_path / "data"
        input_dir.mkdir()
        (input_dir / "superstore.csv").write_text(
            "Order ID,Order Date,Ship Date,Ship Mode,Customer ID,Customer Name,Category,Sales\n"
            "CA-1,01/01/0000,03/01/2018,Same Day,AN-1,Ann,Furniture,10\n"
        )

        results, output_dir = self._run_bronze_then_silver(
            sample_sources_config, sample_schemas_config,
            sample_cleaning_rules, input_dir, tmp_path,
        )

        result = results["order_lines"]
        assert result.valid_records == 1
        assert result.unparsed_dates["order_date"] == 1

        df = pl.read_csv(output_dir / "silver" / "order_lines.csv", infer_schema_length=0)
        assert df["order_date"][0] is None
        assert df["order_date_raw"][0] == "01/01/0000"

    def test_missing_source_column_filled(
        self, sample_sources_config, sample_schemas_config,
        sample_cleaning_rules, tmp_path,
    ):
        """A source without a Customer ID column still produces Silver rows."""
        input_dir = tmp_path / "data"
        input_dir.mkdir()
        (input_dir / "superstore.csv").write_text(
            "Order ID,Order Date,Ship Date,Ship Mode,Customer Name,Category,Sales\n"
            "CA-1,01/01/2018,03/01/2018,Same Day,Ann,Furniture,10\n"
        )

        results, output_dir = self._run_bronze_then_silver(
            sample_sources_config, sample_schemas_config,
            sample_cleaning_rules, input_dir, tmp_path,
        )

        assert results["order_lines"].valid_records == 1
        df = pl.read_csv(output_dir / "silver" / "order_lines.csv", infer_schema_length=0)
        assert df["customer_id"][0] is None
