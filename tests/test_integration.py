"""
Integration tests for the complete buyer dedupe pipeline.
"""

import json
import logging
import pytest
import pandas as pd
import tempfile
import sys
from pathlib import Path

# Add src to path
sys.path.append(str(Path(__file__).parent.parent / "src"))

from buyer_dedupe.config import get_default_config
from buyer_dedupe.pipeline.run_buyer_dedupe import BuyerDedupePipeline, _load_candidate, configure_logging


class TestBuyerDedupePipeline:
    """Integration tests for the complete pipeline."""

    def setup_method(self):
        """Setup test fixtures."""
        # Create temporary directory for test outputs
        self.temp_dir = tempfile.mkdtemp()

        # Create test data
        self.test_data = pd.DataFrame({
            "id": ["b1", "b2", "b3", "b4", "b5"],
            "full_name": ["John Smith", "Jon Smith", "Maria Garcia", "Robert Lee", "Maria Garcia"],
            "email": ["john@example.com", "JOHN@example.com", "maria@example.com", "rlee@example.com", None],
            "phone": ["(512) 555-0100", "512-555-0100", "2105550199", "7135550123", "210.555.0199"],
            "city": ["Austin", "Austin", "San Antonio", "Houston", "San Antonio"],
            "state": ["TX", "TX", "TX", "TX", "TX"],
            "created_at": ["2024-01-01", "2024-02-01", "2024-03-01", "2024-04-01", "2024-05-01"],
        })

        # Save test data to temporary file
        self.test_file = Path(self.temp_dir) / "test_buyers.csv"
        self.test_data.to_csv(self.test_file, index=False)

        self.config_path = Path(self.temp_dir) / "test_config.yaml"
        self.create_test_config()

    def create_test_config(self, order: str = "newest_first"):
        """Create minimal test configuration."""
        config_content = f"""
merge:
  unsupported_both: error

batch:
  order: {order}

input:
  column_mapping:
    full_name: name

output:
  write_matches: true
"""
        with open(self.config_path, 'w') as f:
            f.write(config_content)

    def test_ingest_data(self):
        pipeline = BuyerDedupePipeline(str(self.config_path))
        df = pipeline.ingest_data(str(self.test_file))

        assert len(df) == 5
        assert "name" in df.columns
        assert "full_name" not in df.columns

    def test_ingest_unsupported_format(self):
        pipeline = BuyerDedupePipeline(str(self.config_path))
        with pytest.raises(ValueError):
            pipeline.ingest_data(str(Path(self.temp_dir) / "buyers.xlsx"))

    def test_ingest_requires_id_column(self):
        no_id_file = Path(self.temp_dir) / "no_id.csv"
        self.test_data.drop(columns=["id"]).to_csv(no_id_file, index=False)

        pipeline = BuyerDedupePipeline(str(self.config_path))
        with pytest.raises(ValueError):
            pipeline.ingest_data(str(no_id_file))

    def test_to_records_uses_none_for_missing(self):
        pipeline = BuyerDedupePipeline(str(self.config_path))
        records = pipeline.to_records(pipeline.ingest_data(str(self.test_file)))

        assert records[4]["email"] is None
        assert records[0]["phone"] == "(512) 555-0100"

    def test_full_pipeline(self):
        """Test complete pipeline execution."""
        output_dir = Path(self.temp_dir) / "output"
        pipeline = BuyerDedupePipeline(str(self.config_path))
        report = pipeline.run_pipeline(str(self.test_file), output_path=str(output_dir))

        processing = report["data_processing"]
        assert processing["total_records"] == 5
        assert processing["duplicate_groups"] == 2
        assert processing["duplicate_records"] == 2
        assert processing["records_after_merge"] == 3

        assert report["field_coverage"]["email"] == 4
        assert report["field_coverage"]["phone"] == 5
        assert report["field_coverage"]["location"] == 5
        assert report["match_statistics"]["confidence_distribution"]["high"] == 2

        groups_df = pd.read_csv(output_dir / "duplicate_groups.csv", dtype={"buyer_id": str})
        assert len(groups_df) == 4
        primaries = groups_df[groups_df["role"] == "primary"]["buyer_id"].tolist()
        assert primaries == ["b5", "b2"]

        assert (output_dir / "report.json").exists()
        assert not (output_dir / "candidate_matches.csv").exists()

    def test_oldest_first_order(self):
        self.create_test_config(order="oldest_first")
        pipeline = BuyerDedupePipeline(str(self.config_path))
        report = pipeline.run_pipeline(str(self.test_file))

        assert report["data_processing"]["duplicate_groups"] == 2

    def test_candidate_check(self):
        output_dir = Path(self.temp_dir) / "output"
        pipeline = BuyerDedupePipeline(str(self.config_path))
        report = pipeline.run_pipeline(
            str(self.test_file),
            output_path=str(output_dir),
            candidate={"email": "Maria@Example.com", "name": "Maria Garcia"},
        )

        assert report["candidate"]["is_duplicate"] is True
        assert report["candidate"]["matches"][0]["buyer_id"] == "b3"
        assert report["candidate"]["matches"][0]["match_score"] == 100

        matches_df = pd.read_csv(output_dir / "candidate_matches.csv")
        assert matches_df.iloc[0]["buyer_id"] == "b3"

        with open(output_dir / "report.json") as f:
            saved_report = json.load(f)
        assert saved_report["data_processing"]["duplicate_groups"] == 2

    def test_json_lines_input(self):
        json_file = Path(self.temp_dir) / "buyers.json"
        self.test_data.to_json(json_file, orient="records", lines=True)

        pipeline = BuyerDedupePipeline(str(self.config_path))
        report = pipeline.run_pipeline(str(json_file))

        assert report["data_processing"]["duplicate_groups"] == 2

    def test_json_lines_numeric_phones(self):
        """Phones stored as JSON numbers still take part in matching."""
        json_file = Path(self.temp_dir) / "numeric_phones.jsonl"
        rows = [
            {"id": "j1", "full_name": "Ann Lee", "phone": 5551234567},
            {"id": "j2", "full_name": "Ann  Lee", "phone": 5551234567},
            {"id": "j3", "full_name": "Bo Chan", "phone": None},
        ]
        json_file.write_text("\n".join(json.dumps(row) for row in rows) + "\n")

        pipeline = BuyerDedupePipeline(str(self.config_path))
        report = pipeline.run_pipeline(str(json_file))

        assert report["field_coverage"]["phone"] == 2
        assert report["data_processing"]["duplicate_groups"] == 1
        assert report["data_processing"]["duplicate_records"] == 1

    def test_invalid_config(self):
        self.create_test_config(order="random")
        with pytest.raises(ValueError):
            BuyerDedupePipeline(str(self.config_path))

    def test_load_candidate(self):
        assert _load_candidate('{"email": "a@x.com"}') == {"email": "a@x.com"}

        candidate_file = Path(self.temp_dir) / "candidate.json"
        candidate_file.write_text('{"phone": "5551234567"}')
        assert _load_candidate(str(candidate_file)) == {"phone": "5551234567"}

        with pytest.raises(ValueError):
            _load_candidate('["a@x.com"]')


class TestConfigureLogging:
    """Test cases for logging set up from configuration."""

    def setup_method(self):
        root = logging.getLogger()
        self.saved_level = root.level
        self.saved_handlers = list(root.handlers)

    def teardown_method(self):
        root = logging.getLogger()
        root.handlers = self.saved_handlers
        root.setLevel(self.saved_level)

    def test_uses_configured_level_and_format(self):
        config = get_default_config()
        config["logging"] = {"level": "warning", "format": "%(levelname)s|%(message)s"}

        configure_logging(config)

        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert root.handlers[-1].formatter._fmt == "%(levelname)s|%(message)s"

    def test_command_line_level_overrides_config(self):
        config = get_default_config()
        config["logging"]["level"] = "ERROR"

        configure_logging(config, "DEBUG")

        assert logging.getLogger().level == logging.DEBUG


if __name__ == "__main__":
    pytest.main([__file__])
