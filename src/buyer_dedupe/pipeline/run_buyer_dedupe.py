"""
Batch pipeline runner for buyer deduplication.

Loads an exported buyer collection, normalizes contact fields, groups
likely duplicates and optionally checks a single candidate buyer against
the collection, then writes the results as CSV files.
"""

import argparse
import json
import logging
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional
import pandas as pd

from ..config import DEFAULT_CONFIG_PATH, LOG_LEVELS, load_config, validate_config
from ..match.clustering import count_duplicates, find_duplicate_groups
from ..match.duplicate_matcher import DuplicateMatcher, get_match_statistics
from ..match.schemas import DeduplicationResult, DuplicateGroup
from ..normalize.field_normalizer import normalize_dataframe

logger = logging.getLogger(__name__)

COVERAGE_COLUMNS = ["email_norm", "phone_norm", "name_norm", "company_name_norm", "location_norm"]


class BuyerDedupePipeline:
    """
    Pipeline orchestrator for buyer deduplication.

    Runs ingestion, normalization, duplicate grouping and reporting with
    per-stage timing.
    """

    def __init__(self, config_path: str = DEFAULT_CONFIG_PATH):
        """
        Initialize pipeline with configuration.

        Args:
            config_path: Path to configuration file
        """
        self.config_path = config_path
        self.config = load_config(config_path)
        if not validate_config(self.config):
            raise ValueError(f"Invalid configuration: {config_path}")

        self.matcher = DuplicateMatcher()

        self.pipeline_start_time = None
        self.stage_times = {}

        logger.info("Initialized buyer dedupe pipeline")

    def _start_stage_timer(self, stage_name: str):
        """Start timing for a pipeline stage."""
        self.stage_times[stage_name] = time.time()
        logger.info(f"Starting stage: {stage_name}")

    def _end_stage_timer(self, stage_name: str):
        """End timing for a pipeline stage and log its duration."""
        if stage_name in self.stage_times:
            duration = time.time() - self.stage_times[stage_name]
            self.stage_times[stage_name] = duration
            logger.info(f"Completed stage: {stage_name} in {duration:.2f} seconds")

    def ingest_data(self, input_path: str) -> pd.DataFrame:
        """
        Load a buyer export from CSV or JSON lines.

        Args:
            input_path: Path to input file

        Returns:
            DataFrame with one row per buyer
        """
        self._start_stage_timer("data_ingestion")

        try:
            if input_path.endswith(".csv"):
                df = pd.read_csv(input_path, dtype=str)
            elif input_path.endswith(".json") or input_path.endswith(".jsonl"):
                df = pd.read_json(input_path, lines=True, dtype=False)
            else:
                raise ValueError(f"Unsupported file format: {input_path}")

            column_mapping = self.config.get("input", {}).get("column_mapping", {})
            if column_mapping:
                df = df.rename(columns=column_mapping)

            if "id" not in df.columns:
                raise ValueError(f"Input is missing required column: id ({input_path})")

            logger.info(f"Ingested {len(df)} buyers from {input_path}")

            self._end_stage_timer("data_ingestion")
            return df

        except Exception as e:
            logger.error(f"Data ingestion failed: {e}")
            raise

    def normalize_data(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Derive normalized contact columns for reporting field coverage.

        Args:
            df: Buyer DataFrame

        Returns:
            DataFrame with *_norm columns added
        """
        self._start_stage_timer("data_normalization")

        normalized_df = normalize_dataframe(df)

        self._end_stage_timer("data_normalization")
        return normalized_df

    def get_field_coverage(self, normalized_df: pd.DataFrame) -> Dict[str, int]:
        """Count buyers with a usable value for each comparable field."""
        return {
            column.replace("_norm", ""): int((normalized_df[column] != "").sum())
            for column in COVERAGE_COLUMNS
            if column in normalized_df.columns
        }

    @staticmethod
    def to_records(df: pd.DataFrame) -> List[Dict[str, Any]]:
        """Convert a buyer DataFrame to records with missing values as None."""
        return df.astype(object).where(df.notna(), None).to_dict("records")

    def detect_duplicates(self, records: List[Dict[str, Any]]) -> List[DuplicateGroup]:
        """
        Group likely duplicates across the whole collection.

        Args:
            records: Buyer records

        Returns:
            Duplicate groups
        """
        self._start_stage_timer("duplicate_detection")

        order = self.config.get("batch", {}).get("order", "newest_first")
        groups = find_duplicate_groups(records, order=order, matcher=self.matcher)

        logger.info(f"Detected {len(groups)} duplicate groups "
                    f"({count_duplicates(groups)} duplicate buyers)")

        self._end_stage_timer("duplicate_detection")
        return groups

    def check_candidate(self, candidate: Dict[str, Any],
                        records: List[Dict[str, Any]]) -> DeduplicationResult:
        """
        Check a single candidate buyer against the collection.

        Args:
            candidate: New buyer fields
            records: Existing buyer records

        Returns:
            DeduplicationResult for the candidate
        """
        self._start_stage_timer("candidate_check")

        result = self.matcher.find_duplicates(candidate, records)
        logger.info(f"Candidate check: {len(result.matches)} matches, "
                    f"duplicate={result.is_duplicate}")

        self._end_stage_timer("candidate_check")
        return result

    def generate_report(self, records: List[Dict[str, Any]], groups: List[DuplicateGroup],
                        field_coverage: Dict[str, int],
                        candidate_result: Optional[DeduplicationResult] = None) -> Dict[str, Any]:
        """
        Build the run summary.

        Args:
            records: Buyer records processed
            groups: Duplicate groups found
            field_coverage: Buyers with a usable value per field
            candidate_result: Result of the candidate check, if any

        Returns:
            Report dictionary
        """
        duplicate_records = count_duplicates(groups)
        group_matches = [match for group in groups for match in group.matches]

        report = {
            "pipeline_execution": {
                "total_duration": time.time() - self.pipeline_start_time if self.pipeline_start_time else 0.0,
                "stage_times": dict(self.stage_times)
            },
            "data_processing": {
                "total_records": len(records),
                "duplicate_groups": len(groups),
                "duplicate_records": duplicate_records,
                "records_after_merge": len(records) - duplicate_records
            },
            "field_coverage": field_coverage,
            "match_statistics": get_match_statistics(group_matches)
        }

        if candidate_result is not None:
            report["candidate"] = {
                "is_duplicate": candidate_result.is_duplicate,
                "matches": [match.to_dict() for match in candidate_result.matches]
            }

        return report

    def run_pipeline(self, input_path: str, output_path: Optional[str] = None,
                     candidate: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Run the complete deduplication pipeline.

        Args:
            input_path: Buyer export path
            output_path: Directory for result files (optional)
            candidate: Candidate buyer to check against the collection (optional)

        Returns:
            Report dictionary
        """
        self.pipeline_start_time = time.time()
        self.stage_times = {}

        try:
            df = self.ingest_data(input_path)
            normalized_df = self.normalize_data(df)
            field_coverage = self.get_field_coverage(normalized_df)

            records = self.to_records(df)
            groups = self.detect_duplicates(records)

            candidate_result = None
            if candidate:
                candidate_result = self.check_candidate(candidate, records)

            report = self.generate_report(records, groups, field_coverage, candidate_result)

            if output_path:
                self._save_results(groups, candidate_result, report, output_path)

            logger.info(f"Pipeline completed successfully in "
                        f"{report['pipeline_execution']['total_duration']:.2f} seconds")
            return report

        except Exception as e:
            logger.error(f"Pipeline failed: {e}")
            raise

    def _save_results(self, groups: List[DuplicateGroup],
                      candidate_result: Optional[DeduplicationResult],
                      report: Dict[str, Any], output_path: str):
        """Save pipeline results to specified path."""
        output_dir = Path(output_path)
        output_dir.mkdir(parents=True, exist_ok=True)

        rows = []
        for group_id, group in enumerate(groups):
            rows.append({
                "group_id": group_id,
                "role": "primary",
                "buyer_id": group.primary.get("id"),
                "name": group.primary.get("name"),
                "email": group.primary.get("email"),
                "match_score": None,
                "confidence": None,
                "match_reasons": ""
            })
            for match in group.matches:
                rows.append({
                    "group_id": group_id,
                    "role": "duplicate",
                    "buyer_id": match.buyer.get("id"),
                    "name": match.buyer.get("name"),
                    "email": match.buyer.get("email"),
                    "match_score": match.match_score,
                    "confidence": match.confidence.value,
                    "match_reasons": "; ".join(match.match_reasons)
                })

        columns = ["group_id", "role", "buyer_id", "name", "email",
                   "match_score", "confidence", "match_reasons"]
        pd.DataFrame(rows, columns=columns).to_csv(output_dir / "duplicate_groups.csv", index=False)

        write_matches = self.config.get("output", {}).get("write_matches", True)
        if candidate_result is not None and write_matches:
            match_rows = []
            for match in candidate_result.matches:
                row = match.to_dict()
                row["match_reasons"] = "; ".join(row["match_reasons"])
                match_rows.append(row)
            pd.DataFrame(
                match_rows, columns=["buyer_id", "match_score", "match_reasons", "confidence"]
            ).to_csv(output_dir / "candidate_matches.csv", index=False)

        with open(output_dir / "report.json", "w") as f:
            json.dump(report, f, indent=2, default=str)

        logger.info(f"Results saved to {output_path}")


def configure_logging(config: Dict[str, Any], log_level: Optional[str] = None):
    """
    Configure root logging from the logging section of the configuration.

    Args:
        config: Configuration dictionary
        log_level: Level overriding logging.level (e.g. from --log-level)
    """
    logging_config = config.get("logging", {})
    level = str(log_level or logging_config.get("level", "INFO")).upper()
    if level not in LOG_LEVELS:
        level = "INFO"

    logging.basicConfig(
        level=getattr(logging, level),
        format=logging_config.get("format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
        handlers=[logging.StreamHandler()],
        force=True
    )


def _load_candidate(value: str) -> Dict[str, Any]:
    """Parse a candidate buyer from a JSON string or a JSON file path."""
    candidate_path = Path(value)
    if candidate_path.suffix == ".json" and candidate_path.exists():
        value = candidate_path.read_text()

    candidate = json.loads(value)
    if not isinstance(candidate, dict):
        raise ValueError("Candidate must be a JSON object")
    return candidate


def main():
    """Main entry point for the buyer dedupe pipeline."""
    parser = argparse.ArgumentParser(description="Buyer Deduplication Pipeline")
    parser.add_argument("--input", required=True, help="Buyer export path (.csv or .json lines)")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Configuration file path")
    parser.add_argument("--output", help="Output directory path")
    parser.add_argument("--candidate", help="Candidate buyer as a JSON object or .json file")
    parser.add_argument("--log-level", choices=LOG_LEVELS,
                        help="Overrides logging.level from the configuration")

    args = parser.parse_args()

    configure_logging(load_config(args.config), args.log_level)

    try:
        candidate = _load_candidate(args.candidate) if args.candidate else None

        pipeline = BuyerDedupePipeline(args.config)
        report = pipeline.run_pipeline(
            input_path=args.input,
            output_path=args.output,
            candidate=candidate
        )

        processing = report["data_processing"]
        print("\n" + "=" * 50)
        print("BUYER DEDUPLICATION SUMMARY")
        print("=" * 50)
        print(f"Buyers: {processing['total_records']:,}")
        print(f"Duplicate Groups: {processing['duplicate_groups']:,}")
        print(f"Duplicate Buyers: {processing['duplicate_records']:,}")
        print(f"Buyers After Merge: {processing['records_after_merge']:,}")
        if "candidate" in report:
            print(f"Candidate Is Duplicate: {report['candidate']['is_duplicate']}")
        print(f"Total Duration: {report['pipeline_execution']['total_duration']:.2f} seconds")
        print("=" * 50)

    except Exception as e:
        logger.error(f"Pipeline execution failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
