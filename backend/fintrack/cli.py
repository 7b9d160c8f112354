"""
Export a report from a JSON file of records.

Usage:
    python -m fintrack.cli records.json --format pdf --report-type monthly_summary --preset last_month
    python -m fintrack.cli records.json --format csv --start 2025-01-01 --end 2025-03-31 --no-charts

The JSON file holds {"transactions": [...], "budgets": [...], "goals": [...]}
with an optional "narrative" string rendered into PDF exports.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError

from fintrack.config import settings
from fintrack.exceptions import AppError
from fintrack.schemas.records import BudgetRecord, GoalRecord, TransactionRecord
from fintrack.schemas.reporting import (
    DateRange,
    DateRangePreset,
    ReportConfiguration,
    ReportType,
)
from fintrack.services.date_range_service import date_range_from_preset
from fintrack.services.report_export_service import export_report

logger = logging.getLogger(__name__)


class RecordBundle(BaseModel):
    transactions: List[TransactionRecord] = []
    budgets: List[BudgetRecord] = []
    goals: List[GoalRecord] = []
    narrative: Optional[str] = None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Export a financial report")
    parser.add_argument("records", type=Path, help="JSON file with transactions, budgets and goals")
    parser.add_argument("--format", default="pdf", help="pdf, spreadsheet (excel/xlsx) or csv")
    parser.add_argument(
        "--report-type",
        default=ReportType.MONTHLY_SUMMARY.value,
        choices=[t.value for t in ReportType],
    )
    parser.add_argument(
        "--preset",
        choices=[p.value for p in DateRangePreset if p != DateRangePreset.CUSTOM],
        help="Named date range (default: this_month unless --start/--end are given)",
    )
    parser.add_argument("--start", help="Range start, YYYY-MM-DD")
    parser.add_argument("--end", help="Range end, YYYY-MM-DD")
    parser.add_argument("--no-charts", action="store_true", help="Leave charts out")
    parser.add_argument("--no-summary", action="store_true", help="Leave the summary out")
    parser.add_argument("--no-details", action="store_true", help="Leave the detail table out")
    parser.add_argument("--file-name", help="Output file name (extension added automatically)")
    parser.add_argument("--output-dir", type=Path, default=Path("."), help="Directory to write to")
    return parser


def _resolve_range(args) -> DateRange:
    if args.start or args.end:
        if not (args.start and args.end):
            raise AppError("--start and --end must be given together")
        return DateRange(start=args.start, end=args.end, preset=DateRangePreset.CUSTOM)
    return date_range_from_preset(DateRangePreset(args.preset or DateRangePreset.THIS_MONTH.value))


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        bundle = RecordBundle.model_validate(json.loads(args.records.read_text()))
        config = ReportConfiguration(
            format=args.format,
            report_type=args.report_type,
            date_range=_resolve_range(args),
            include_charts=not args.no_charts,
            include_summary=not args.no_summary,
            include_details=not args.no_details,
            file_name=args.file_name,
        )
    except (OSError, json.JSONDecodeError, SchemaValidationError, AppError) as e:
        logger.error(f"Invalid input: {e}")
        return 1

    result = asyncio.run(export_report(
        config, bundle.transactions, bundle.budgets, bundle.goals, narrative=bundle.narrative,
    ))
    if not result.success:
        logger.error(f"Export failed ({result.error_kind}): {result.error}")
        return 1

    args.output_dir.mkdir(parents=True, exist_ok=True)
    target = args.output_dir / result.filename
    target.write_bytes(result.content)
    if result.omitted_charts:
        logger.warning(f"Charts omitted: {', '.join(result.omitted_charts)}")
    logger.info(f"Wrote {target} ({result.size} bytes)")
    return 0


def run():
    """Console entry point: configure logging and exit with main()'s status."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    sys.exit(main())


if __name__ == "__main__":
    run()
