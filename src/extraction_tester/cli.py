"""Command-line entry point for running extraction test suites."""

import argparse
import json
import logging
import os
import sys
from datetime import datetime
from pathlib import Path

from dotenv import load_dotenv

from extraction_tester.core.exceptions import ConfigurationError
from extraction_tester.core.loader import ConfigLoader
from extraction_tester.core.orchestrator import SuiteOrchestrator
from extraction_tester.evaluation.reporters import SuiteReporter
from extraction_tester.evaluation.schema import infer

logger = logging.getLogger(__name__)

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"

REPORT_EXTENSIONS = {
    "md": (".md", "markdown"),
    "json": (".json", "json"),
}
REPORT_SUFFIXES = {".md", ".markdown", ".json"}

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG_ERROR = 2


def _setup_logging(level: str | None) -> None:
    level_name = (level or os.environ.get("LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(level=level_name, format=LOG_FORMAT)


def _report_path(config_path: Path, output: str | None, extension: str, stamp: str) -> Path:
    """Resolve the output path for one report format."""
    if output:
        path = Path(output)
        if path.suffix.lower() in REPORT_SUFFIXES:
            path = path.with_suffix("")
        return path.with_name(path.name + extension)
    return Path(f"{config_path.stem}-{stamp}{extension}")


def _build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--log-level",
        type=str,
        help="Logging level (default: $LOG_LEVEL or INFO)",
    )

    parser = argparse.ArgumentParser(
        prog="extraction-tester",
        description="Run JSON extraction test suites against ground truth",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", parents=[common], help="Run a test suite")
    run.add_argument(
        "--config",
        required=True,
        help="Path to the suite configuration (.yaml, .yml or .json)",
    )
    run.add_argument(
        "--report",
        type=str,
        default="md",
        help="Comma-separated report formats: md, json (default: md)",
    )
    run.add_argument(
        "--output",
        type=str,
        help="Report output path; a .md or .json suffix is replaced by each format's own",
    )
    run.add_argument(
        "--strict",
        action="store_true",
        help="Exit with status 1 if any case failed",
    )
    run.add_argument(
        "--min-score",
        type=float,
        help="Exit with status 1 if the average overall score is below this value",
    )

    infer_cmd = subparsers.add_parser(
        "infer", parents=[common], help="Print the inferred schema of a JSON file"
    )
    infer_cmd.add_argument("path", help="Path to a ground truth JSON file")

    return parser


def _run(args: argparse.Namespace) -> int:
    config_path = Path(args.config)
    try:
        config = ConfigLoader().load_from_file(config_path)
    except ConfigurationError as e:
        logger.error("Failed to load config: %s", e)
        return EXIT_CONFIG_ERROR
    logger.info("Loaded config: %s", config.suite.name)

    result = SuiteOrchestrator().run_suite_sync(config, preserve_order=True)
    reporter = SuiteReporter(result)

    stamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S")
    for fmt in (f.strip() for f in args.report.split(",")):
        if fmt not in REPORT_EXTENSIONS:
            logger.warning("Unknown report format: %s", fmt)
            continue
        extension, report_format = REPORT_EXTENSIONS[fmt]
        path = reporter.save(
            _report_path(config_path, args.output, extension, stamp),
            format=report_format,
        )
        logger.info("Report saved: %s", path)

    reporter.print_summary()

    if args.strict and result.failed_cases > 0:
        logger.error("%d case(s) failed", result.failed_cases)
        return EXIT_FAILED
    average = result.aggregated_scoring.average_score
    if args.min_score is not None and average < args.min_score:
        logger.error("Average score %.2f is below minimum %.2f", average, args.min_score)
        return EXIT_FAILED
    return EXIT_OK


def _infer(args: argparse.Namespace) -> int:
    try:
        data = json.loads(Path(args.path).read_text())
    except (OSError, ValueError) as e:
        logger.error("Failed to read JSON file %s: %s", args.path, e)
        return EXIT_CONFIG_ERROR

    schema = infer(data)
    fields = [
        {"path": f.path, "type": f.type.value, "is_array": f.is_array}
        for f in schema.fields.values()
    ]
    print(json.dumps({"total_fields": schema.total_fields, "fields": fields}, indent=2))
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    load_dotenv()

    parser = _build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.log_level)

    if args.command == "infer":
        return _infer(args)
    return _run(args)


if __name__ == "__main__":
    sys.exit(main())
