#!/usr/bin/env python
"""Example: Testing a local extraction function against ground truth.

Runs a two-case suite against an in-process extractor instead of an HTTP
service, then prints a summary and writes a Markdown report.

Features demonstrated:
- Building a suite configuration in code
- Registering sync and async extraction functions
- Per-case comparison rules
- Saving reports

Usage:
    python examples/function_suite.py
    python examples/function_suite.py --output reports/function-suite.md
"""

import argparse
import asyncio
import logging
from pathlib import Path

from dotenv import load_dotenv

from extraction_tester import ConfigLoader, SuiteOrchestrator, SuiteReporter

# Load environment variables
load_dotenv()

DATA_DIR = Path(__file__).parent / "data"


# ============================================================================
# Extractors Under Test
# ============================================================================


def extract_invoice(document: dict) -> dict:
    """A deliberately imperfect invoice extractor."""
    return {
        "invoice_number": document["text"].split()[1],
        "vendor": {"name": "Acme Supplies"},  # country is not extracted
        "total": "1250.00",
        "currency": "EUR",
        "tags": ["q3", "office"],
        "line_items": [
            {"sku": "PAPER-A4", "quantity": 10, "unit_price": 25.0},
            {"sku": "TONER-K", "quantity": 5, "unit_price": 199.0},
        ],
        "confidence": 0.91,
    }


async def extract_receipt(document: dict) -> dict:
    """An async extractor that matches its ground truth."""
    await asyncio.sleep(0.01)
    return {"merchant": "Corner Cafe", "total": 8.4, "items": ["croissant", "espresso"]}


# ============================================================================
# Suite
# ============================================================================


def build_suite() -> dict:
    return {
        "version": "1.0.0",
        "suite": {"name": "Local Function Suite"},
        "defaults": {"comparison": {"numericTolerance": 0.5}},
        "concurrency": {"maxParallel": 2, "delayBetweenRequests": 0},
        "cases": [
            {
                "id": "invoice-001",
                "description": "Two line items, one price off",
                "input": {"type": "json", "source": {"text": "Invoice INV-001 Acme"}},
                "groundTruth": {"type": "file", "path": str(DATA_DIR / "invoice-001.gt.json")},
                "execution": {"type": "function", "functionName": "invoice"},
            },
            {
                "id": "receipt-007",
                "input": {"type": "json", "source": {"text": "Corner Cafe 8.40"}},
                "groundTruth": {"type": "file", "path": str(DATA_DIR / "receipt-007.gt.json")},
                "execution": {"type": "function", "functionName": "receipt"},
                "comparison": {"arrayStrategy": "unordered"},
            },
        ],
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Run a suite against local functions")
    parser.add_argument("--output", type=str, help="Write a Markdown report to this path")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")

    config = ConfigLoader().load_from_dict(build_suite())

    orchestrator = SuiteOrchestrator()
    orchestrator.register_function("invoice", extract_invoice)
    orchestrator.register_function("receipt", extract_receipt)

    result = orchestrator.run_suite_sync(config, preserve_order=True)

    reporter = SuiteReporter(result)
    reporter.print_summary()

    for case in result.cases:
        print(f"{case.case_id}: {case.status.value} ({case.scoring.overall_score:.2f})")
        for mismatch in case.comparison.mismatches:
            print(f"  mismatch {mismatch.path}: {mismatch.ground_truth!r} != {mismatch.actual!r}")
        for missing in case.comparison.missing:
            print(f"  missing  {missing.path}")
        for extra in case.comparison.extra:
            print(f"  extra    {extra.path}")

    if args.output:
        print(f"Report saved: {reporter.save(args.output)}")


if __name__ == "__main__":
    main()
