"""Suite reporters for generating reports in various formats."""

import json
from datetime import datetime
from pathlib import Path
from typing import Any

from extraction_tester.evaluation.types import CaseResult, CaseStatus, SuiteResult

STATUS_ICONS = {
    CaseStatus.PASSED: "✅",
    CaseStatus.WARNING: "⚠️",
    CaseStatus.FAILED: "❌",
}

VALUE_PREVIEW_LENGTH = 50


def _preview(value: Any, length: int = VALUE_PREVIEW_LENGTH) -> str:
    """Compact JSON rendering of a value, truncated for table cells."""
    text = json.dumps(value, default=str, ensure_ascii=False)
    if len(text) > length:
        return text[:length] + "..."
    return text


class SuiteReporter:
    """Generate suite reports in various formats.

    Supports text, JSON, and Markdown output formats.

    Example:
        ```python
        result = SuiteOrchestrator().run_suite_sync(config)

        reporter = SuiteReporter(result)
        reporter.save("report.md")  # Auto-detects format from extension

        # Or get report as string
        print(reporter.to_text())
        ```
    """

    def __init__(self, result: SuiteResult, title: str | None = None) -> None:
        """Initialize the reporter.

        Args:
            result: Result of a suite run.
            title: Title for the report. Defaults to one built from the suite name.
        """
        self.result = result
        self.title = title or f"Test Suite Report: {result.suite_name}"

    def to_text(self) -> str:
        """Generate a plain text report."""
        result = self.result
        scoring = result.aggregated_scoring
        lines = [
            "=" * 70,
            f"  {self.title}",
            "=" * 70,
            f"  Executed: {result.executed_at.isoformat()}",
            "",
            "-" * 70,
            "  SUMMARY",
            "-" * 70,
            f"  Total Cases:          {result.total_cases}",
            f"  Passed:               {result.passed_cases}",
            f"  Failed:               {result.failed_cases}",
            f"  Warnings:             {result.warning_cases}",
            f"  Pass Rate:            {result.pass_rate:.2f}%",
            f"  Execution Time:       {result.total_execution_time_ms:.0f} ms",
            "",
            "-" * 70,
            "  AGGREGATED SCORES",
            "-" * 70,
            f"  Overall:              {scoring.average_score:.2f}/100",
            f"  Completeness:         {scoring.average_completeness:.2f}/100",
            f"  Accuracy:             {scoring.average_accuracy:.2f}/100",
        ]

        if result.cases:
            lines.extend([
                "",
                "-" * 70,
                "  CASES",
                "-" * 70,
            ])
            for case in result.cases:
                lines.append(
                    f"  [{case.status.value.upper():7}] {case.case_id:24} "
                    f"score={case.scoring.overall_score:.2f} "
                    f"({case.execution_time_ms:.0f} ms)"
                )
                if case.error:
                    lines.append(f"            error: {case.error.message}")

        lines.extend(["", "=" * 70])
        return "\n".join(lines)

    def to_json(self) -> dict[str, Any]:
        """Generate a JSON-serializable report dictionary.

        Returns:
            The suite result as plain JSON types, plus a ``generated`` timestamp.
        """
        report = {
            "title": self.title,
            "generated": datetime.now().isoformat(),
        }
        report.update(self.result.model_dump(mode="json"))
        return report

    def to_markdown(self) -> str:
        """Generate a Markdown report."""
        result = self.result
        scoring = result.aggregated_scoring
        lines = [
            f"# {self.title}",
            "",
            f"**Executed**: {result.executed_at.isoformat()}",
            f"**Config Version**: {result.version}",
        ]
        if result.service_version:
            lines.append(f"**Service Version**: {result.service_version}")

        lines.extend([
            "",
            "---",
            "",
            "## Summary",
            "",
            "| Metric | Value |",
            "|--------|-------|",
            f"| Total Cases | {result.total_cases} |",
            f"| Passed | ✅ {result.passed_cases} |",
            f"| Failed | ❌ {result.failed_cases} |",
            f"| Warnings | ⚠️ {result.warning_cases} |",
            f"| Pass Rate | {result.pass_rate:.2f}% |",
            f"| Total Execution Time | {result.total_execution_time_ms:.0f}ms |",
            "",
            "---",
            "",
            "## Aggregated Scores",
            "",
            "| Score Type | Value |",
            "|------------|-------|",
            f"| Overall Score | {scoring.average_score:.2f}/100 |",
            f"| Completeness Score | {scoring.average_completeness:.2f}/100 |",
            f"| Accuracy Score | {scoring.average_accuracy:.2f}/100 |",
            "",
            "---",
            "",
            "## Test Cases",
            "",
        ])

        for case in result.cases:
            lines.extend(self._case_markdown(case))
            lines.append("")

        return "\n".join(lines)

    def _case_markdown(self, case: CaseResult) -> list[str]:
        lines = [f"### Case: {case.case_id}", ""]
        if case.description:
            lines.extend([f"**Description**: {case.description}", ""])

        lines.extend([
            f"**Status**: {STATUS_ICONS[case.status]} {case.status.value.upper()}",
            f"**Execution Time**: {case.execution_time_ms:.0f}ms",
            "",
        ])

        if case.error:
            lines.extend([f"**Error** ({case.error.code}): {case.error.message}", ""])
            return lines

        scoring = case.scoring
        breakdown = scoring.breakdown
        lines.extend([
            "#### Scores",
            "",
            "| Metric | Value |",
            "|--------|-------|",
            f"| Overall Score | {scoring.overall_score:.2f}/100 |",
            f"| Completeness Score | {scoring.completeness_score:.2f}/100 |",
            f"| Accuracy Score | {scoring.accuracy_score:.2f}/100 |",
            f"| Extra Fields Score | {scoring.extra_field_score:.2f}/100 |",
            "",
            "#### Field Breakdown",
            "",
            "| Metric | Count |",
            "|--------|-------|",
            f"| Total Fields | {breakdown.total_fields} |",
            f"| Matched Fields | ✅ {breakdown.matched_fields} |",
            f"| Missing Fields | ❌ {breakdown.missing_fields} |",
            f"| Mismatched Fields | ⚠️ {breakdown.mismatched_fields} |",
            f"| Extra Fields | 🔷 {breakdown.extra_fields} |",
            "",
        ])

        comparison = case.comparison
        if comparison.mismatches:
            lines.extend([
                "#### Mismatches",
                "",
                "| Field | Ground Truth | Actual | Type |",
                "|-------|--------------|--------|------|",
            ])
            for mismatch in comparison.mismatches:
                lines.append(
                    f"| {mismatch.path} | `{_preview(mismatch.ground_truth)}` | "
                    f"`{_preview(mismatch.actual)}` | {mismatch.kind.value} |"
                )
            lines.append("")

        if comparison.missing:
            lines.extend([
                "#### Missing Fields",
                "",
                "| Field | Expected Value |",
                "|-------|----------------|",
            ])
            for missing in comparison.missing:
                lines.append(f"| {missing.path} | `{_preview(missing.expected_value)}` |")
            lines.append("")

        if comparison.extra:
            lines.extend([
                "#### Extra Fields",
                "",
                "| Field | Value |",
                "|-------|-------|",
            ])
            for extra in comparison.extra:
                lines.append(f"| {extra.path} | `{_preview(extra.value)}` |")
            lines.append("")

        if comparison.warnings:
            lines.extend(["#### Warnings", ""])
            for warning in comparison.warnings:
                lines.append(f"- **{warning.path}**: {warning.message}")
            lines.append("")

        return lines

    def save(self, path: str | Path, format: str = "auto") -> Path:
        """Save the report to a file.

        Args:
            path: Output file path.
            format: Output format ("text", "json", "markdown", or "auto").
                   "auto" detects from file extension.

        Returns:
            The path written.
        """
        path = Path(path)

        # Auto-detect format from extension
        if format == "auto":
            suffix = path.suffix.lower()
            if suffix == ".json":
                format = "json"
            elif suffix in (".md", ".markdown"):
                format = "markdown"
            else:
                format = "text"

        if format == "json":
            content = json.dumps(self.to_json(), indent=2, ensure_ascii=False)
        elif format == "markdown":
            content = self.to_markdown()
        else:
            content = self.to_text()

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    def print_summary(self) -> None:
        """Print a concise summary to stdout."""
        result = self.result
        scoring = result.aggregated_scoring
        print(f"\n{'=' * 50}")
        print(f"  {self.title}")
        print(f"{'=' * 50}")
        print(f"  Cases:       {result.total_cases}")
        print(f"  Passed:      {result.passed_cases}")
        print(f"  Failed:      {result.failed_cases}")
        print(f"  Warnings:    {result.warning_cases}")
        print(f"  Pass Rate:   {result.pass_rate:.2f}%")
        print()
        print("  Average Scores:")
        print(f"    Overall:      {scoring.average_score:.2f}")
        print(f"    Completeness: {scoring.average_completeness:.2f}")
        print(f"    Accuracy:     {scoring.average_accuracy:.2f}")
        print(f"{'=' * 50}\n")
