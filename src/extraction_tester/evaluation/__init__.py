"""Evaluation module for extraction-tester.

This module compares a service's JSON output with ground truth and turns
the structural diff into scores and reports.

Example:
    ```python
    from extraction_tester.core.config import ComparisonRules
    from extraction_tester.evaluation import SchemaInferrer, compare, score

    ground_truth = {"invoice_number": "INV-001", "total": 1250.0}
    output = {"invoice_number": "INV-001", "total": "1250"}

    comparison = compare(ground_truth, output, ComparisonRules(numeric_tolerance=0.01))
    scoring = score(comparison)

    print(comparison.passed, scoring.overall_score)
    print(SchemaInferrer().infer(ground_truth).field_paths())
    ```
"""

# Comparison
from extraction_tester.evaluation.comparator import JsonComparator, compare

# Reporters
from extraction_tester.evaluation.reporters import SuiteReporter

# Schema inference
from extraction_tester.evaluation.schema import (
    InferredSchema,
    SchemaField,
    SchemaInferrer,
    infer,
)

# Scoring
from extraction_tester.evaluation.scorer import Scorer, round_half_up, score

# Types
from extraction_tester.evaluation.types import (
    AggregatedScoring,
    CaseError,
    CaseResult,
    CaseStatus,
    ComparisonResult,
    ComparisonWarning,
    ExtraField,
    FieldMismatch,
    FieldScore,
    JsonKind,
    MismatchKind,
    MissingField,
    ScoreBreakdown,
    ScoringResult,
    SuiteResult,
    json_kind,
)

__all__ = [
    # Types
    "JsonKind",
    "json_kind",
    "MismatchKind",
    "CaseStatus",
    "FieldMismatch",
    "MissingField",
    "ExtraField",
    "ComparisonWarning",
    "ComparisonResult",
    "FieldScore",
    "ScoreBreakdown",
    "ScoringResult",
    "CaseError",
    "CaseResult",
    "AggregatedScoring",
    "SuiteResult",
    # Schema inference
    "SchemaField",
    "InferredSchema",
    "SchemaInferrer",
    "infer",
    # Comparison
    "JsonComparator",
    "compare",
    # Scoring
    "Scorer",
    "score",
    "round_half_up",
    # Reporters
    "SuiteReporter",
]
