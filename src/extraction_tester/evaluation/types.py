"""Type definitions for comparison, scoring and suite results."""

from collections.abc import Mapping
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class JsonKind(str, Enum):
    """The kind of a decoded JSON value."""

    NULL = "null"
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"

    @property
    def is_container(self) -> bool:
        return self in (JsonKind.ARRAY, JsonKind.OBJECT)


def json_kind(value: Any) -> JsonKind:
    """Classify a decoded JSON value.

    ``bool`` is checked before numbers since it subclasses ``int``.

    Raises:
        TypeError: If the value is not a JSON value.
    """
    if value is None:
        return JsonKind.NULL
    if isinstance(value, bool):
        return JsonKind.BOOLEAN
    if isinstance(value, (int, float)):
        return JsonKind.NUMBER
    if isinstance(value, str):
        return JsonKind.STRING
    if isinstance(value, (list, tuple)):
        return JsonKind.ARRAY
    if isinstance(value, Mapping):
        return JsonKind.OBJECT
    raise TypeError(f"Not a JSON value: {type(value).__name__}")


class MismatchKind(str, Enum):
    """Why a field's actual value differs from ground truth."""

    VALUE = "value"
    TYPE = "type"  # Container kinds differ; recursion stops here
    NUMERIC = "numeric"  # Numbers differ by more than the tolerance


class CaseStatus(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    WARNING = "warning"


class _ResultModel(BaseModel):
    model_config = ConfigDict(frozen=True)


# Comparison


class FieldMismatch(_ResultModel):
    path: str = Field(description="Field path, e.g. 'items[0].price'")
    ground_truth: Any = Field(description="Value in ground truth")
    actual: Any = Field(description="Value in actual output")
    kind: MismatchKind


class MissingField(_ResultModel):
    path: str
    expected_value: Any


class ExtraField(_ResultModel):
    path: str
    value: Any


class ComparisonWarning(_ResultModel):
    path: str
    message: str


class ComparisonResult(_ResultModel):
    """Structural diff between ground truth and actual output.

    ``passed`` is False when anything is mismatched or missing, or when extra
    fields exist and extra fields are not being treated as warnings.
    """

    passed: bool
    matched_paths: list[str] = Field(
        default_factory=list,
        description="Ground truth leaf paths whose actual value matched",
    )
    mismatches: list[FieldMismatch] = Field(default_factory=list)
    missing: list[MissingField] = Field(default_factory=list)
    extra: list[ExtraField] = Field(default_factory=list)
    warnings: list[ComparisonWarning] = Field(default_factory=list)


# Scoring


class FieldScore(_ResultModel):
    """Informational per-field score; not used by the aggregate formulas."""

    field: str
    score: float = Field(ge=0.0, le=100.0)
    penalty: float = Field(ge=0.0)
    reason: str | None = None


class ScoreBreakdown(_ResultModel):
    total_fields: int = 0
    matched_fields: int = 0
    missing_fields: int = 0
    mismatched_fields: int = 0
    extra_fields: int = 0


class ScoringResult(_ResultModel):
    """Penalty-based scores for a single comparison.

    ``extra_field_score`` is a rate: higher means more unexpected fields,
    unlike the other three scores where higher is better.
    """

    overall_score: float = Field(ge=0.0, le=100.0)
    completeness_score: float = Field(ge=0.0, le=100.0)
    accuracy_score: float = Field(ge=0.0, le=100.0)
    extra_field_score: float = Field(ge=0.0, le=100.0)
    field_scores: list[FieldScore] = Field(default_factory=list)
    breakdown: ScoreBreakdown = Field(default_factory=ScoreBreakdown)


# Execution


class CaseError(_ResultModel):
    message: str
    code: str = "EXECUTION_ERROR"
    error_type: str | None = Field(
        default=None,
        description="Class name of the exception that failed the case",
    )


class CaseResult(_ResultModel):
    """Outcome of running one case end to end."""

    case_id: str
    description: str | None = None
    status: CaseStatus
    executed_at: datetime
    comparison: ComparisonResult
    scoring: ScoringResult
    execution_time_ms: float = Field(ge=0.0)
    inferred_field_count: int = Field(
        default=0,
        description="Number of fields inferred from the ground truth",
    )
    error: CaseError | None = None


class AggregatedScoring(_ResultModel):
    average_score: float = 0.0
    average_completeness: float = 0.0
    average_accuracy: float = 0.0


class SuiteResult(_ResultModel):
    """Aggregate outcome of a suite run.

    ``cases`` is in completion order unless the run restored input order.
    """

    suite_id: str
    suite_name: str
    version: str
    service_version: str | None = None
    executed_at: datetime
    total_cases: int
    passed_cases: int = 0
    failed_cases: int = 0
    warning_cases: int = 0
    cases: list[CaseResult] = Field(default_factory=list)
    aggregated_scoring: AggregatedScoring = Field(default_factory=AggregatedScoring)
    total_execution_time_ms: float = 0.0

    @property
    def pass_rate(self) -> float:
        """Percentage of cases that passed (0-100)."""
        if self.total_cases == 0:
            return 0.0
        return self.passed_cases / self.total_cases * 100
