"""Configuration classes for test suites.

Field names are snake_case in Python; suite files may use the equivalent
camelCase keys (``ignoreFields``, ``maxParallel``, ...).
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class _ConfigModel(BaseModel):
    """Base for configuration models accepting camelCase or snake_case keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


def _check_http_url(value: str) -> str:
    if not value.startswith(("http://", "https://")):
        raise ValueError(f"endpoint must be an http(s) URL, got {value!r}")
    return value


HttpEndpoint = Annotated[str, AfterValidator(_check_http_url)]


class ArrayStrategy(str, Enum):
    """Comparison strategy for arrays of primitives."""

    ORDERED = "ordered"
    UNORDERED = "unordered"


class ComparisonRules(_ConfigModel):
    """Rules controlling how actual output is compared with ground truth."""

    ignore_fields: list[str] = Field(
        default_factory=list,
        description="Field paths excluded from comparison (e.g. 'meta.requestId')",
    )
    array_strategy: ArrayStrategy = Field(
        default=ArrayStrategy.UNORDERED,
        description="How arrays of primitives are compared",
    )
    numeric_tolerance: float = Field(
        default=0.0,
        ge=0.0,
        description="Maximum absolute difference for numbers to be considered equal",
    )
    type_coercion: bool = Field(
        default=True,
        description="Compare numbers with numeric-looking strings by value",
    )
    extra_fields_warning: bool = Field(
        default=True,
        description="Treat extra fields as warnings instead of failures",
    )


class ScoringConfig(_ConfigModel):
    """Penalties applied per missing, mismatched and extra field."""

    missing_field_penalty: float = Field(default=10.0, ge=0.0, le=100.0)
    mismatch_penalty: float = Field(default=5.0, ge=0.0, le=100.0)
    extra_field_penalty: float = Field(default=2.0, ge=0.0, le=100.0)


class ConcurrencySettings(_ConfigModel):
    """Worker pool width and pacing for suite execution."""

    max_parallel: int = Field(
        default=3,
        ge=1,
        description="Maximum number of cases in flight at once",
    )
    delay_between_requests: float = Field(
        default=100.0,
        ge=0.0,
        description="Milliseconds a worker waits after a case before starting the next",
    )
    request_timeout: float = Field(
        default=30.0,
        gt=0.0,
        description="Deadline in seconds for each external call",
    )


# Auth


class NoAuth(_ConfigModel):
    type: Literal["none"] = "none"


class BearerAuth(_ConfigModel):
    """Bearer token read from an environment variable."""

    type: Literal["bearer"] = "bearer"
    token_env: str = Field(description="Environment variable holding the token")


class ApiKeyAuth(_ConfigModel):
    """API key read from an environment variable, sent under a custom header."""

    type: Literal["api-key"] = "api-key"
    key_env: str = Field(description="Environment variable holding the key")
    header_name: str = Field(default="X-API-Key")


Auth = Annotated[NoAuth | BearerAuth | ApiKeyAuth, Field(discriminator="type")]


# Data sources


class FileSource(_ConfigModel):
    type: Literal["file"] = "file"
    path: str


class JsonSource(_ConfigModel):
    """Inline JSON literal, or a file path when ``source`` is a string."""

    type: Literal["json"] = "json"
    source: str | dict[str, Any] | list[Any]


class ApiSource(_ConfigModel):
    type: Literal["api"] = "api"
    endpoint: HttpEndpoint
    method: Literal["GET", "POST"] = "POST"
    body: dict[str, Any] | None = None


DataSource = Annotated[FileSource | JsonSource | ApiSource, Field(discriminator="type")]


class ExecutionTarget(_ConfigModel):
    """The extraction service call made for a case."""

    type: Literal["api", "function"] = "api"
    endpoint: HttpEndpoint | None = None
    method: Literal["GET", "POST"] = "POST"
    function_name: str | None = Field(
        default=None,
        description="Name of a Python callable registered with the orchestrator",
    )

    @model_validator(mode="after")
    def _check_target(self) -> ExecutionTarget:
        if self.type == "api" and not self.endpoint:
            raise ValueError("execution of type 'api' requires an endpoint")
        if self.type == "function" and not self.function_name:
            raise ValueError("execution of type 'function' requires a function_name")
        return self


# Suite


class SuiteInfo(_ConfigModel):
    name: str
    description: str | None = None
    service_version: str | None = None


class SuiteDefaults(_ConfigModel):
    """Suite-level defaults; only explicitly set fields override built-ins."""

    comparison: ComparisonRules | None = None
    scoring: ScoringConfig | None = None


class CaseConfig(_ConfigModel):
    """A single (input, ground truth, service call) evaluation unit."""

    id: str
    description: str | None = None
    input: DataSource
    ground_truth: DataSource
    execution: ExecutionTarget
    comparison: ComparisonRules | None = None
    scoring: ScoringConfig | None = None


class SuiteConfig(_ConfigModel):
    """Root configuration for a test suite."""

    version: str = "1.0.0"
    suite: SuiteInfo
    defaults: SuiteDefaults | None = None
    auth: Auth | None = None
    concurrency: ConcurrencySettings = Field(default_factory=ConcurrencySettings)
    cases: list[CaseConfig]

    @model_validator(mode="after")
    def _check_unique_ids(self) -> SuiteConfig:
        seen: set[str] = set()
        for case in self.cases:
            if case.id in seen:
                raise ValueError(f"duplicate case id: {case.id!r}")
            seen.add(case.id)
        return self


def merge_comparison_rules(*layers: ComparisonRules | None) -> ComparisonRules:
    """Shallow-merge comparison rules over the built-in defaults.

    Layers are applied left to right. Only fields explicitly set on a layer
    replace the accumulated value; list fields are replaced, not concatenated.
    ``None`` layers are skipped.
    """
    merged = ComparisonRules()
    for layer in layers:
        if layer is not None:
            merged = merged.model_copy(update=layer.model_dump(exclude_unset=True))
    return merged


def merge_scoring_config(*layers: ScoringConfig | None) -> ScoringConfig:
    """Shallow-merge scoring configs over the built-in defaults.

    Same override rules as :func:`merge_comparison_rules`.
    """
    merged = ScoringConfig()
    for layer in layers:
        if layer is not None:
            merged = merged.model_copy(update=layer.model_dump(exclude_unset=True))
    return merged
