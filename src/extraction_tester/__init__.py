"""
extraction-tester: Ground-truth testing for JSON extraction services.
"""

from extraction_tester.core.config import (
    ArrayStrategy,
    CaseConfig,
    ComparisonRules,
    ConcurrencySettings,
    ScoringConfig,
    SuiteConfig,
)
from extraction_tester.core.exceptions import (
    ConfigurationError,
    CredentialError,
    DataFetchError,
    ExtractionTesterError,
    ServiceInvocationError,
)
from extraction_tester.core.fetcher import DataFetcher
from extraction_tester.core.loader import ConfigLoader
from extraction_tester.core.orchestrator import SuiteOrchestrator

# Evaluation
from extraction_tester.evaluation import (
    CaseResult,
    CaseStatus,
    ComparisonResult,
    InferredSchema,
    JsonComparator,
    SchemaInferrer,
    Scorer,
    ScoringResult,
    SuiteReporter,
    SuiteResult,
    compare,
    infer,
    score,
)

__version__ = "0.1.0"

__all__ = [
    # Core
    "ConfigLoader",
    "DataFetcher",
    "SuiteOrchestrator",
    "ExtractionTesterError",
    "ConfigurationError",
    "CredentialError",
    "DataFetchError",
    "ServiceInvocationError",
    # Config
    "ArrayStrategy",
    "ComparisonRules",
    "ScoringConfig",
    "ConcurrencySettings",
    "CaseConfig",
    "SuiteConfig",
    # Evaluation
    "SchemaInferrer",
    "InferredSchema",
    "infer",
    "JsonComparator",
    "compare",
    "Scorer",
    "score",
    "ComparisonResult",
    "ScoringResult",
    "CaseStatus",
    "CaseResult",
    "SuiteResult",
    "SuiteReporter",
]
