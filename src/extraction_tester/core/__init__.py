"""Core suite configuration, data fetching and orchestration."""

from extraction_tester.core.config import (
    ApiKeyAuth,
    ApiSource,
    ArrayStrategy,
    BearerAuth,
    CaseConfig,
    ComparisonRules,
    ConcurrencySettings,
    ExecutionTarget,
    FileSource,
    JsonSource,
    NoAuth,
    ScoringConfig,
    SuiteConfig,
    SuiteDefaults,
    SuiteInfo,
    merge_comparison_rules,
    merge_scoring_config,
)
from extraction_tester.core.exceptions import (
    ConfigurationError,
    CredentialError,
    DataFetchError,
    ExtractionTesterError,
    ServiceInvocationError,
)
from extraction_tester.core.fetcher import DataFetcher, build_auth_headers
from extraction_tester.core.loader import ConfigLoader
from extraction_tester.core.orchestrator import SuiteAggregator, SuiteOrchestrator

__all__ = [
    # Config
    "ArrayStrategy",
    "ComparisonRules",
    "ScoringConfig",
    "ConcurrencySettings",
    "NoAuth",
    "BearerAuth",
    "ApiKeyAuth",
    "FileSource",
    "JsonSource",
    "ApiSource",
    "ExecutionTarget",
    "SuiteInfo",
    "SuiteDefaults",
    "CaseConfig",
    "SuiteConfig",
    "merge_comparison_rules",
    "merge_scoring_config",
    "ConfigLoader",
    # Exceptions
    "ExtractionTesterError",
    "ConfigurationError",
    "CredentialError",
    "DataFetchError",
    "ServiceInvocationError",
    # Execution
    "DataFetcher",
    "build_auth_headers",
    "SuiteAggregator",
    "SuiteOrchestrator",
]
