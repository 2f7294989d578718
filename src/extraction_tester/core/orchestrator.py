"""Suite orchestration: run every case through fetch, invoke, compare and score."""

from __future__ import annotations

import asyncio
import inspect
import logging
import re
import time
from collections.abc import Callable
from datetime import datetime
from typing import Any

from extraction_tester.core.config import (
    CaseConfig,
    SuiteConfig,
    merge_comparison_rules,
    merge_scoring_config,
)
from extraction_tester.core.exceptions import ServiceInvocationError
from extraction_tester.core.fetcher import DataFetcher
from extraction_tester.evaluation.comparator import JsonComparator
from extraction_tester.evaluation.schema import SchemaInferrer
from extraction_tester.evaluation.scorer import Scorer, round_half_up
from extraction_tester.evaluation.types import (
    AggregatedScoring,
    CaseError,
    CaseResult,
    CaseStatus,
    ComparisonResult,
    ScoringResult,
    SuiteResult,
)

logger = logging.getLogger(__name__)

# A registered extractor: takes the case input, returns the extracted JSON.
# May be a plain function or a coroutine function.
ExtractionFunction = Callable[[Any], Any]


def slugify(name: str) -> str:
    """Lowercase a suite name and replace whitespace runs with '-'."""
    return re.sub(r"\s+", "-", name.lower())


class SuiteAggregator:
    """Order-independent running totals over case results.

    Each result must be added exactly once; the totals do not depend on the
    order in which results arrive.
    """

    def __init__(self) -> None:
        self.passed = 0
        self.failed = 0
        self.warning = 0
        self._count = 0
        self._score_sum = 0.0
        self._completeness_sum = 0.0
        self._accuracy_sum = 0.0

    def add(self, result: CaseResult) -> None:
        if result.status == CaseStatus.PASSED:
            self.passed += 1
        elif result.status == CaseStatus.FAILED:
            self.failed += 1
        else:
            self.warning += 1

        self._count += 1
        self._score_sum += result.scoring.overall_score
        self._completeness_sum += result.scoring.completeness_score
        self._accuracy_sum += result.scoring.accuracy_score

    @property
    def count(self) -> int:
        return self._count

    def averages(self) -> AggregatedScoring:
        if self._count == 0:
            return AggregatedScoring()
        return AggregatedScoring(
            average_score=round_half_up(self._score_sum / self._count),
            average_completeness=round_half_up(self._completeness_sum / self._count),
            average_accuracy=round_half_up(self._accuracy_sum / self._count),
        )


class SuiteOrchestrator:
    """Runs a test suite with bounded concurrency.

    At most ``concurrency.max_parallel`` cases are in flight at once. A case
    that raises becomes a failed result; it never aborts its siblings.

    Example:
        ```python
        config = ConfigLoader().load_from_file("suite.yaml")
        orchestrator = SuiteOrchestrator(functions={"extract_invoice": my_extractor})
        result = orchestrator.run_suite_sync(config)
        print(f"{result.passed_cases}/{result.total_cases} passed")
        ```
    """

    def __init__(
        self,
        fetcher: DataFetcher | None = None,
        functions: dict[str, ExtractionFunction] | None = None,
        comparator: JsonComparator | None = None,
        scorer: Scorer | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            fetcher: Data fetcher and service client. Built per suite from
                the suite's request timeout if not provided.
            functions: Extraction functions addressable by ``function`` targets.
            comparator: Comparator instance. Default JsonComparator.
            scorer: Scorer instance. Default Scorer.
        """
        self.fetcher = fetcher
        self.functions = dict(functions or {})
        self.comparator = comparator or JsonComparator()
        self.scorer = scorer or Scorer()
        self.inferrer = SchemaInferrer()

    def register_function(self, name: str, function: ExtractionFunction) -> None:
        """Register an extraction function for ``function`` execution targets."""
        self.functions[name] = function

    def run_suite_sync(self, config: SuiteConfig, preserve_order: bool = False) -> SuiteResult:
        """Synchronous wrapper around :meth:`run_suite`."""
        return asyncio.run(self.run_suite(config, preserve_order=preserve_order))

    async def run_suite(self, config: SuiteConfig, preserve_order: bool = False) -> SuiteResult:
        """Run every case of a suite.

        Args:
            config: Validated suite configuration.
            preserve_order: If True, results follow the configured case order
                instead of completion order.

        Returns:
            SuiteResult with per-case results and aggregated scoring.
        """
        executed_at = datetime.now()
        start_time = time.perf_counter()
        logger.info(
            "Starting test suite: %s (%d cases, max_parallel=%d)",
            config.suite.name,
            len(config.cases),
            config.concurrency.max_parallel,
        )

        fetcher = self.fetcher or DataFetcher(timeout=config.concurrency.request_timeout)
        aggregator = SuiteAggregator()
        results = await self._run_pool(config, fetcher, aggregator)

        if preserve_order:
            position = {case.id: i for i, case in enumerate(config.cases)}
            results.sort(key=lambda r: position[r.case_id])

        total_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "Test suite completed: %d passed, %d failed, %d warnings in %.0fms",
            aggregator.passed,
            aggregator.failed,
            aggregator.warning,
            total_ms,
        )

        return SuiteResult(
            suite_id=slugify(config.suite.name),
            suite_name=config.suite.name,
            version=config.version,
            service_version=config.suite.service_version,
            executed_at=executed_at,
            total_cases=len(config.cases),
            passed_cases=aggregator.passed,
            failed_cases=aggregator.failed,
            warning_cases=aggregator.warning,
            cases=results,
            aggregated_scoring=aggregator.averages(),
            total_execution_time_ms=total_ms,
        )

    async def _run_pool(
        self,
        config: SuiteConfig,
        fetcher: DataFetcher,
        aggregator: SuiteAggregator,
    ) -> list[CaseResult]:
        """Drain the case queue with a fixed number of workers."""
        queue: asyncio.Queue[CaseConfig] = asyncio.Queue()
        for case in config.cases:
            queue.put_nowait(case)

        delay = config.concurrency.delay_between_requests / 1000
        results: list[CaseResult] = []

        async def worker() -> None:
            while True:
                try:
                    case = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                result = await self.run_case(case, config, fetcher)
                results.append(result)
                aggregator.add(result)
                if delay > 0 and not queue.empty():
                    await asyncio.sleep(delay)

        worker_count = min(config.concurrency.max_parallel, len(config.cases))
        await asyncio.gather(*(worker() for _ in range(worker_count)))
        return results

    async def run_case(
        self,
        case: CaseConfig,
        config: SuiteConfig,
        fetcher: DataFetcher | None = None,
    ) -> CaseResult:
        """Run a single case end to end.

        Never raises for case-level failures: any error becomes a failed
        CaseResult with code ``EXECUTION_ERROR``.
        """
        fetcher = fetcher or self.fetcher or DataFetcher(
            timeout=config.concurrency.request_timeout
        )
        executed_at = datetime.now()
        start_time = time.perf_counter()
        logger.info("Running test case: %s", case.id)

        try:
            defaults = config.defaults
            rules = merge_comparison_rules(
                defaults.comparison if defaults else None, case.comparison
            )
            scoring_config = merge_scoring_config(
                defaults.scoring if defaults else None, case.scoring
            )

            input_data = await fetcher.fetch(case.input, config.auth)
            ground_truth = await fetcher.fetch(case.ground_truth, config.auth)
            output = await self._execute(case, input_data, config, fetcher)

            comparison = self.comparator.compare(ground_truth, output, rules)
            scoring = self.scorer.score(comparison, scoring_config)
            inferred = self.inferrer.infer(ground_truth)
        except Exception as e:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.error("Case %s execution error: %s", case.id, str(e))
            return self._failed_result(case, e, executed_at, elapsed_ms)

        if not comparison.passed:
            status = CaseStatus.FAILED
        elif comparison.warnings:
            status = CaseStatus.WARNING
        else:
            status = CaseStatus.PASSED

        return CaseResult(
            case_id=case.id,
            description=case.description,
            status=status,
            executed_at=executed_at,
            comparison=comparison,
            scoring=scoring,
            execution_time_ms=(time.perf_counter() - start_time) * 1000,
            inferred_field_count=inferred.total_fields,
        )

    async def _execute(
        self,
        case: CaseConfig,
        input_data: Any,
        config: SuiteConfig,
        fetcher: DataFetcher,
    ) -> Any:
        """Call the service under test for one case.

        Function targets run under ``request_timeout``. A timed-out coroutine
        is cancelled, but a sync function keeps running in its worker thread
        after the case is marked failed; sync extractors should enforce their
        own deadline.
        """
        target = case.execution
        if target.type == "api":
            return await fetcher.invoke(target.endpoint, target.method, input_data, config.auth)

        function = self.functions.get(target.function_name)
        if function is None:
            raise ServiceInvocationError(
                f"No extraction function registered as {target.function_name!r}"
            )

        timeout = config.concurrency.request_timeout
        if inspect.iscoroutinefunction(function):
            call = function(input_data)
        else:
            call = asyncio.to_thread(function, input_data)
        try:
            return await asyncio.wait_for(call, timeout=timeout)
        except asyncio.TimeoutError as e:
            raise ServiceInvocationError(
                f"Function {target.function_name!r} timed out after {timeout}s"
            ) from e

    def _failed_result(
        self,
        case: CaseConfig,
        error: Exception,
        executed_at: datetime,
        elapsed_ms: float,
    ) -> CaseResult:
        return CaseResult(
            case_id=case.id,
            description=case.description,
            status=CaseStatus.FAILED,
            executed_at=executed_at,
            comparison=ComparisonResult(passed=False),
            scoring=ScoringResult(
                overall_score=0.0,
                completeness_score=0.0,
                accuracy_score=0.0,
                extra_field_score=0.0,
            ),
            execution_time_ms=elapsed_ms,
            error=CaseError(
                message=str(error) or "Unknown error",
                error_type=type(error).__name__,
            ),
        )
