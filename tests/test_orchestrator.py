"""Tests for suite orchestration."""

import asyncio
import threading
from datetime import datetime
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest

from extraction_tester.core.config import JsonSource, SuiteConfig
from extraction_tester.core.exceptions import ServiceInvocationError
from extraction_tester.core.fetcher import DataFetcher
from extraction_tester.core.orchestrator import SuiteAggregator, SuiteOrchestrator, slugify
from extraction_tester.evaluation import (
    CaseResult,
    CaseStatus,
    ComparisonResult,
    ScoringResult,
)

# ============================================================================
# Fixtures
# ============================================================================


class FakeFetcher:
    """Fetcher double: inline sources only, canned service outputs per case id."""

    def __init__(self, outputs: dict[str, Any], delays: dict[str, float] | None = None):
        self.outputs = outputs
        self.delays = delays or {}
        self.in_flight = 0
        self.max_in_flight = 0
        self.invoked: list[str] = []

    async def fetch(self, source, auth=None):
        assert isinstance(source, JsonSource)
        return source.source

    async def invoke(self, endpoint, method, payload, auth=None):
        case_id = endpoint.rsplit("/", 1)[-1]
        self.invoked.append(case_id)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            delay = self.delays.get(case_id, 0)
            if delay:
                await asyncio.sleep(delay)
            output = self.outputs[case_id]
            if isinstance(output, Exception):
                raise output
            return output
        finally:
            self.in_flight -= 1


def _case(case_id: str, ground_truth: Any, **overrides) -> dict:
    case = {
        "id": case_id,
        "input": {"type": "json", "source": {"document": f"doc {case_id}"}},
        "groundTruth": {"type": "json", "source": ground_truth},
        "execution": {"type": "api", "endpoint": f"https://svc.local/{case_id}"},
    }
    case.update(overrides)
    return case


def _suite(cases: list[dict], **overrides) -> SuiteConfig:
    data = {
        "suite": {"name": "Invoice Extraction", "serviceVersion": "1.0"},
        "concurrency": {"maxParallel": 3, "delayBetweenRequests": 0},
        "cases": cases,
    }
    data.update(overrides)
    return SuiteConfig.model_validate(data)


def _result(case_id: str, status: CaseStatus, overall: float) -> CaseResult:
    return CaseResult(
        case_id=case_id,
        status=status,
        executed_at=datetime.now(),
        comparison=ComparisonResult(passed=status != CaseStatus.FAILED),
        scoring=ScoringResult(
            overall_score=overall,
            completeness_score=overall,
            accuracy_score=overall,
            extra_field_score=0.0,
        ),
        execution_time_ms=1.0,
    )


# ============================================================================
# Suite Runs
# ============================================================================


class TestRunSuite:
    """Tests for SuiteOrchestrator.run_suite."""

    @pytest.mark.asyncio
    async def test_all_cases_pass(self):
        """Test a clean run aggregates passing results."""
        fetcher = FakeFetcher({"a": {"total": 10}, "b": {"total": 20}})
        config = _suite([_case("a", {"total": 10}), _case("b", {"total": 20})])

        result = await SuiteOrchestrator(fetcher=fetcher).run_suite(config)

        assert result.total_cases == 2
        assert result.passed_cases == 2
        assert result.failed_cases == 0
        assert result.warning_cases == 0
        assert {c.case_id for c in result.cases} == {"a", "b"}
        assert result.aggregated_scoring.average_score == 100.0
        assert result.pass_rate == 100.0
        assert result.suite_id == "invoice-extraction"
        assert result.service_version == "1.0"
        assert result.total_execution_time_ms >= 0

    @pytest.mark.asyncio
    async def test_statuses(self):
        """Test passed, warning and failed statuses."""
        fetcher = FakeFetcher(
            {
                "ok": {"tags": ["a", "b"]},
                "reordered": {"tags": ["b", "a"]},
                "missing": {},
                "extra": {"tags": ["a", "b"], "note": "x"},
            }
        )
        gt = {"tags": ["a", "b"]}
        config = _suite(
            [_case("ok", gt), _case("reordered", gt), _case("missing", gt), _case("extra", gt)]
        )

        result = await SuiteOrchestrator(fetcher=fetcher).run_suite(config, preserve_order=True)
        statuses = {c.case_id: c.status for c in result.cases}

        assert statuses == {
            "ok": CaseStatus.PASSED,
            "reordered": CaseStatus.WARNING,
            "missing": CaseStatus.FAILED,
            "extra": CaseStatus.PASSED,
        }
        assert (result.passed_cases, result.warning_cases, result.failed_cases) == (2, 1, 1)

    @pytest.mark.asyncio
    async def test_bounded_concurrency(self):
        """Test no more than max_parallel cases are in flight."""
        ids = [f"c{i}" for i in range(10)]
        fetcher = FakeFetcher(
            {i: {"v": 1} for i in ids},
            delays={i: 0.01 for i in ids},
        )
        config = _suite([_case(i, {"v": 1}) for i in ids])

        result = await SuiteOrchestrator(fetcher=fetcher).run_suite(config)

        assert fetcher.max_in_flight == 3
        assert len(result.cases) == 10
        assert sorted(fetcher.invoked) == sorted(ids)

    @pytest.mark.asyncio
    async def test_fewer_cases_than_workers(self):
        """Test a pool wider than the suite still runs every case once."""
        fetcher = FakeFetcher({"only": {"v": 1}})
        config = _suite([_case("only", {"v": 1})], concurrency={"maxParallel": 8})

        result = await SuiteOrchestrator(fetcher=fetcher).run_suite(config)

        assert fetcher.invoked == ["only"]
        assert result.total_cases == 1

    @pytest.mark.asyncio
    async def test_fault_isolation(self):
        """Test a failing case does not affect its siblings."""
        fetcher = FakeFetcher(
            {
                "a": {"v": 1},
                "boom": ServiceInvocationError("Service returned HTTP 500", status_code=500),
                "c": {"v": 1},
                "crash": RuntimeError("unexpected"),
            }
        )
        config = _suite([_case(i, {"v": 1}) for i in ("a", "boom", "c", "crash")])

        result = await SuiteOrchestrator(fetcher=fetcher).run_suite(config, preserve_order=True)
        by_id = {c.case_id: c for c in result.cases}

        assert len(result.cases) == 4
        assert by_id["a"].status == CaseStatus.PASSED
        assert by_id["c"].status == CaseStatus.PASSED

        failed = by_id["boom"]
        assert failed.status == CaseStatus.FAILED
        assert failed.error.code == "EXECUTION_ERROR"
        assert failed.error.error_type == "ServiceInvocationError"
        assert "HTTP 500" in failed.error.message
        assert failed.comparison.passed is False
        assert failed.scoring.overall_score == 0.0
        assert failed.scoring.breakdown.total_fields == 0

        assert by_id["crash"].error.error_type == "RuntimeError"
        assert result.failed_cases == 2
        assert result.aggregated_scoring.average_score == 50.0

    @pytest.mark.asyncio
    async def test_preserve_order(self):
        """Test results follow completion order unless order is preserved."""
        outputs = {"slow": {"v": 1}, "fast": {"v": 1}}
        delays = {"slow": 0.05}
        config = _suite([_case("slow", {"v": 1}), _case("fast", {"v": 1})])

        completion = await SuiteOrchestrator(fetcher=FakeFetcher(outputs, delays)).run_suite(config)
        ordered = await SuiteOrchestrator(fetcher=FakeFetcher(outputs, delays)).run_suite(
            config, preserve_order=True
        )

        assert [c.case_id for c in completion.cases] == ["fast", "slow"]
        assert [c.case_id for c in ordered.cases] == ["slow", "fast"]

    @pytest.mark.asyncio
    async def test_delay_between_requests(self):
        """Test workers pause between cases but not after the last one."""
        fetcher = FakeFetcher({i: {"v": 1} for i in ("a", "b", "c")})
        config = _suite(
            [_case(i, {"v": 1}) for i in ("a", "b", "c")],
            concurrency={"maxParallel": 1, "delayBetweenRequests": 50},
        )

        with patch(
            "extraction_tester.core.orchestrator.asyncio.sleep", new_callable=AsyncMock
        ) as sleep:
            await SuiteOrchestrator(fetcher=fetcher).run_suite(config)

        assert sleep.await_count == 2
        sleep.assert_awaited_with(0.05)

    @pytest.mark.asyncio
    async def test_zero_delay_never_sleeps(self):
        """Test a zero delay skips the pause entirely."""
        fetcher = FakeFetcher({i: {"v": 1} for i in ("a", "b")})
        config = _suite(
            [_case(i, {"v": 1}) for i in ("a", "b")],
            concurrency={"maxParallel": 1, "delayBetweenRequests": 0},
        )

        with patch(
            "extraction_tester.core.orchestrator.asyncio.sleep", new_callable=AsyncMock
        ) as sleep:
            await SuiteOrchestrator(fetcher=fetcher).run_suite(config)

        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_suite(self):
        """Test a suite without cases yields an empty result."""
        result = await SuiteOrchestrator(fetcher=FakeFetcher({})).run_suite(_suite([]))

        assert result.total_cases == 0
        assert result.cases == []
        assert result.aggregated_scoring.average_score == 0.0
        assert result.pass_rate == 0.0

    @pytest.mark.asyncio
    async def test_rules_merge(self):
        """Test case rules override suite defaults field by field."""
        fetcher = FakeFetcher({"loose": {"n": 10.4}, "strict": {"n": 10.4}})
        config = _suite(
            [
                _case("loose", {"n": 10}),
                _case("strict", {"n": 10}, comparison={"numericTolerance": 0}),
            ],
            defaults={"comparison": {"numericTolerance": 0.5}},
        )

        result = await SuiteOrchestrator(fetcher=fetcher).run_suite(config, preserve_order=True)

        assert [c.status for c in result.cases] == [CaseStatus.PASSED, CaseStatus.FAILED]

    @pytest.mark.asyncio
    async def test_scoring_merge(self):
        """Test suite scoring defaults reach the scorer."""
        fetcher = FakeFetcher({"a": {"x": 1}})
        config = _suite(
            [_case("a", {"x": 1, "y": 2})],
            defaults={"scoring": {"missingFieldPenalty": 20}},
        )

        result = await SuiteOrchestrator(fetcher=fetcher).run_suite(config)

        assert result.cases[0].scoring.overall_score == 0.0

    @pytest.mark.asyncio
    async def test_inferred_field_count(self):
        """Test each result records the ground truth field count."""
        gt = {"id": 1, "vendor": {"name": "Acme"}, "items": [{"sku": "A", "qty": 1}]}
        fetcher = FakeFetcher({"a": gt})

        result = await SuiteOrchestrator(fetcher=fetcher).run_suite(_suite([_case("a", gt)]))

        assert result.cases[0].inferred_field_count == 4

    def test_run_suite_sync(self):
        """Test the synchronous wrapper."""
        fetcher = FakeFetcher({"a": {"v": 1}})
        result = SuiteOrchestrator(fetcher=fetcher).run_suite_sync(_suite([_case("a", {"v": 1})]))

        assert result.passed_cases == 1


# ============================================================================
# Function Targets
# ============================================================================


class TestFunctionTargets:
    """Tests for in-process extraction functions."""

    @staticmethod
    def _function_case(case_id: str, name: str, ground_truth: Any) -> dict:
        return _case(
            case_id,
            ground_truth,
            execution={"type": "function", "functionName": name},
        )

    @pytest.mark.asyncio
    async def test_sync_function(self):
        """Test a plain function receives the input and returns output."""
        seen = []

        def extract(payload):
            seen.append(payload)
            return {"total": 10}

        config = _suite([self._function_case("a", "extract", {"total": 10})])
        orchestrator = SuiteOrchestrator(fetcher=DataFetcher(), functions={"extract": extract})

        result = await orchestrator.run_suite(config)

        assert result.cases[0].status == CaseStatus.PASSED
        assert seen == [{"document": "doc a"}]

    @pytest.mark.asyncio
    async def test_async_function(self):
        """Test a coroutine function is awaited."""

        async def extract(payload):
            await asyncio.sleep(0)
            return {"total": 10}

        orchestrator = SuiteOrchestrator(fetcher=DataFetcher())
        orchestrator.register_function("extract", extract)
        config = _suite([self._function_case("a", "extract", {"total": 10})])

        result = await orchestrator.run_suite(config)

        assert result.cases[0].status == CaseStatus.PASSED

    @pytest.mark.asyncio
    async def test_unknown_function(self):
        """Test an unregistered function fails the case."""
        config = _suite([self._function_case("a", "missing", {"total": 10})])

        result = await SuiteOrchestrator(fetcher=DataFetcher()).run_suite(config)

        case = result.cases[0]
        assert case.status == CaseStatus.FAILED
        assert case.error.error_type == "ServiceInvocationError"
        assert "missing" in case.error.message

    @pytest.mark.asyncio
    async def test_function_timeout(self):
        """Test a slow function is cut off at the request timeout."""

        async def extract(payload):
            await asyncio.sleep(5)
            return {}

        config = _suite(
            [self._function_case("a", "extract", {"total": 10})],
            concurrency={"maxParallel": 1, "delayBetweenRequests": 0, "requestTimeout": 0.05},
        )
        orchestrator = SuiteOrchestrator(fetcher=DataFetcher(), functions={"extract": extract})

        result = await orchestrator.run_suite(config)

        assert result.cases[0].status == CaseStatus.FAILED
        assert "timed out" in result.cases[0].error.message

    @pytest.mark.asyncio
    async def test_sync_function_timeout_leaves_thread_running(self):
        """Test a timed-out sync function fails the case while its thread finishes later."""
        release = threading.Event()
        finished = threading.Event()

        def extract(payload):
            release.wait(5)
            finished.set()
            return {}

        config = _suite(
            [self._function_case("a", "extract", {"total": 10})],
            concurrency={"maxParallel": 1, "delayBetweenRequests": 0, "requestTimeout": 0.05},
        )
        orchestrator = SuiteOrchestrator(fetcher=DataFetcher(), functions={"extract": extract})

        result = await orchestrator.run_suite(config)

        assert result.cases[0].status == CaseStatus.FAILED
        assert "timed out" in result.cases[0].error.message
        assert not finished.is_set()

        release.set()
        assert await asyncio.to_thread(finished.wait, 5)

    @pytest.mark.asyncio
    async def test_ground_truth_fetch_failure(self, tmp_path):
        """Test an unreadable ground truth fails only its own case."""
        missing = str(tmp_path / "missing.json")
        cases = [
            self._function_case("good", "extract", {"total": 10}),
            _case(
                "bad",
                None,
                groundTruth={"type": "file", "path": missing},
                execution={"type": "function", "functionName": "extract"},
            ),
        ]
        orchestrator = SuiteOrchestrator(
            fetcher=DataFetcher(), functions={"extract": lambda payload: {"total": 10}}
        )

        result = await orchestrator.run_suite(_suite(cases), preserve_order=True)

        good, bad = result.cases
        assert good.status == CaseStatus.PASSED
        assert bad.status == CaseStatus.FAILED
        assert bad.error.error_type == "DataFetchError"


# ============================================================================
# Aggregation
# ============================================================================


class TestSuiteAggregator:
    """Tests for SuiteAggregator."""

    def test_counts_and_averages(self):
        """Test counts by status and rounded averages."""
        aggregator = SuiteAggregator()
        aggregator.add(_result("a", CaseStatus.PASSED, 100.0))
        aggregator.add(_result("b", CaseStatus.WARNING, 90.0))
        aggregator.add(_result("c", CaseStatus.FAILED, 0.0))

        assert (aggregator.passed, aggregator.warning, aggregator.failed) == (1, 1, 1)
        assert aggregator.count == 3
        assert aggregator.averages().average_score == 63.33

    def test_order_independent(self):
        """Test the totals do not depend on arrival order."""
        results = [
            _result("a", CaseStatus.PASSED, 100.0),
            _result("b", CaseStatus.FAILED, 12.5),
            _result("c", CaseStatus.WARNING, 77.77),
        ]
        forward, backward = SuiteAggregator(), SuiteAggregator()
        for r in results:
            forward.add(r)
        for r in reversed(results):
            backward.add(r)

        assert forward.averages() == backward.averages()
        assert (forward.passed, forward.failed, forward.warning) == (
            backward.passed,
            backward.failed,
            backward.warning,
        )

    def test_empty(self):
        """Test averages are zero with no results."""
        averages = SuiteAggregator().averages()
        assert averages.average_score == 0.0
        assert averages.average_accuracy == 0.0


@pytest.mark.parametrize(
    "name, expected",
    [
        ("Invoice Extraction", "invoice-extraction"),
        ("  Receipts\tQ3  2024", "-receipts-q3-2024"),
        ("single", "single"),
    ],
)
def test_slugify(name: str, expected: str) -> None:
    """Test suite ids are lowercased with whitespace runs collapsed."""
    assert slugify(name) == expected
