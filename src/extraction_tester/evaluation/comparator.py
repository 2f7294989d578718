"""Structural JSON comparison against ground truth.

The comparison is keyed by the ground truth shape: every ground truth field
(not ignored) is either matched, mismatched or missing in the actual output.
Extra fields are found by a separate pass over the actual output that only
descends where both sides are objects.

Dispatch goes through :func:`json_kind`, in a fixed order: null check, then
container check, then scalar check.

Example:
    ```python
    from extraction_tester.core.config import ComparisonRules
    from extraction_tester.evaluation.comparator import JsonComparator

    result = JsonComparator().compare(
        {"total": 10, "tags": ["a", "b"]},
        {"total": "10", "tags": ["b", "a"], "currency": "EUR"},
        ComparisonRules(),
    )
    assert result.passed  # coercion, unordered tags, extras as warnings
    assert [w.path for w in result.warnings] == ["tags"]
    assert [e.path for e in result.extra] == ["currency"]
    ```
"""

import json
from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

from extraction_tester.core.config import ArrayStrategy, ComparisonRules
from extraction_tester.evaluation.types import (
    ComparisonResult,
    ComparisonWarning,
    ExtraField,
    FieldMismatch,
    JsonKind,
    MismatchKind,
    MissingField,
    json_kind,
)

ROOT_PATH = "root"
ORDER_WARNING = "Array order differs (unordered comparison enabled)"


@dataclass
class _Diff:
    """Accumulator for a single compare() call."""

    matched: list[str] = field(default_factory=list)
    mismatches: list[FieldMismatch] = field(default_factory=list)
    missing: list[MissingField] = field(default_factory=list)
    extra: list[ExtraField] = field(default_factory=list)
    warnings: list[ComparisonWarning] = field(default_factory=list)

    def mismatch(self, path: str, gt: Any, actual: Any, kind: MismatchKind) -> None:
        self.mismatches.append(
            FieldMismatch(path=path or ROOT_PATH, ground_truth=gt, actual=actual, kind=kind)
        )


def _join(prefix: str, key: str) -> str:
    return f"{prefix}.{key}" if prefix else key


def coerce_to_string(value: Any) -> str:
    """String form used for coerced and multiset comparisons.

    Matches the usual JSON rendering of scalars: ``null``, ``true``/``false``
    and integral floats without a trailing ``.0``.
    """
    kind = json_kind(value)
    if kind == JsonKind.NULL:
        return "null"
    if kind == JsonKind.BOOLEAN:
        return "true" if value else "false"
    if kind == JsonKind.NUMBER:
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return str(value)
    if kind == JsonKind.STRING:
        return value
    return json.dumps(value, sort_keys=True, separators=(",", ":"))


def _parse_number(value: Any) -> Decimal | None:
    """Return the decimal value of a number or numeric-looking string."""
    kind = json_kind(value)
    if kind == JsonKind.NUMBER:
        return Decimal(str(value))
    if kind == JsonKind.STRING and value.strip():
        try:
            number = Decimal(value.strip())
        except InvalidOperation:
            return None
        return number if number.is_finite() else None
    return None


def _within_tolerance(gt: Decimal, actual: Decimal, tolerance: float) -> bool:
    if not (gt.is_finite() and actual.is_finite()):
        return gt == actual
    return abs(gt - actual) <= Decimal(str(tolerance))


def _order_key(value: Any) -> tuple[JsonKind, str]:
    """Serialized form of an array element that keeps its JSON kind."""
    return json_kind(value), coerce_to_string(value)


class JsonComparator:
    """Deterministic structural diff between ground truth and actual output.

    The comparator is a pure function of its inputs: it never mutates them
    and keeps no state between calls.
    """

    def compare(
        self,
        ground_truth: Any,
        actual: Any,
        rules: ComparisonRules | None = None,
    ) -> ComparisonResult:
        """Compare actual output against ground truth.

        Args:
            ground_truth: Decoded ground truth JSON.
            actual: Decoded output of the service under test.
            rules: Comparison rules. Built-in defaults if None.

        Returns:
            ComparisonResult with mismatches, missing, extra and warnings.
        """
        rules = rules or ComparisonRules()
        ignored = frozenset(rules.ignore_fields)
        diff = _Diff()

        self._compare_value(ground_truth, actual, "", ignored, rules, diff)
        self._detect_extra_fields(ground_truth, actual, "", ignored, diff)

        passed = (
            not diff.mismatches
            and not diff.missing
            and (not diff.extra or rules.extra_fields_warning)
        )

        return ComparisonResult(
            passed=passed,
            matched_paths=diff.matched,
            mismatches=diff.mismatches,
            missing=diff.missing,
            extra=diff.extra,
            warnings=diff.warnings,
        )

    def _compare_value(
        self,
        gt: Any,
        actual: Any,
        path: str,
        ignored: frozenset[str],
        rules: ComparisonRules,
        diff: _Diff,
    ) -> None:
        gt_kind = json_kind(gt)
        actual_kind = json_kind(actual)

        # Null checks
        if gt_kind == JsonKind.NULL and actual_kind == JsonKind.NULL:
            diff.matched.append(path or ROOT_PATH)
            return
        if gt_kind == JsonKind.NULL or actual_kind == JsonKind.NULL:
            diff.mismatch(path, gt, actual, MismatchKind.VALUE)
            return

        # Containers
        if gt_kind == JsonKind.ARRAY:
            if actual_kind != JsonKind.ARRAY:
                diff.mismatch(path, gt, actual, MismatchKind.TYPE)
                return
            self._compare_arrays(gt, actual, path, ignored, rules, diff)
            return

        if gt_kind == JsonKind.OBJECT:
            if actual_kind != JsonKind.OBJECT:
                diff.mismatch(path, gt, actual, MismatchKind.TYPE)
                return
            self._compare_objects(gt, actual, path, ignored, rules, diff)
            return

        if actual_kind.is_container:
            diff.mismatch(path, gt, actual, MismatchKind.TYPE)
            return

        # Scalars
        kind = self._primitive_mismatch(gt, actual, rules)
        if kind is None:
            diff.matched.append(path or ROOT_PATH)
        else:
            diff.mismatch(path, gt, actual, kind)

    def _compare_objects(
        self,
        gt: dict[str, Any],
        actual: dict[str, Any],
        path: str,
        ignored: frozenset[str],
        rules: ComparisonRules,
        diff: _Diff,
    ) -> None:
        for key, expected in gt.items():
            field_path = _join(path, key)
            if field_path in ignored:
                continue
            if key not in actual:
                diff.missing.append(MissingField(path=field_path, expected_value=expected))
            else:
                self._compare_value(expected, actual[key], field_path, ignored, rules, diff)

    def _compare_arrays(
        self,
        gt: list[Any],
        actual: list[Any],
        path: str,
        ignored: frozenset[str],
        rules: ComparisonRules,
        diff: _Diff,
    ) -> None:
        if not gt and not actual:
            diff.matched.append(path or ROOT_PATH)
            return

        # Arrays of containers are always positional, whatever the strategy
        if gt and json_kind(gt[0]).is_container:
            self._compare_positional(gt, actual, path, ignored, rules, diff)
        elif rules.array_strategy == ArrayStrategy.ORDERED:
            self._compare_positional(gt, actual, path, ignored, rules, diff)
        else:
            self._compare_unordered(gt, actual, path, diff)

    def _compare_positional(
        self,
        gt: list[Any],
        actual: list[Any],
        path: str,
        ignored: frozenset[str],
        rules: ComparisonRules,
        diff: _Diff,
    ) -> None:
        for i in range(max(len(gt), len(actual))):
            item_path = f"{path}[{i}]"
            if i >= len(gt):
                diff.extra.append(ExtraField(path=item_path, value=actual[i]))
            elif i >= len(actual):
                diff.missing.append(MissingField(path=item_path, expected_value=gt[i]))
            else:
                self._compare_value(gt[i], actual[i], item_path, ignored, rules, diff)

    def _compare_unordered(
        self,
        gt: list[Any],
        actual: list[Any],
        path: str,
        diff: _Diff,
    ) -> None:
        """Compare arrays of primitives as multisets of coerced strings."""
        item_path = f"{path}[]"
        gt_keys = [coerce_to_string(item) for item in gt]
        actual_keys = [coerce_to_string(item) for item in actual]

        missing = []
        available = Counter(actual_keys)
        for item, key in zip(gt, gt_keys):
            if available[key] > 0:
                available[key] -= 1
            else:
                missing.append(MissingField(path=item_path, expected_value=item))

        extra = []
        expected = Counter(gt_keys)
        for item, key in zip(actual, actual_keys):
            if expected[key] > 0:
                expected[key] -= 1
            else:
                extra.append(ExtraField(path=item_path, value=item))

        diff.missing.extend(missing)
        diff.extra.extend(extra)
        if not missing and not extra:
            diff.matched.append(path or ROOT_PATH)
        if len(gt) == len(actual) and list(map(_order_key, gt)) != list(map(_order_key, actual)):
            diff.warnings.append(ComparisonWarning(path=path or ROOT_PATH, message=ORDER_WARNING))

    def _primitive_mismatch(
        self, gt: Any, actual: Any, rules: ComparisonRules
    ) -> MismatchKind | None:
        """Classify two scalars; None means they are equal under the rules."""
        gt_kind = json_kind(gt)
        actual_kind = json_kind(actual)

        if rules.type_coercion and gt_kind != actual_kind:
            if {gt_kind, actual_kind} == {JsonKind.NUMBER, JsonKind.STRING}:
                gt_number = _parse_number(gt)
                actual_number = _parse_number(actual)
                if gt_number is not None and actual_number is not None:
                    if _within_tolerance(gt_number, actual_number, rules.numeric_tolerance):
                        return None
                    return MismatchKind.NUMERIC
            if coerce_to_string(gt) == coerce_to_string(actual):
                return None

        if gt_kind == JsonKind.NUMBER and actual_kind == JsonKind.NUMBER:
            if _within_tolerance(_parse_number(gt), _parse_number(actual), rules.numeric_tolerance):
                return None
            return MismatchKind.NUMERIC

        if gt_kind != actual_kind or gt != actual:
            return MismatchKind.VALUE
        return None

    def _detect_extra_fields(
        self,
        gt: Any,
        actual: Any,
        path: str,
        ignored: frozenset[str],
        diff: _Diff,
    ) -> None:
        """Mirror pass over actual output, keyed by the ground truth object shape."""
        if json_kind(gt) != JsonKind.OBJECT or json_kind(actual) != JsonKind.OBJECT:
            return

        for key, value in actual.items():
            field_path = _join(path, key)
            if field_path in ignored or key in ignored:
                continue
            if key not in gt:
                diff.extra.append(ExtraField(path=field_path, value=value))
            else:
                self._detect_extra_fields(gt[key], value, field_path, ignored, diff)


def compare(
    ground_truth: Any,
    actual: Any,
    rules: ComparisonRules | None = None,
) -> ComparisonResult:
    """Compare actual output against ground truth with the given rules."""
    return JsonComparator().compare(ground_truth, actual, rules)
