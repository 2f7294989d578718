"""Penalty-based scoring of comparison results.

The schema universe is the set of distinct ground truth paths the comparator
visited: matched paths plus the paths of mismatches and missing entries.
Paths that only appear as extra fields are not part of it, so "how many
fields exist" stays independent of "how many unexpected fields appeared". A
consequence: when the ground truth has no addressable fields the sentinel
scores are returned, however many extra fields there are.
"""

from decimal import ROUND_HALF_UP, Decimal

from extraction_tester.core.config import ScoringConfig
from extraction_tester.evaluation.types import (
    ComparisonResult,
    FieldScore,
    ScoreBreakdown,
    ScoringResult,
)

# Converts the average per-field penalty into a suite-level deduction
PENALTY_AMPLIFICATION = 10

MISSING_FIELD_SCORE = 0.0
MISMATCHED_FIELD_SCORE = 50.0
MATCHED_FIELD_SCORE = 100.0
EXTRA_FIELD_SCORE = 75.0


def round_half_up(value: float, places: int = 2) -> float:
    """Round to ``places`` decimals, halves away from zero."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def _clamp(value: float) -> float:
    return min(100.0, max(0.0, value))


class Scorer:
    """Converts a comparison result into 0-100 scores.

    Example:
        ```python
        comparison = compare({"x": 1, "y": 2}, {"x": 1})
        result = Scorer().score(comparison, ScoringConfig())
        assert result.completeness_score == 50.0  # "y" is missing
        assert result.accuracy_score == 100.0
        ```
    """

    def score(
        self,
        comparison: ComparisonResult,
        config: ScoringConfig | None = None,
    ) -> ScoringResult:
        """Score a comparison result.

        Args:
            comparison: Output of the comparator.
            config: Penalties. Built-in defaults if None.

        Returns:
            ScoringResult with overall, completeness, accuracy and extra-field scores.
        """
        config = config or ScoringConfig()
        universe = self._schema_universe(comparison)
        total = len(universe)

        if total == 0:
            return self._sentinel()

        missing_n = len(comparison.missing)
        mismatch_n = len(comparison.mismatches)
        extra_n = len(comparison.extra)

        completeness = (total - missing_n - mismatch_n) / total * 100
        # Missing fields do not reduce accuracy
        accuracy = (total - mismatch_n) / total * 100

        total_penalty = (
            missing_n * config.missing_field_penalty
            + mismatch_n * config.mismatch_penalty
            + extra_n * config.extra_field_penalty
        )
        overall = max(0.0, 100 - (total_penalty / total) * PENALTY_AMPLIFICATION)
        extra_rate = extra_n / total * 100

        return ScoringResult(
            overall_score=round_half_up(_clamp(overall)),
            completeness_score=round_half_up(_clamp(completeness)),
            accuracy_score=round_half_up(_clamp(accuracy)),
            extra_field_score=round_half_up(_clamp(extra_rate)),
            field_scores=self._field_scores(comparison, universe, config),
            breakdown=ScoreBreakdown(
                total_fields=total,
                matched_fields=max(0, total - missing_n - mismatch_n),
                missing_fields=missing_n,
                mismatched_fields=mismatch_n,
                extra_fields=extra_n,
            ),
        )

    def _schema_universe(self, comparison: ComparisonResult) -> list[str]:
        """Distinct matched, mismatch and missing paths, in first-seen order."""
        paths = (
            list(comparison.matched_paths)
            + [m.path for m in comparison.mismatches]
            + [m.path for m in comparison.missing]
        )
        return list(dict.fromkeys(paths))

    def _field_scores(
        self,
        comparison: ComparisonResult,
        universe: list[str],
        config: ScoringConfig,
    ) -> list[FieldScore]:
        missing_paths = {m.path for m in comparison.missing}
        mismatch_paths = {m.path for m in comparison.mismatches}

        field_scores = []
        for path in universe:
            if path in missing_paths:
                field_scores.append(
                    FieldScore(
                        field=path,
                        score=MISSING_FIELD_SCORE,
                        penalty=config.missing_field_penalty,
                        reason="Field missing in output",
                    )
                )
            elif path not in mismatch_paths:
                field_scores.append(
                    FieldScore(
                        field=path,
                        score=MATCHED_FIELD_SCORE,
                        penalty=0.0,
                        reason="Perfect match",
                    )
                )
            else:
                field_scores.append(
                    FieldScore(
                        field=path,
                        score=MISMATCHED_FIELD_SCORE,
                        penalty=config.mismatch_penalty,
                        reason="Field value mismatch",
                    )
                )

        for extra in comparison.extra:
            field_scores.append(
                FieldScore(
                    field=extra.path,
                    score=EXTRA_FIELD_SCORE,
                    penalty=config.extra_field_penalty,
                    reason="Extra field in output",
                )
            )

        return field_scores

    def _sentinel(self) -> ScoringResult:
        return ScoringResult(
            overall_score=100.0,
            completeness_score=100.0,
            accuracy_score=100.0,
            extra_field_score=0.0,
        )


def score(comparison: ComparisonResult, config: ScoringConfig | None = None) -> ScoringResult:
    """Score a comparison result with the given penalties."""
    return Scorer().score(comparison, config)
