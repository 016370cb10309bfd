"""Testability scoring: 100 minus fixed per-occurrence deductions, floored at 0."""

from collections.abc import Mapping

from reducer_health.domain.constants import DEFAULT_PENALTIES
from reducer_health.domain.entities import Deduction, FeatureFact, TestabilityScore

# (penalty key, counter, reason) in trail order; closures first as the biggest blocker
_DEDUCTION_SOURCES: tuple[tuple[str, str, str], ...] = (
    ("closure", "closure_count", "closure-typed effect property"),
    ("missing_injection", "missing_injection_count", "side effect bypassing dependency injection"),
    ("duplicate_handler", "duplicate_handler_count", "duplicate action handler"),
    ("vague_method", "vague_method_count", "vaguely named method"),
)


class TestabilityScorer:
    """
    Derives a 0-100 score per unit and the deduction trail that explains it.

    Deductions are additive and independent. When the floor at 0 engages the
    last deduction is clipped, so 100 minus the trail always equals the score.
    """

    __test__ = False

    def __init__(
        self,
        threshold: int,
        penalties: Mapping[str, float] | None = None,
    ) -> None:
        self._threshold = threshold
        merged = dict(DEFAULT_PENALTIES)
        if penalties:
            merged.update(penalties)
        self._penalties = {key: int(value) for key, value in merged.items()}

    @property
    def threshold(self) -> int:
        return self._threshold

    def score(self, fact: FeatureFact) -> TestabilityScore:
        counters = fact.counters()
        remaining = 100
        trail: list[Deduction] = []
        for penalty_key, counter, reason in _DEDUCTION_SOURCES:
            occurrences = counters[counter]
            points = min(self._penalties[penalty_key] * occurrences, remaining)
            if occurrences == 0 or points == 0:
                continue
            trail.append(Deduction(reason=reason, points=points, occurrences=occurrences))
            remaining -= points
        return TestabilityScore(
            unit=fact.identifier,
            score=remaining,
            deductions=tuple(trail),
            threshold=self._threshold,
        )
