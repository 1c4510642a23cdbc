"""Per-sample validation metrics for classification and regression."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from ..core.types import Array


@dataclass(frozen=True)
class ClassificationReport:
    correct: int
    total: int

    @property
    def success_rate(self) -> float:
        return 100.0 * self.correct / self.total if self.total else 0.0

    @property
    def error_rate(self) -> float:
        return 100.0 - self.success_rate


@dataclass(frozen=True)
class RegressionReport:
    mean_absolute_error: float
    mean_relative_error: float
    total: int


def predicted_class(values: Array) -> int:
    """Index of the first maximum, matching ``std::max_element`` semantics."""

    return int(np.argmax(values))


def is_correct(actual: Array, expected: Array) -> bool:
    return predicted_class(actual) == predicted_class(expected)


def absolute_error(actual: Array, expected: Array) -> float:
    return float(np.mean(np.abs(expected - actual)))


def relative_error(actual: Array, expected: Array) -> float:
    """Mean of ``|e - a| / max(|e|, |a|)``; elements where both are zero count as 0."""

    diff = np.abs(expected - actual)
    scale = np.maximum(np.abs(expected), np.abs(actual))
    ratios = np.divide(diff, scale, out=np.zeros_like(diff), where=scale != 0)
    return float(np.mean(ratios))


__all__ = [
    "ClassificationReport",
    "RegressionReport",
    "absolute_error",
    "is_correct",
    "predicted_class",
    "relative_error",
]
