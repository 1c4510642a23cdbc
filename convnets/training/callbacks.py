"""End-of-epoch hooks attached through ``set_on_epoch_finished_callback``."""

from __future__ import annotations

import logging
import math
from typing import Callable, Iterable, List, Mapping

from ..core.types import EpochCallback
from .settings import TrainingSettings

logger = logging.getLogger(__name__)


class KeepBestController:
    """Save the network whenever the validation metric improves.

    ``higher_is_better`` is true for classification success rates and false for
    regression errors. Epochs without a validation metric (NaN) are ignored.
    """

    def __init__(self, save: Callable[[], None], *, higher_is_better: bool = True) -> None:
        self._save = save
        self.higher_is_better = higher_is_better
        self.best = -1.0 if higher_is_better else math.inf
        self.best_epoch = 0

    def improved(self, metric: float) -> bool:
        if math.isnan(metric):
            return False
        return metric > self.best if self.higher_is_better else metric < self.best

    def __call__(
        self,
        epoch: int,
        settings: TrainingSettings,
        loss: float,
        metric: float,
        seconds: float,
    ) -> None:
        if not self.improved(metric):
            return
        self.best = metric
        self.best_epoch = epoch
        logger.info("Epoch %d improved the validation metric to %g; saving", epoch, metric)
        self._save()


class EpochMetricsCallback:
    """Adapt the epoch callback to sinks exposing ``on_epoch(epoch, metrics)``."""

    def __init__(self, sinks: Iterable[object]) -> None:
        self.sinks = list(sinks)

    @staticmethod
    def metrics(loss: float, metric: float, seconds: float) -> Mapping[str, float]:
        values = {"loss": float(loss), "seconds": float(seconds)}
        if not math.isnan(metric):
            values["validation"] = float(metric)
        return values

    def __call__(
        self,
        epoch: int,
        settings: TrainingSettings,
        loss: float,
        metric: float,
        seconds: float,
    ) -> None:
        values = self.metrics(loss, metric, seconds)
        for sink in self.sinks:
            if hasattr(sink, "on_epoch"):
                sink.on_epoch(epoch, values)  # type: ignore[attr-defined]
            elif callable(sink):
                sink(epoch, values)


class CallbackChain:
    """Forward one epoch event to several callbacks in order."""

    def __init__(self, callbacks: Iterable[EpochCallback] = ()) -> None:
        self.callbacks: List[EpochCallback] = list(callbacks)

    def append(self, callback: EpochCallback) -> None:
        self.callbacks.append(callback)

    def __len__(self) -> int:
        return len(self.callbacks)

    def __call__(
        self,
        epoch: int,
        settings: TrainingSettings,
        loss: float,
        metric: float,
        seconds: float,
    ) -> None:
        for callback in self.callbacks:
            callback(epoch, settings, loss, metric, seconds)


__all__ = ["CallbackChain", "EpochMetricsCallback", "KeepBestController"]
