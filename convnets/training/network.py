"""Network orchestrator chaining layers for inference, training and validation."""

from __future__ import annotations

import logging
import math
import time
import warnings
from typing import Iterator, List, MutableSequence, Optional, Sequence, Tuple

import numpy as np

from ..core import limits
from ..core.container import Dimensions, NumericContainer
from ..core.errors import ConfigurationError, ErrorKind, Outcome, TrainingDivergedError
from ..core.limits import BACKWARD_TYPE
from ..core.optimizers import Optimizer
from ..core.types import EpochCallback, LossFunctionType, Sample, TaskType
from ..layers import BaseLayer
from . import metrics
from .losses import REGISTRY as LOSS_REGISTRY
from .settings import TrainingSettings

logger = logging.getLogger(__name__)


class ConvolutionalNeuralNetwork:
    """Ordered stack of layers plus the run/train/validate loops.

    Layers flagged ``training_only`` (dropout) take part in training but are
    skipped by :meth:`run` and :meth:`validate`. Console output is printed only
    after :meth:`enable_output`.
    """

    def __init__(
        self,
        task_type: TaskType = TaskType.CLASSIFICATION,
        *,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        self._task_type = task_type
        self._all_layers: List[BaseLayer] = []
        self._forward_only_layers: List[BaseLayer] = []
        self._input_size = Dimensions()
        self._output_size = Dimensions()
        self._output_enabled = False
        self._suppress_output = False
        self._training = False
        self._on_epoch_finished: Optional[EpochCallback] = None
        self.rng = rng if rng is not None else np.random.default_rng()

    # ------------------------------------------------------------------
    # Structure

    def add_layer(self, layer: BaseLayer) -> None:
        if self._all_layers and layer.input_size != self._output_size:
            raise ConfigurationError(
                f"{type(layer).__name__} expects input {layer.input_size}, "
                f"but the network currently outputs {self._output_size}"
            )
        if self._all_layers:
            produced = self._all_layers[-1].forward_type
            if not limits.same_type(layer.input_type, produced):
                raise ConfigurationError(
                    f"{type(layer).__name__} expects {limits.type_name(layer.input_type)} input, but the network "
                    f"currently outputs {limits.type_name(produced)}; insert a ConversionLayer to change precision"
                )
        else:
            self._input_size = layer.input_size
        self._all_layers.append(layer)
        if not layer.training_only:
            self._forward_only_layers.append(layer)
        self._output_size = layer.output_size
        logger.debug("Added %r; network output is now %s", layer, self._output_size)

    @property
    def all_layers(self) -> Tuple[BaseLayer, ...]:
        return tuple(self._all_layers)

    @property
    def forward_only_layers(self) -> Tuple[BaseLayer, ...]:
        return tuple(self._forward_only_layers)

    @property
    def input_size(self) -> Dimensions:
        return self._input_size

    @property
    def output_size(self) -> Dimensions:
        return self._output_size

    @property
    def task_type(self) -> TaskType:
        return self._task_type

    @property
    def training(self) -> bool:
        return self._training

    @property
    def output_enabled(self) -> bool:
        return self._output_enabled

    def enable_output(self) -> None:
        self._output_enabled = True

    def disable_output(self) -> None:
        self._output_enabled = False

    def set_output(self, enabled: bool) -> None:
        warnings.warn("Use enable_output() or disable_output() instead", DeprecationWarning, stacklevel=2)
        self._output_enabled = bool(enabled)

    def set_on_epoch_finished_callback(self, callback: Optional[EpochCallback]) -> None:
        self._on_epoch_finished = callback

    def __iter__(self) -> Iterator[BaseLayer]:
        return iter(self._all_layers)

    def __len__(self) -> int:
        return len(self._all_layers)

    # ------------------------------------------------------------------
    # Inference

    def try_run(self, inputs: NumericContainer) -> Outcome[NumericContainer]:
        if not self._forward_only_layers:
            return Outcome.failure(ErrorKind.NO_LAYERS, "No layers to perform inference on.")
        if inputs.dimensions != self._input_size:
            return Outcome.failure(
                ErrorKind.SHAPE_MISMATCH,
                f"Input has dimensions {inputs.dimensions}, network expects {self._input_size}",
            )
        output = self._propagate(self._forward_only_layers, inputs)
        if self._output_enabled and not self._suppress_output:
            self.print_results(output)
        return Outcome.success(output.copy())

    def run(self, inputs: NumericContainer) -> NumericContainer:
        return self.try_run(inputs).unwrap()

    @staticmethod
    def _propagate(layers: Sequence[BaseLayer], inputs: NumericContainer) -> NumericContainer:
        current = inputs
        for layer in layers:
            current = layer.forward(current)
        return current

    def print_results(self, output: NumericContainer) -> None:
        values = limits.to_float(output.data)
        if self._task_type is TaskType.REGRESSION:
            print(" ".join(f"{v:.5f}" for v in values))
            return
        print(" ".join(f"{v:.3f}" for v in values))
        print(f"Output class is {metrics.predicted_class(values)}")
        print()

    # ------------------------------------------------------------------
    # Training

    def _check_samples(self, data: Sequence[Sample], what: str) -> Optional[Outcome]:
        if not data:
            return Outcome.failure(ErrorKind.EMPTY_DATASET, f"No data to perform {what} on.")
        for index, (inputs, expected) in enumerate(data):
            if inputs.dimensions != self._input_size:
                return Outcome.failure(
                    ErrorKind.SHAPE_MISMATCH,
                    f"Sample {index} input has dimensions {inputs.dimensions}, network expects {self._input_size}",
                )
            if expected.flattened_size != self._output_size.size:
                return Outcome.failure(
                    ErrorKind.SHAPE_MISMATCH,
                    f"Sample {index} expects {expected.flattened_size} output(s), network produces "
                    f"{self._output_size.size}",
                )
        return None

    def try_train(
        self,
        settings: TrainingSettings,
        training_data: MutableSequence[Sample],
        loss_function: LossFunctionType | str,
        optimizer: Optimizer,
        validation_data: Sequence[Sample] = (),
    ) -> Outcome[float]:
        """Train on ``training_data`` (shuffled in place when ``settings.shuffle``)."""

        if not self._all_layers:
            return Outcome.failure(ErrorKind.NO_LAYERS, "No layers to perform training on.")
        problem = self._check_samples(training_data, "training")
        if problem is None and settings.periodic_validation:
            problem = self._check_samples(validation_data, "validation")
        if problem is not None:
            return problem
        loss = LOSS_REGISTRY.get(loss_function)

        self._suppress_output = True
        self._training = True
        try:
            return Outcome.success(self._train(settings, training_data, loss.name, optimizer, validation_data))
        finally:
            self._training = False
            self._suppress_output = False

    def train(
        self,
        settings: TrainingSettings,
        training_data: MutableSequence[Sample],
        loss_function: LossFunctionType | str,
        optimizer: Optimizer,
        validation_data: Sequence[Sample] = (),
    ) -> float:
        return self.try_train(settings, training_data, loss_function, optimizer, validation_data).unwrap()

    def _train(
        self,
        settings: TrainingSettings,
        training_data: MutableSequence[Sample],
        loss_name: str,
        optimizer: Optimizer,
        validation_data: Sequence[Sample],
    ) -> float:
        for layer in self._all_layers:
            layer.set_batch_size(settings.batch_size)
            layer.set_optimizer(optimizer.clone())
        logger.info(
            "Training %d layer(s) on %d sample(s) for %d epoch(s) with %r",
            len(self._all_layers),
            len(training_data),
            settings.epochs,
            optimizer,
        )

        start = time.perf_counter()
        if settings.periodic_validation and self._output_enabled:
            self._validate(validation_data)
            print()

        total = len(training_data)
        epoch_error = 0.0
        batch_error = 0.0
        for epoch in range(settings.epochs):
            if settings.shuffle:
                order = self.rng.permutation(total)
                training_data[:] = [training_data[i] for i in order]

            epoch_error = 0.0
            epoch_start = time.perf_counter()
            for step, (inputs, expected) in enumerate(training_data):
                output = self._propagate(self._all_layers, inputs)
                error, gradient = self.compute_error(output, expected, loss_name)
                epoch_error += error
                batch_error += error
                if math.isnan(error) or math.isinf(error):
                    raise TrainingDivergedError(
                        "Output error is NaN/INF, this may be caused by invalid choice of hyperparameters."
                    )

                rate = settings.error_output_rate
                if self._output_enabled and rate > 0 and ((step + 1) % rate == 0 or step + 1 == total):
                    print(f"({step + 1}/{total}): {batch_error / rate:g}")
                    batch_error = 0.0

                for index in range(len(self._all_layers) - 1, -1, -1):
                    previous = inputs if index == 0 else self._all_layers[index - 1].output
                    gradient = self._all_layers[index].backward(previous, gradient)

            if self._output_enabled or self._on_epoch_finished is not None:
                seconds = time.perf_counter() - epoch_start
                average = epoch_error / total
                if self._output_enabled and ((epoch + 1) % settings.epoch_output_rate == 0 or epoch + 1 == settings.epochs):
                    print(f"Error in epoch {epoch + 1}: {average:g} ({seconds:g} s)")

                metric = math.nan
                if settings.periodic_validation:
                    metric = self._validate(validation_data)
                    if self._output_enabled:
                        print()

                if self._on_epoch_finished is not None:
                    self._on_epoch_finished(epoch + 1, settings, average, metric, seconds)

        elapsed = time.perf_counter() - start
        if self._output_enabled:
            print(f"Total training time: {elapsed:g} s")
        logger.info("Training finished in %.3f s, last epoch error %g", elapsed, epoch_error)
        return epoch_error

    # ------------------------------------------------------------------
    # Validation

    def try_validate(self, data: Sequence[Sample]) -> Outcome[float]:
        if not self._forward_only_layers:
            return Outcome.failure(ErrorKind.NO_LAYERS, "No layers to perform validation on.")
        problem = self._check_samples(data, "validation")
        if problem is not None:
            return problem
        return Outcome.success(self._validate(data))

    def validate(self, data: Sequence[Sample]) -> float:
        """Success rate in percent (classification) or mean relative error (regression)."""

        return self.try_validate(data).unwrap()

    def _validate(self, data: Sequence[Sample]) -> float:
        suppressed = self._suppress_output
        self._suppress_output = True
        try:
            if self._task_type is TaskType.REGRESSION:
                report = self._validate_regression(data)
                if self._output_enabled:
                    print(f"Average absolute error per sample: {report.mean_absolute_error:g}")
                    print(f"Average relative difference per sample: {report.mean_relative_error:g} %")
                return report.mean_relative_error
            outcome = self._validate_classification(data)
            if self._output_enabled:
                print(f"Succesfully classified {outcome.correct} out of {outcome.total}")
                print(f"\tSuccess rate: {outcome.success_rate:g} %")
                print(f"\tError   rate: {outcome.error_rate:g} %")
            return outcome.success_rate
        finally:
            self._suppress_output = suppressed

    def _outputs(self, data: Sequence[Sample]) -> Iterator[Tuple[np.ndarray, np.ndarray]]:
        for inputs, expected in data:
            actual = self._propagate(self._forward_only_layers, inputs)
            yield limits.to_float(actual.data), limits.to_float(expected.data)

    def _validate_classification(self, data: Sequence[Sample]) -> metrics.ClassificationReport:
        correct = sum(1 for actual, expected in self._outputs(data) if metrics.is_correct(actual, expected))
        return metrics.ClassificationReport(correct=correct, total=len(data))

    def _validate_regression(self, data: Sequence[Sample]) -> metrics.RegressionReport:
        absolute = 0.0
        relative = 0.0
        for actual, expected in self._outputs(data):
            absolute += metrics.absolute_error(actual, expected)
            relative += metrics.relative_error(actual, expected)
        total = len(data)
        return metrics.RegressionReport(absolute / total, relative / total, total)

    # ------------------------------------------------------------------
    # Loss

    @staticmethod
    def compute_error(
        actual: NumericContainer,
        expected: NumericContainer,
        loss_function: LossFunctionType | str,
    ) -> Tuple[float, NumericContainer]:
        """Return the scalar loss and its gradient w.r.t. ``actual``."""

        loss = LOSS_REGISTRY.get(loss_function)
        value, gradient = loss(limits.to_float(actual.data), limits.to_float(expected.data))
        return float(value), NumericContainer(actual.dimensions, BACKWARD_TYPE, data=gradient)


__all__ = ["ConvolutionalNeuralNetwork"]
