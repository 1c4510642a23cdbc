"""Multilayer perceptron built from fully-connected and activation layers."""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from ..core.container import Dimensions, NumericContainer
from ..core.optimizers import Optimizer
from ..core.types import ActivationFunction, LossFunctionType, Sample, TaskType
from ..layers import FullyConnectedLayer, activation_layer
from .network import ConvolutionalNeuralNetwork
from .settings import TrainingSettings

LayerSpec = Tuple[int, ActivationFunction]
FlatSample = Tuple[Sequence[float], Sequence[float]]


def _containers(data: Iterable[FlatSample]) -> List[Sample]:
    return [(NumericContainer.from_flat(inputs), NumericContainer.from_flat(expected)) for inputs, expected in data]


class NeuralNetwork(ConvolutionalNeuralNetwork):
    """Plain neural network working on flat vectors instead of containers.

    Every ``(size, function)`` entry of ``hidden_layers`` followed by
    ``output_layer`` adds a fully-connected layer of ``size`` neurons and, unless
    ``function`` is ``NONE``, the matching activation layer.
    """

    def __init__(
        self,
        input_size: int,
        hidden_layers: Sequence[LayerSpec],
        output_layer: LayerSpec,
        use_bias: bool = True,
        task_type: TaskType = TaskType.CLASSIFICATION,
        *,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        super().__init__(task_type, rng=rng)
        previous = Dimensions(int(input_size), 1, 1)
        for size, function in [*hidden_layers, output_layer]:
            layer = FullyConnectedLayer(previous, size, use_bias, rng=self.rng)
            self.add_layer(layer)
            previous = layer.output_size
            if function is not ActivationFunction.NONE:
                self.add_layer(activation_layer(function, previous))

    def run(self, inputs: Sequence[float] | NumericContainer) -> NumericContainer:  # type: ignore[override]
        if not isinstance(inputs, NumericContainer):
            inputs = NumericContainer.from_flat(inputs)
        return super().run(inputs)

    def train(  # type: ignore[override]
        self,
        settings: TrainingSettings,
        training_data: Iterable[FlatSample],
        loss_function: LossFunctionType | str,
        optimizer: Optimizer,
        validation_data: Iterable[FlatSample] = (),
    ) -> float:
        return super().train(
            settings,
            _containers(training_data),
            loss_function,
            optimizer,
            _containers(validation_data),
        )

    def validate(self, data: Iterable[FlatSample]) -> float:  # type: ignore[override]
        return super().validate(_containers(data))


__all__ = ["NeuralNetwork"]
