"""convnets public API."""

from .core import container, limits, optimizers, types  # noqa: F401
from .core.container import Dimensions, NumericContainer
from .core.fixed_point import FixedPoint, fixed_point, fixed_point64
from .persistence import Persistence
from .training import ConvolutionalNeuralNetwork, NeuralNetwork, RunConfig, TrainingSettings, load_preset, presets

__all__ = [
    "ConvolutionalNeuralNetwork",
    "Dimensions",
    "FixedPoint",
    "NeuralNetwork",
    "NumericContainer",
    "Persistence",
    "RunConfig",
    "TrainingSettings",
    "container",
    "fixed_point",
    "fixed_point64",
    "limits",
    "load_preset",
    "optimizers",
    "presets",
    "types",
]
