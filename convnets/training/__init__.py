"""Training orchestration for convnets."""

from .callbacks import CallbackChain, EpochMetricsCallback, KeepBestController
from .config import RunConfig, load_config, load_preset, merge, presets
from .mlp import NeuralNetwork
from .network import ConvolutionalNeuralNetwork
from .settings import TrainingSettings

__all__ = [
    "CallbackChain",
    "ConvolutionalNeuralNetwork",
    "EpochMetricsCallback",
    "KeepBestController",
    "NeuralNetwork",
    "RunConfig",
    "TrainingSettings",
    "load_config",
    "load_preset",
    "merge",
    "presets",
]
