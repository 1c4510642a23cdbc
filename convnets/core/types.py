"""Core typing contracts and enumerations for convnets."""

from __future__ import annotations

from enum import Enum
from typing import Callable, List, Tuple, TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from .container import NumericContainer
    from ..training.settings import TrainingSettings

Array = np.ndarray


class TaskType(Enum):
    """Type of task the network solves (adjusts validation and output)."""

    CLASSIFICATION = "classification"
    REGRESSION = "regression"


class LossFunctionType(Enum):
    """Loss used to compare the network output with the expected output."""

    MEAN_SQUARED_ERROR = "mse"
    CROSS_ENTROPY = "ce"
    BINARY_CROSS_ENTROPY = "bce"


class OptimizerType(Enum):
    ADAGRAD = "adagrad"
    ADAM = "adam"
    SGD = "sgd"
    SGD_WITH_MOMENTUM = "sgdm"
    SGD_WITH_NESTEROV_MOMENTUM = "sgdn"


class ActivationFunction(Enum):
    NONE = "none"
    SIGMOID = "sigmoid"
    TANH = "tanh"
    RELU = "relu"
    LEAKY_RELU = "leaky_relu"
    SOFTMAX = "softmax"


class PoolingOperation(Enum):
    MAX = "max"
    AVERAGE = "avg"


class LayerKind(Enum):
    """Tag carried by every layer variant, used for dispatch and persistence."""

    CONVOLUTIONAL = "convolutional"
    MAX_POOLING = "max_pooling"
    AVG_POOLING = "avg_pooling"
    FULLY_CONNECTED = "fully_connected"
    ACTIVATION = "activation"
    DROPOUT = "dropout"
    CONVERSION = "conversion"


Sample = Tuple["NumericContainer", "NumericContainer"]
Dataset = List[Sample]

# (epoch, settings, mean epoch loss, validation metric or NaN, epoch seconds)
EpochCallback = Callable[[int, "TrainingSettings", float, float, float], None]


__all__ = [
    "ActivationFunction",
    "Array",
    "Dataset",
    "EpochCallback",
    "LayerKind",
    "LossFunctionType",
    "OptimizerType",
    "PoolingOperation",
    "Sample",
    "TaskType",
]
