"""Two-way maps between persisted names and enum values."""

from __future__ import annotations

from typing import Dict, Mapping, TypeVar

from ..core.container import Dimensions
from ..core.optimizers import REGISTRY as OPTIMIZER_REGISTRY
from ..core.optimizers import Optimizer
from ..core.types import ActivationFunction, LossFunctionType, OptimizerType, PoolingOperation, TaskType
from ..layers import ActivationLayer, activation_layer

E = TypeVar("E")

ACTIVATION_NAMES: Dict[str, ActivationFunction] = {
    "sigmoid": ActivationFunction.SIGMOID,
    "tanh": ActivationFunction.TANH,
    "relu": ActivationFunction.RELU,
    "leaky_relu": ActivationFunction.LEAKY_RELU,
    "softmax": ActivationFunction.SOFTMAX,
}

POOLING_NAMES: Dict[str, PoolingOperation] = {
    "max": PoolingOperation.MAX,
    "avg": PoolingOperation.AVERAGE,
}

LOSS_NAMES: Dict[str, LossFunctionType] = {
    "MSE": LossFunctionType.MEAN_SQUARED_ERROR,
    "CE": LossFunctionType.CROSS_ENTROPY,
    "CEbin": LossFunctionType.BINARY_CROSS_ENTROPY,
}

TASK_NAMES: Dict[str, TaskType] = {
    "classification": TaskType.CLASSIFICATION,
    "regression": TaskType.REGRESSION,
}

OPTIMIZER_NAMES: Dict[str, OptimizerType] = {
    "sgd": OptimizerType.SGD,
    "sgdm": OptimizerType.SGD_WITH_MOMENTUM,
    "sgdn": OptimizerType.SGD_WITH_NESTEROV_MOMENTUM,
    "adagrad": OptimizerType.ADAGRAD,
    "adam": OptimizerType.ADAM,
}


def _lookup(table: Mapping[str, E], name: str, what: str) -> E:
    try:
        return table[name]
    except KeyError as exc:
        raise KeyError(f"Unknown {what} {name!r}. Valid names: {', '.join(table)}") from exc


def _reverse(table: Mapping[str, E], value: E, what: str) -> str:
    for name, candidate in table.items():
        if candidate == value:
            return name
    raise KeyError(f"{what} {value!r} has no persisted name")  # pragma: no cover - tables are complete


def get_activation_function(name: str) -> ActivationFunction:
    return _lookup(ACTIVATION_NAMES, name, "activation function")


def get_activation_name(function: ActivationFunction) -> str:
    return _reverse(ACTIVATION_NAMES, function, "Activation function")


def get_pooling_operation(name: str) -> PoolingOperation:
    return _lookup(POOLING_NAMES, name, "pooling operation")


def get_pooling_name(operation: PoolingOperation) -> str:
    return _reverse(POOLING_NAMES, operation, "Pooling operation")


def get_loss_function(name: str) -> LossFunctionType:
    return _lookup(LOSS_NAMES, name, "loss function")


def get_loss_name(loss: LossFunctionType) -> str:
    return _reverse(LOSS_NAMES, loss, "Loss function")


def get_task_type(name: str) -> TaskType:
    return _lookup(TASK_NAMES, name, "task type")


def get_task_name(task: TaskType) -> str:
    return _reverse(TASK_NAMES, task, "Task type")


def get_optimizer_type(name: str) -> OptimizerType:
    return _lookup(OPTIMIZER_NAMES, name, "optimizer")


def get_optimizer_name(optimizer: OptimizerType) -> str:
    return _reverse(OPTIMIZER_NAMES, optimizer, "Optimizer")


def get_optimizer_instance(optimizer: OptimizerType | str, **params: float) -> Optimizer:
    """Instantiate an optimizer with its default hyperparameters unless overridden."""

    kind = get_optimizer_type(optimizer) if isinstance(optimizer, str) else optimizer
    return OPTIMIZER_REGISTRY.create(kind.value, **params)


def get_activation_layer(function: ActivationFunction, size: Dimensions) -> ActivationLayer:
    return activation_layer(function, size)


__all__ = [
    "ACTIVATION_NAMES",
    "LOSS_NAMES",
    "OPTIMIZER_NAMES",
    "POOLING_NAMES",
    "TASK_NAMES",
    "get_activation_function",
    "get_activation_layer",
    "get_activation_name",
    "get_loss_function",
    "get_loss_name",
    "get_optimizer_instance",
    "get_optimizer_name",
    "get_optimizer_type",
    "get_pooling_name",
    "get_pooling_operation",
    "get_task_name",
    "get_task_type",
]
