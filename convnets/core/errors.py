"""Exception hierarchy and the result channel for expected failures."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class CNNException(RuntimeError):
    """Base class of every error raised by convnets."""


class ConfigurationError(CNNException, ValueError):
    """Invalid hyperparameters detected while constructing an object."""


class ConvolutionalLayerException(ConfigurationError):
    pass


class PoolingLayerException(ConfigurationError):
    pass


class FullyConnectedLayerException(ConfigurationError):
    pass


class DropoutLayerException(ConfigurationError):
    pass


class InputImageDoesNotHaveCorrectDimensions(CNNException):
    """Input passed to a layer does not match its declared input size."""


class OperationalError(CNNException):
    """The orchestrator was asked to work without data or without layers."""


class TrainingDivergedError(CNNException, ArithmeticError):
    """Loss became NaN or infinite; training is aborted immediately."""


class CorruptedStateError(CNNException):
    """An internal invariant (index tables, parameter shapes) no longer holds."""


class ErrorKind(Enum):
    EMPTY_DATASET = "empty_dataset"
    NO_LAYERS = "no_layers"
    SHAPE_MISMATCH = "shape_mismatch"


_ERROR_TYPES = {
    ErrorKind.EMPTY_DATASET: OperationalError,
    ErrorKind.NO_LAYERS: OperationalError,
    ErrorKind.SHAPE_MISMATCH: InputImageDoesNotHaveCorrectDimensions,
}


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Value or expected-failure report returned by ``Network.try_*`` calls."""

    value: Optional[T] = None
    error: Optional[ErrorKind] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: ErrorKind, message: str) -> "Outcome[T]":
        return cls(error=error, message=message)

    def unwrap(self) -> T:
        """Return the value or raise the exception matching ``error``."""

        if self.error is not None:
            raise _ERROR_TYPES[self.error](self.message)
        return self.value  # type: ignore[return-value]


__all__ = [
    "CNNException",
    "ConfigurationError",
    "ConvolutionalLayerException",
    "CorruptedStateError",
    "DropoutLayerException",
    "ErrorKind",
    "FullyConnectedLayerException",
    "InputImageDoesNotHaveCorrectDimensions",
    "OperationalError",
    "Outcome",
    "PoolingLayerException",
    "TrainingDivergedError",
]
