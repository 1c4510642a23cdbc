"""Layer variants composed by the network orchestrator."""

from typing import Union

from .activation import (
    ActivationLayer,
    LeakyReluLayer,
    ReluLayer,
    SigmoidLayer,
    SoftmaxLayer,
    TanhLayer,
    activation_layer,
)
from .base import BaseLayer, TrainableLayer
from .conversion import ConversionLayer
from .convolutional import ConvolutionalLayer
from .dropout import DropoutLayer
from .fully_connected import FullyConnectedLayer
from .pooling import AveragePoolingLayer, MaxPoolingLayer, PoolingLayer, pooling_layer

Layer = Union[
    ConvolutionalLayer,
    MaxPoolingLayer,
    AveragePoolingLayer,
    FullyConnectedLayer,
    ActivationLayer,
    DropoutLayer,
    ConversionLayer,
]

__all__ = [
    "ActivationLayer",
    "AveragePoolingLayer",
    "BaseLayer",
    "ConversionLayer",
    "ConvolutionalLayer",
    "DropoutLayer",
    "FullyConnectedLayer",
    "Layer",
    "LeakyReluLayer",
    "MaxPoolingLayer",
    "PoolingLayer",
    "ReluLayer",
    "SigmoidLayer",
    "SoftmaxLayer",
    "TanhLayer",
    "TrainableLayer",
    "activation_layer",
    "pooling_layer",
]
