"""Errors raised while loading or dumping networks."""

from __future__ import annotations

from ..core.errors import CNNException


class PersistenceException(CNNException):
    pass


class InvalidWeights(PersistenceException):
    pass


class InvalidFilters(PersistenceException):
    pass


class CouldNotParseXmlFile(PersistenceException):
    pass


class CannotCreateFilesOnDisk(PersistenceException, OSError):
    pass


class InvalidConvolutionalNeuralNetwork(PersistenceException):
    """The description parses but does not form a valid network."""


__all__ = [
    "CannotCreateFilesOnDisk",
    "CouldNotParseXmlFile",
    "InvalidConvolutionalNeuralNetwork",
    "InvalidFilters",
    "InvalidWeights",
    "PersistenceException",
]
