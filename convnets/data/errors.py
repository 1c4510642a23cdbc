"""Errors raised while reading datasets."""

from __future__ import annotations

from ..core.errors import CNNException


class DatasetException(CNNException):
    pass


class CouldNotOpenFile(DatasetException, OSError):
    pass


class ImagesAreNotConsistent(DatasetException):
    """Images or labels within one dataset disagree in size or shape."""


class UnknownDatasetFormat(DatasetException, ValueError):
    pass


__all__ = ["CouldNotOpenFile", "DatasetException", "ImagesAreNotConsistent", "UnknownDatasetFormat"]
