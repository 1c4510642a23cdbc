"""Parser for IDX image/label files (the MNIST distribution format)."""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np

from ..core.container import Dimensions, NumericContainer
from ..core.types import Array, Dataset
from .errors import CouldNotOpenFile, ImagesAreNotConsistent

logger = logging.getLogger(__name__)

NORMALIZATION_FACTOR = 255.0
_IMAGES_HEADER = 16
_LABELS_HEADER = 8


def _read(path: str | Path) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as exc:
        raise CouldNotOpenFile(f"Could not open IDX file {path}: {exc}") from exc


def _window(count: int, skip: int, limit: int) -> tuple[int, int]:
    """Return the ``[start, stop)`` range selected by ``skip`` and ``limit`` (0 = all)."""

    if skip > count:
        return 0, 0
    stop = count if limit == 0 else min(count, skip + limit)
    return skip, stop


def one_hot(labels: Array, classes: int) -> Array:
    """Encode integer labels; labels outside ``[0, classes)`` become all-zero rows."""

    return (labels[:, None] == np.arange(classes)[None, :]).astype(np.float64)


def read_images(path: str | Path, skip: int = 0, limit: int = 0) -> tuple[Dimensions, Array]:
    """Return image dimensions and a ``(n, rows*cols)`` array of normalized pixels."""

    raw = _read(path)
    if len(raw) < _IMAGES_HEADER:
        raise ImagesAreNotConsistent(f"{path} is too short to hold an IDX image header")
    _, count, rows, cols = np.frombuffer(raw, dtype=">u4", count=4)
    size = int(rows) * int(cols)
    start, stop = _window(int(count), skip, limit)
    pixels = np.frombuffer(raw, dtype=np.uint8, offset=_IMAGES_HEADER)
    available = pixels.size // size if size else 0
    if available < stop:
        raise ImagesAreNotConsistent(f"{path} declares {count} images but holds {available}")
    images = pixels[start * size : stop * size].reshape(stop - start, size)
    return Dimensions(int(cols), int(rows), 1), images / NORMALIZATION_FACTOR


def read_labels(path: str | Path, skip: int = 0, limit: int = 0) -> Array:
    raw = _read(path)
    if len(raw) < _LABELS_HEADER:
        raise ImagesAreNotConsistent(f"{path} is too short to hold an IDX label header")
    _, count = np.frombuffer(raw, dtype=">u4", count=2)
    start, stop = _window(int(count), skip, limit)
    labels = np.frombuffer(raw, dtype=np.uint8, offset=_LABELS_HEADER)
    if labels.size < stop:
        raise ImagesAreNotConsistent(f"{path} declares {count} labels but holds {labels.size}")
    return labels[start:stop].astype(np.int64)


def labels_path_for(images_path: str | Path) -> str:
    """Derive the label file name from an image file name."""

    return str(images_path).replace("images", "labels").replace("idx3", "idx1")


def parse_labelled_images(
    images_path: str | Path,
    labels_path: str | Path,
    classes: int,
    skip: int = 0,
    limit: int = 0,
) -> Dataset:
    dims, images = read_images(images_path, skip, limit)
    labels = read_labels(labels_path, skip, limit)
    targets = one_hot(labels, classes)
    count = min(len(images), len(targets))
    logger.debug("Parsed %d IDX sample(s) of %s from %s", count, dims, images_path)
    return [
        (
            NumericContainer(dims, data=images[i]),
            NumericContainer(Dimensions(classes, 1, 1), data=targets[i]),
        )
        for i in range(count)
    ]


__all__ = ["labels_path_for", "one_hot", "parse_labelled_images", "read_images", "read_labels"]
