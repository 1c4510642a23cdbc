"""Parser for raw binary records: one label byte followed by the image bytes."""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np

from ..core.container import Dimensions, NumericContainer
from ..core.types import Dataset
from .errors import CouldNotOpenFile, ImagesAreNotConsistent
from .idx import NORMALIZATION_FACTOR, one_hot

logger = logging.getLogger(__name__)


def parse_labelled_images(
    path: str | Path,
    width: int,
    height: int,
    depth: int,
    classes: int,
    skip: int = 0,
    limit: int = 0,
) -> Dataset:
    """Read records whose pixels are stored depth-major, then row, then column."""

    try:
        raw = Path(path).read_bytes()
    except OSError as exc:
        raise CouldNotOpenFile(f"Could not open binary file {path}: {exc}") from exc

    dims = Dimensions(width, height, depth)
    record = dims.size + 1
    if len(raw) % record:
        raise ImagesAreNotConsistent(
            f"{path} holds {len(raw)} bytes, not a multiple of the {record}-byte record size"
        )
    records = np.frombuffer(raw, dtype=np.uint8).reshape(-1, record)
    stop = len(records) if limit == 0 else min(len(records), skip + limit)
    selected = records[skip:stop]
    targets = one_hot(selected[:, 0].astype(np.int64), classes)
    pixels = selected[:, 1:] / NORMALIZATION_FACTOR
    logger.debug("Parsed %d binary sample(s) of %s from %s", len(selected), dims, path)
    return [
        (NumericContainer(dims, data=pixels[i]), NumericContainer(Dimensions(classes, 1, 1), data=targets[i]))
        for i in range(len(selected))
    ]


__all__ = ["parse_labelled_images"]
