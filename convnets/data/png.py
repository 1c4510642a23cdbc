"""PNG inputs decoded through matplotlib, plus descriptor-file datasets."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Tuple

import numpy as np

from ..core.container import Dimensions, NumericContainer
from ..core.types import Dataset
from .errors import CouldNotOpenFile, ImagesAreNotConsistent

logger = logging.getLogger(__name__)


def parse_input_image(path: str | Path, grayscale: bool) -> NumericContainer:
    """Decode a PNG into a ``width x height x (1|3)`` container with values in [0, 1]."""

    import matplotlib.image as mpimg  # imported lazily; decoding needs no backend

    try:
        pixels = np.asarray(mpimg.imread(str(path)), dtype=np.float64)
    except (OSError, ValueError, SyntaxError) as exc:
        raise CouldNotOpenFile(f"PNG file {path} could not be opened: {exc}") from exc
    if pixels.ndim == 2:
        pixels = np.repeat(pixels[:, :, None], 3, axis=2)
    channels = pixels[:, :, :1] if grayscale else pixels[:, :, :3]
    return NumericContainer.from_array(np.transpose(channels, (2, 0, 1)))


def parse_descriptor_line(line: str) -> Tuple[str, List[float]]:
    parts = line.split()
    if not parts:
        raise ImagesAreNotConsistent("Empty descriptor line")
    try:
        return parts[0], [float(value) for value in parts[1:]]
    except ValueError as exc:
        raise ImagesAreNotConsistent(f"Invalid expected output in descriptor line {line!r}") from exc


def parse_labelled_images(
    descriptor: str | Path,
    classes: int,
    grayscale: bool,
    skip: int = 0,
    limit: int = 0,
) -> Dataset:
    """Read ``relative/path.png v0 v1 ...`` lines relative to the descriptor's directory."""

    descriptor = Path(descriptor)
    try:
        lines = [line for line in descriptor.read_text().splitlines() if line.strip()]
    except OSError as exc:
        raise CouldNotOpenFile(f"Could not open descriptor {descriptor}: {exc}") from exc

    stop = len(lines) if limit == 0 else min(len(lines), skip + limit)
    out: Dataset = []
    first: Dimensions | None = None
    for line in lines[skip:stop]:
        relative, expected = parse_descriptor_line(line)
        image_path = descriptor.parent / relative
        if len(expected) != classes:
            raise ImagesAreNotConsistent(
                f"{relative} lists {len(expected)} expected value(s), the network has {classes} output(s)"
            )
        if not image_path.is_file():
            raise CouldNotOpenFile(f"Image {image_path} listed in {descriptor} does not exist")
        image = parse_input_image(image_path, grayscale)
        if first is None:
            first = image.dimensions
        elif image.dimensions != first:
            raise ImagesAreNotConsistent(f"Image {relative} is {image.dimensions}, expected {first}")
        out.append((image, NumericContainer(Dimensions(classes, 1, 1), data=expected)))
    logger.debug("Parsed %d PNG sample(s) from %s", len(out), descriptor)
    return out


__all__ = ["parse_descriptor_line", "parse_input_image", "parse_labelled_images"]
