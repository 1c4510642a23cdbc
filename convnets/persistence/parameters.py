"""Plain-text parameter files for convolutional and fully-connected layers."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Sequence, Tuple

import numpy as np

from ..core.container import Dimensions, NumericContainer
from ..core.limits import BACKWARD_TYPE
from ..core.types import Array
from .errors import CannotCreateFilesOnDisk, InvalidFilters, InvalidWeights


def _format(value: float) -> str:
    return repr(float(value))


def _write(path: Path, text: str, what: str) -> None:
    try:
        path.write_text(text)
    except OSError as exc:
        raise CannotCreateFilesOnDisk(f"Could not save {what} to {path}: {exc}") from exc


def dump_weights(path: str | Path, weights: NumericContainer) -> None:
    """Write one weight per line in buffer order."""

    _write(Path(path), "".join(f"{_format(v)}\n" for v in weights.data), "fully connected weights")


def parse_weights(path: str | Path, input_neurons: int, output_neurons: int) -> NumericContainer:
    """Read weights of a layer with ``input_neurons`` inputs (plus bias) and ``output_neurons`` outputs."""

    try:
        lines = Path(path).read_text().splitlines()
    except OSError as exc:
        raise InvalidWeights(f"Could not load weights for fully connected layer from {path}: {exc}") from exc
    try:
        values = [float(line) for line in lines if line.strip()]
    except ValueError as exc:
        raise InvalidWeights(f"Weights file {path} contains a non-numeric line") from exc
    dims = Dimensions(input_neurons + 1, output_neurons, 1)
    if len(values) != dims.size:
        raise InvalidWeights(f"Weights file {path} holds {len(values)} value(s), expected {dims.size}")
    return NumericContainer(dims, BACKWARD_TYPE, data=values)


def dump_filters(path: str | Path, filters: Sequence[NumericContainer], biases: Iterable[float]) -> None:
    """Write each filter slice as rows, a blank line after every slice and filter, then the biases."""

    chunks: List[str] = []
    for filt in filters:
        planes = filt.as_array()
        for plane in planes:
            for row in plane:
                chunks.append("".join(f"{_format(v)} " for v in row) + "\n")
            chunks.append("\n")
        chunks.append("\n")
    chunks.append("\n")
    chunks.extend(f"{_format(b)}\n" for b in biases)
    _write(Path(path), "".join(chunks), "convolutional filters")


def parse_filters(
    path: str | Path,
    filter_count: int,
    extent: int,
    depth: int,
) -> Tuple[List[NumericContainer], Array]:
    """Read ``filter_count`` filters of ``extent x extent x depth`` followed by their biases."""

    try:
        lines = [line.split() for line in Path(path).read_text().splitlines() if line.strip()]
    except OSError as exc:
        raise InvalidFilters(f"Could not load filters for convolutional layer from {path}: {exc}") from exc

    rows_per_filter = extent * depth
    needed = filter_count * rows_per_filter
    if len(lines) < needed:
        raise InvalidFilters(f"Filters file {path} holds {len(lines)} row(s), expected at least {needed}")
    try:
        filters: List[NumericContainer] = []
        for index in range(filter_count):
            rows = lines[index * rows_per_filter : (index + 1) * rows_per_filter]
            if any(len(row) != extent for row in rows):
                raise InvalidFilters(f"Could not load filter {index} from {path} due to inconsistent size")
            values = [float(v) for row in rows for v in row]
            filters.append(NumericContainer(Dimensions(extent, extent, depth), BACKWARD_TYPE, data=values))
        tail = lines[needed:]
        if len(tail) < filter_count or any(len(row) != 1 for row in tail[:filter_count]):
            raise InvalidFilters(f"Filters file {path} does not list {filter_count} bias value(s)")
        biases = np.array([float(row[0]) for row in tail[:filter_count]], dtype=np.float64)
    except ValueError as exc:
        raise InvalidFilters(f"Filters file {path} contains a non-numeric value") from exc
    return filters, biases


__all__ = ["dump_filters", "dump_weights", "parse_filters", "parse_weights"]
