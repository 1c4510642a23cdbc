"""Dataset format registry: file-name detection and loading."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, MutableMapping

from ..core.container import Dimensions
from ..core.types import Dataset
from . import binary, idx, png
from .errors import UnknownDatasetFormat

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadRequest:
    """Everything a format loader needs besides the file path."""

    input_size: Dimensions
    output_size: Dimensions
    skip: int = 0
    limit: int = 0
    grayscale: bool = False

    @property
    def classes(self) -> int:
        return self.output_size.size


Matcher = Callable[[str], bool]
Loader = Callable[[str, LoadRequest], Dataset]


@dataclass(frozen=True)
class DatasetFormat:
    name: str
    matcher: Matcher
    loader: Loader


_REGISTRY: MutableMapping[str, DatasetFormat] = {}


def register_format(name: str, matcher: Matcher, loader: Loader) -> None:
    """Register ``loader`` for files accepted by ``matcher``; the first match wins."""

    _REGISTRY[name] = DatasetFormat(name, matcher, loader)


def formats() -> Dict[str, DatasetFormat]:
    return dict(_REGISTRY)


def detect_format(path: str | Path) -> str:
    name = str(path)
    for fmt in _REGISTRY.values():
        if fmt.matcher(name):
            return fmt.name
    available = ", ".join(sorted(_REGISTRY))
    raise UnknownDatasetFormat(
        f"Input data file {name} not detected as any known format ({available}) based on its extension"
    )


def load_dataset(
    files: Iterable[str | Path],
    input_size: Dimensions,
    output_size: Dimensions,
    skip: int = 0,
    limit: int = 0,
    grayscale: bool = False,
) -> Dataset:
    """Load and concatenate every file, applying ``skip``/``limit`` per file."""

    request = LoadRequest(input_size, output_size, skip, limit, grayscale)
    dataset: Dataset = []
    for path in files:
        fmt = _REGISTRY[detect_format(path)]
        samples = fmt.loader(str(path), request)
        logger.info("Loaded %d sample(s) from %s (%s)", len(samples), path, fmt.name)
        dataset.extend(samples)
    return dataset


def _extension_contains(token: str) -> Matcher:
    pattern = re.compile(rf".+\.[^.]*{token}[^.]*$")
    return lambda name: pattern.fullmatch(name) is not None


def _load_idx(path: str, request: LoadRequest) -> Dataset:
    return idx.parse_labelled_images(path, idx.labels_path_for(path), request.classes, request.skip, request.limit)


def _load_binary(path: str, request: LoadRequest) -> Dataset:
    width, height, depth = request.input_size.as_tuple()
    return binary.parse_labelled_images(path, width, height, depth, request.classes, request.skip, request.limit)


def _load_png_descriptor(path: str, request: LoadRequest) -> Dataset:
    return png.parse_labelled_images(path, request.classes, request.grayscale, request.skip, request.limit)


register_format("idx", _extension_contains("idx"), _load_idx)
register_format("bin", _extension_contains("bin"), _load_binary)
register_format("txt", lambda name: name.endswith(".txt") and len(name) > len(".txt"), _load_png_descriptor)


__all__ = ["DatasetFormat", "LoadRequest", "detect_format", "formats", "load_dataset", "register_format"]
