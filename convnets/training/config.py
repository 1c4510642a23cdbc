"""Run configuration: presets, JSON/YAML override files and merging."""

from __future__ import annotations

import inspect
import json
from copy import deepcopy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping

from ..core.optimizers import REGISTRY as OPTIMIZER_REGISTRY
from ..core.optimizers import Optimizer
from ..core.types import LossFunctionType
from .settings import TrainingSettings

_SECTIONS = ("training", "optimizer", "loss")

_PRESETS: Dict[str, Mapping[str, object]] = {
    "mnist-sgd": {
        "training": {"epochs": 10, "batch_size": 1, "periodic_validation": True, "shuffle": True},
        "optimizer": {"name": "sgd", "learning_rate": 0.01},
        "loss": "ce",
    },
    "mnist-adam": {
        "training": {"epochs": 5, "batch_size": 16, "periodic_validation": True, "shuffle": True},
        "optimizer": {"name": "adam", "learning_rate": 0.001},
        "loss": "ce",
    },
    "regression-mse": {
        "training": {"epochs": 100, "batch_size": 4, "epoch_output_rate": 10},
        "optimizer": {"name": "sgdm", "learning_rate": 0.01, "momentum": 0.9},
        "loss": "mse",
    },
}


def _default_sections() -> Dict[str, Any]:
    return {"training": {}, "optimizer": {"name": "sgd"}, "loss": LossFunctionType.MEAN_SQUARED_ERROR.value}


@dataclass
class RunConfig:
    """Training settings, optimizer choice and loss name for one run."""

    training: Dict[str, Any] = field(default_factory=dict)
    optimizer: Dict[str, Any] = field(default_factory=lambda: {"name": "sgd"})
    loss: str = LossFunctionType.MEAN_SQUARED_ERROR.value

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "RunConfig":
        unknown = set(data) - set(_SECTIONS)
        if unknown:
            raise KeyError(f"Unknown config sections: {sorted(unknown)}. Allowed keys: {list(_SECTIONS)}")
        merged = merge(_default_sections(), data)
        config = cls(
            training=dict(merged["training"]),
            optimizer=dict(merged["optimizer"]),
            loss=str(merged["loss"]),
        )
        config.validate()
        return config

    def validate(self) -> None:
        self.build_settings()
        self.build_optimizer()
        self.loss_function()

    def build_settings(self) -> TrainingSettings:
        return TrainingSettings.from_mapping(self.training)

    def build_optimizer(self) -> Optimizer:
        params = dict(self.optimizer)
        name = params.pop("name", "sgd")
        spec = OPTIMIZER_REGISTRY.get(name)
        allowed = [p for p in inspect.signature(spec.factory).parameters if p != "self"]
        unknown = set(params) - set(allowed)
        if unknown:
            raise KeyError(
                f"Unknown {name} optimizer parameters: {sorted(unknown)}. Allowed keys: {allowed}"
            )
        return spec.factory(**params)

    def loss_function(self) -> LossFunctionType:
        try:
            return LossFunctionType(self.loss)
        except ValueError as exc:
            allowed = [item.value for item in LossFunctionType]
            raise KeyError(f"Unknown loss {self.loss!r}. Allowed keys: {allowed}") from exc

    def to_dict(self) -> Dict[str, Any]:
        return {"training": dict(self.training), "optimizer": dict(self.optimizer), "loss": self.loss}


def merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Deep-merge ``override`` into a copy of ``base``."""

    result: Dict[str, Any] = deepcopy(dict(base))
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(result.get(key), Mapping):
            result[key] = merge(result[key], value)
        else:
            result[key] = deepcopy(value)
    return result


def load_config(path: str | Path) -> Mapping[str, Any]:
    """Read a JSON or YAML mapping from ``path``."""

    path = Path(path)
    text = path.read_text()
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        try:
            import yaml  # type: ignore
        except Exception as exc:  # pragma: no cover - optional dependency
            raise RuntimeError("PyYAML is required to load config files in YAML format") from exc
        data = yaml.safe_load(text) or {}
    elif suffix == ".json":
        data = json.loads(text or "{}")
    else:
        raise ValueError(f"Unsupported config file type: {path.suffix}")

    if not isinstance(data, Mapping):
        raise TypeError(f"Config {path.name} must decode to a mapping")
    return data


def presets() -> Mapping[str, Mapping[str, object]]:
    return {name: deepcopy(cfg) for name, cfg in _PRESETS.items()}


def load_preset(name: str) -> Mapping[str, object]:
    try:
        return deepcopy(_PRESETS[name])
    except KeyError as exc:
        raise KeyError(f"Unknown preset: {name}. Available presets: {', '.join(sorted(_PRESETS))}") from exc


__all__ = ["RunConfig", "load_config", "load_preset", "merge", "presets"]
