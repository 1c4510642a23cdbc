"""Hyperparameters controlling one call to ``train``."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Mapping

from ..core.errors import ConfigurationError


@dataclass
class TrainingSettings:
    """Epoch loop settings.

    ``error_output_rate`` of ``0`` disables the per-sample progress line and
    ``epoch_output_rate`` controls how often the epoch error is printed.
    """

    epochs: int = 10
    batch_size: int = 1
    epoch_output_rate: int = 1
    error_output_rate: int = 0
    periodic_validation: bool = False
    shuffle: bool = False

    def __post_init__(self) -> None:
        for name in ("epochs", "batch_size", "epoch_output_rate"):
            if int(getattr(self, name)) <= 0:
                raise ConfigurationError(f"{name} must be a positive integer, got {getattr(self, name)!r}")
        if int(self.error_output_rate) < 0:
            raise ConfigurationError(f"error_output_rate must be non-negative, got {self.error_output_rate!r}")

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "TrainingSettings":
        allowed = {f.name for f in fields(cls)}
        unknown = set(values) - allowed
        if unknown:
            raise KeyError(
                f"Unknown training settings: {sorted(unknown)}. Allowed keys: {sorted(allowed)}"
            )
        return cls(**dict(values))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


__all__ = ["TrainingSettings"]
