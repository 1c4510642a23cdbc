"""Core numerical primitives for convnets."""

from . import container, errors, fixed_point, limits, optimizers, types

__all__ = ["container", "errors", "fixed_point", "limits", "optimizers", "types"]
