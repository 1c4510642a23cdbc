"""Reporting utilities for convnets training runs."""

from .metrics import CsvSink, EpochMetricsCallback, JsonlSink
from .plots import PlotAdapter
from .summary import compute_auc, write_summary

__all__ = ["CsvSink", "EpochMetricsCallback", "JsonlSink", "PlotAdapter", "compute_auc", "write_summary"]
