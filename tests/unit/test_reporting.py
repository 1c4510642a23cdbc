import csv
import json
import math

import pytest

from convnets.reporting import CsvSink, EpochMetricsCallback, JsonlSink, PlotAdapter, compute_auc, write_summary
from convnets.training import TrainingSettings


def test_jsonl_and_csv_sinks_record_epochs(tmp_path):
    jsonl = JsonlSink(tmp_path / "metrics.jsonl", seed=3)
    table = CsvSink(tmp_path / "metrics.csv")
    callback = EpochMetricsCallback([jsonl, table])
    settings = TrainingSettings()
    callback(1, settings, 0.5, 90.0, 0.1)
    callback(2, settings, 0.25, 95.0, 0.1)

    records = [json.loads(line) for line in (tmp_path / "metrics.jsonl").read_text().splitlines()]
    assert [r["epoch"] for r in records] == [1, 2]
    assert records[1]["loss"] == 0.25
    assert records[0]["validation"] == 90.0
    assert records[0]["seed"] == 3

    with (tmp_path / "metrics.csv").open() as handle:
        rows = list(csv.DictReader(handle))
    assert [row["epoch"] for row in rows] == ["1", "2"]
    assert float(rows[0]["loss"]) == 0.5


def test_nan_validation_metric_is_omitted():
    assert EpochMetricsCallback.metrics(1.0, math.nan, 2.0) == {"loss": 1.0, "seconds": 2.0}


def test_plain_callables_receive_metrics():
    seen = []
    EpochMetricsCallback([lambda epoch, values: seen.append((epoch, values["loss"]))])(4, TrainingSettings(), 0.5, math.nan, 0.0)
    assert seen == [(4, 0.5)]


def test_summary_is_deterministic(tmp_path):
    sink = JsonlSink(tmp_path / "metrics.jsonl")
    for epoch, loss in enumerate([4.0, 2.0, 1.0], start=1):
        sink.on_epoch(epoch, {"loss": loss})
    first = write_summary(tmp_path / "metrics.jsonl", tmp_path / "a.json", tail=2)
    second = write_summary(tmp_path / "metrics.jsonl", tmp_path / "b.json", tail=2)
    assert (tmp_path / "a.json").read_bytes() == (tmp_path / "b.json").read_bytes()

    summary = json.loads((tmp_path / "a.json").read_text())
    assert first.endswith("a.json") and second.endswith("b.json")
    assert summary["records"] == 3
    assert summary["metrics"]["loss"]["min"] == 1.0
    assert summary["metrics"]["loss"]["last"] == 1.0
    assert summary["metrics"]["loss"]["tail_auc"] == pytest.approx(1.5)


def test_compute_auc():
    assert compute_auc([]) == 0.0
    assert compute_auc([1.0, 1.0, 1.0]) == pytest.approx(2.0)


def test_plot_adapter_writes_png(tmp_path):
    adapter = PlotAdapter(tmp_path / "plots", enable_plots=True)
    adapter.on_epoch(1, {"loss": 1.0, "validation": 50.0})
    adapter.on_epoch(2, {"loss": 0.5, "validation": 75.0})
    path = adapter.close()
    assert path is not None and path.exists()


def test_disabled_plot_adapter_is_inert(tmp_path):
    adapter = PlotAdapter(tmp_path / "plots")
    adapter.on_epoch(1, {"loss": 1.0})
    assert adapter.close() is None
    assert not (tmp_path / "plots").exists()
