import json

import numpy as np
import pytest

from cli.main import main, parse_args, run

NETWORK_XML = """<?xml version="1.0"?>
<convolutional_neural_network>
  <settings>
    <task type="classification"/>
    <input width="2" height="2" depth="1"/>
    <output width="2" height="1" depth="1"/>
  </settings>
  <architecture>
    <layer type="fully_connected">
      <output_layer size="2"/>
    </layer>
    <layer type="activation">
      <activation type="softmax"/>
    </layer>
  </architecture>
</convolutional_neural_network>
"""


@pytest.fixture
def workspace(tmp_path):
    (tmp_path / "net.xml").write_text(NETWORK_XML)
    images = [[255, 0, 0, 0], [0, 0, 0, 255], [200, 10, 0, 0], [0, 0, 10, 200]]
    labels = [0, 1, 0, 1]
    header = np.array([2051, len(images), 2, 2], dtype=">u4").tobytes()
    (tmp_path / "train-images.idx3-ubyte").write_bytes(header + np.asarray(images, dtype=np.uint8).tobytes())
    (tmp_path / "train-labels.idx1-ubyte").write_bytes(
        np.array([2049, len(labels)], dtype=">u4").tobytes() + bytes(labels)
    )
    return tmp_path


def _args(workspace, *extra):
    return ["-c", str(workspace / "net.xml"), "-s", "7", *extra]


def _images(workspace):
    return str(workspace / "train-images.idx3-ubyte")


def test_training_writes_metrics_and_saves_network(workspace, capsys):
    metrics = workspace / "metrics"
    status = run(_args(workspace, "-t", _images(workspace), "-e", "2", "--metrics-dir", str(metrics)))
    assert status == 0

    out = capsys.readouterr().out
    assert "Error in epoch 1:" in out
    assert "Total training time:" in out

    records = [json.loads(line) for line in (metrics / "metrics.jsonl").read_text().splitlines()]
    assert [r["epoch"] for r in records] == [1, 2]
    assert all(r["seed"] == 7 for r in records)
    assert (metrics / "metrics.csv").read_text().splitlines()[0].startswith("epoch,")
    summary = json.loads((metrics / "summary.json").read_text())
    assert summary["records"] == 2
    assert "loss" in summary["metrics"]
    assert not (metrics / "loss.png").exists()
    assert (workspace / "1_fc_layer.txt").exists()


def test_do_not_save_leaves_directory_untouched(workspace):
    status = run(_args(workspace, "-t", _images(workspace), "-e", "1", "--do-not-save"))
    assert status == 0
    assert not (workspace / "1_fc_layer.txt").exists()


def test_validation_only(workspace, capsys):
    assert run(_args(workspace, "-v", _images(workspace), "--validate-num", "2")) == 0
    out = capsys.readouterr().out
    assert "out of 2" in out
    assert "Success rate:" in out


def test_png_inference(workspace, capsys):
    import matplotlib.image as mpimg

    image = workspace / "digit.png"
    mpimg.imsave(str(image), np.array([[1.0, 0.0], [0.0, 0.0]]))
    assert run(_args(workspace, "-g", "-i", str(image))) == 0
    assert "Output class is" in capsys.readouterr().out


def test_inference_with_wrong_image_size_reports_error(workspace, capsys):
    import matplotlib.image as mpimg

    image = workspace / "large.png"
    mpimg.imsave(str(image), np.zeros((3, 3)))
    assert run(_args(workspace, "-g", "-i", str(image))) == 1
    assert "expects 2x2x1" in capsys.readouterr().err


def test_keep_best_saves_during_training(workspace):
    images = _images(workspace)
    status = run(_args(workspace, "-t", images, "-v", images, "-e", "2", "--periodic-validation", "--keep-best"))
    assert status == 0
    assert (workspace / "1_fc_layer.txt").exists()


@pytest.mark.parametrize(
    "argv, message",
    [
        ([], "No parameters given."),
        (["-t", "data.idx3"], "XML representation of CNN required."),
        (["-c", "net.xml"], "No mode chosen."),
        (["-c", "net.xml", "-i", "a.png", "-t", "data.idx3"], "Cannot run input mode along validation/training."),
        (["-c", "net.xml", "-t", "data.idx3", "--validate-num", "3"], "Cannot set validation num/offset"),
        (["-c", "net.xml", "-t", "data.idx3", "--keep-best", "--do-not-save"], "Cannot keep best if saving"),
        (["-c", "net.xml", "-t", "data.idx3", "--keep-best"], "periodic validation is not enabled"),
        (["-c", "net.xml", "-t", "data.idx3", "--train-num", "-1"], "must not be negative"),
        (["-c", "net.xml", "-t", "data.idx3", "--optimizer", "rmsprop"], "invalid choice"),
    ],
)
def test_argument_errors(argv, message, capsys):
    assert run(argv) == 1
    err = capsys.readouterr().err
    assert err.startswith("Error when parsing arguments:")
    assert message in err
    assert 'Use "-h" for help.' in err


def test_load_failure_is_reported(tmp_path, capsys):
    assert run(["-c", str(tmp_path / "missing.xml"), "-v", "data.idx3"]) == 1
    assert "Could not load network from given file." in capsys.readouterr().err


def test_empty_training_dataset(workspace, capsys):
    status = run(_args(workspace, "-t", _images(workspace), "--train-offset", "10"))
    assert status == 1
    assert "No data to train on, dataset empty." in capsys.readouterr().out


def test_config_file_and_flag_precedence(workspace):
    config = workspace / "run.json"
    config.write_text(json.dumps({"training": {"epochs": 3}, "optimizer": {"name": "adam", "learning_rate": 0.01}}))
    metrics = workspace / "metrics"
    images = _images(workspace)

    assert run(_args(workspace, "-t", images, "--config", str(config), "--metrics-dir", str(metrics), "--do-not-save")) == 0
    assert len((metrics / "metrics.jsonl").read_text().splitlines()) == 3

    flags = ["--config", str(config), "-e", "1", "--metrics-dir", str(metrics), "--do-not-save"]
    assert run(_args(workspace, "-t", images, *flags)) == 0
    assert len((metrics / "metrics.jsonl").read_text().splitlines()) == 1


def test_invalid_config_is_a_parsing_error(workspace, capsys):
    config = workspace / "run.json"
    config.write_text(json.dumps({"schedule": {}}))
    assert run(_args(workspace, "-t", _images(workspace), "--config", str(config))) == 1
    assert "Error when parsing arguments:" in capsys.readouterr().err


def test_parse_args_accepts_multiple_files():
    args = parse_args(["-c", "net.xml", "-t", "a.idx3", "b.idx3", "--loss-function", "CE"])
    assert args.train == ["a.idx3", "b.idx3"]
    assert args.loss_function == "CE"


def test_main_lists_presets(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["--list-presets"])
    assert excinfo.value.code == 0
    assert "mnist-adam" in capsys.readouterr().out.split()


def test_validation_on_binary_records_with_relative_paths(workspace, monkeypatch, capsys):
    records = bytes([0, 255, 0, 0, 0]) + bytes([1, 0, 0, 0, 255]) + bytes([1, 0, 0, 10, 200])
    (workspace / "data_batch.bin").write_bytes(records)
    monkeypatch.chdir(workspace)
    assert run(["-c", "net.xml", "-s", "1", "-v", "data_batch.bin", "--validate-offset", "1"]) == 0
    assert "out of 2" in capsys.readouterr().out
