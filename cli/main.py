"""Command line interface for training, validating and running convolutional networks."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Iterable, List, Optional

import numpy as np

from convnets.core.errors import CNNException
from convnets.core.types import TaskType
from convnets.data import load_dataset
from convnets.data.png import parse_input_image
from convnets.persistence import Persistence, mapper
from convnets.persistence.errors import PersistenceException
from convnets.reporting import CsvSink, EpochMetricsCallback, JsonlSink, PlotAdapter, write_summary
from convnets.training import (
    CallbackChain,
    ConvolutionalNeuralNetwork,
    KeepBestController,
    RunConfig,
    load_config,
    load_preset,
    merge,
    presets,
)

logger = logging.getLogger(__name__)


class ArgumentError(Exception):
    """Invalid command line arguments."""


class _Parser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # type: ignore[override]
        raise ArgumentError(message)


def _build_parser() -> argparse.ArgumentParser:
    parser = _Parser(prog="convnets", description=__doc__)

    common = parser.add_argument_group("Common")
    common.add_argument("-c", "--cnn", type=Path, metavar="FILE", help="Input XML file with CNN description.")
    common.add_argument(
        "-g", "--grayscale", action="store_true", help="Specifies that we are working with grayscale PNG images."
    )

    inference = parser.add_argument_group("Inference")
    inference.add_argument("-i", "--input", type=Path, metavar="FILE", help="Input PNG image for inference.")

    validation = parser.add_argument_group("Validation")
    validation.add_argument("-v", "--validate", nargs="+", metavar="FILE", help="Validation data files.")
    validation.add_argument("--validate-offset", type=int, metavar="UINT", help="How many validation samples to skip.")
    validation.add_argument("--validate-num", type=int, metavar="UINT", help="How much validation data to use, 0 == all.")

    training = parser.add_argument_group("Training")
    training.add_argument("-t", "--train", nargs="+", metavar="FILE", help="Training data files.")
    training.add_argument("--train-offset", type=int, default=0, metavar="UINT", help="How many training samples to skip.")
    training.add_argument("--train-num", type=int, default=0, metavar="UINT", help="How much training data to use, 0 == all.")
    training.add_argument("-s", "--seed", type=int, metavar="UINT", help="Seed for random generator.")
    training.add_argument("-e", "--epochs", type=int, metavar="UINT", help="Number of epochs for training.")
    training.add_argument("-l", "--learning-rate", type=float, metavar="DOUBLE", help="Learning coefficient.")
    training.add_argument("-b", "--batch-size", type=int, metavar="UINT", help="Batch size.")
    training.add_argument("--do-not-load", action="store_true", help="Do not load weights.")
    training.add_argument("--do-not-save", action="store_true", help="Do not save weights after training.")
    training.add_argument(
        "--optimizer", choices=sorted(mapper.OPTIMIZER_NAMES), help="Optimizer to be used."
    )
    training.add_argument(
        "--loss-function", choices=list(mapper.LOSS_NAMES), help="Loss function to be used."
    )
    training.add_argument(
        "--periodic-validation", action="store_true", help="Runs validation before and after each epoch."
    )
    training.add_argument(
        "--periodic-output", type=int, metavar="UINT", help="Outputs average error of each X samples."
    )
    training.add_argument(
        "--shuffle", action="store_true", help="Shuffle training data before each epoch begins."
    )
    training.add_argument(
        "--keep-best", action="store_true", help="Saves the network with the best validation result during training."
    )

    run = parser.add_argument_group("Run configuration")
    run.add_argument("--preset", choices=sorted(presets()), help="Preset training configuration.")
    run.add_argument("--config", type=Path, help="Optional JSON/YAML config override.")
    run.add_argument("--list-presets", action="store_true", help="List available presets and exit.")
    run.add_argument("--metrics-dir", type=Path, help="Directory for per-epoch metrics and the run summary.")
    run.add_argument("--enable-plots", action="store_true", help="Draw a loss curve into the metrics directory.")
    run.add_argument(
        "--log-level",
        default="warning",
        choices=["debug", "info", "warning", "error"],
        help="Logging verbosity for diagnostics.",
    )
    return parser


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    """Parse and cross-check arguments, raising :class:`ArgumentError` on misuse."""

    argv = list(sys.argv[1:] if argv is None else argv)
    if not argv:
        raise ArgumentError("No parameters given.")
    args = _build_parser().parse_args(argv)
    if args.list_presets:
        return args
    if args.cnn is None:
        raise ArgumentError("XML representation of CNN required.")

    inference = args.input is not None
    training = bool(args.train)
    validation = bool(args.validate)
    if not (inference or training or validation):
        raise ArgumentError("No mode chosen. Choose either inference, training and/or validation.")
    if inference and (training or validation):
        raise ArgumentError("Cannot run input mode along validation/training.")
    if not validation and (args.validate_offset is not None or args.validate_num is not None):
        raise ArgumentError("Cannot set validation num/offset without setting validation files.")
    if args.keep_best and args.do_not_save:
        raise ArgumentError("Cannot keep best if saving is not enabled.")
    if args.keep_best and not args.periodic_validation:
        raise ArgumentError("Cannot keep best if periodic validation is not enabled.")
    for name in ("train_offset", "train_num", "validate_offset", "validate_num", "seed"):
        value = getattr(args, name)
        if value is not None and value < 0:
            raise ArgumentError(f"--{name.replace('_', '-')} must not be negative.")
    return args


def build_run_config(args: argparse.Namespace) -> RunConfig:
    """Preset, then config file, then explicit command line flags."""

    data = dict(load_preset(args.preset)) if args.preset else {}
    if args.config:
        data = merge(data, load_config(args.config))

    training = dict(data.get("training", {}))
    if args.epochs is not None:
        training["epochs"] = args.epochs
    if args.batch_size is not None:
        training["batch_size"] = args.batch_size
    if args.periodic_output is not None:
        training["error_output_rate"] = args.periodic_output
    if args.periodic_validation:
        training["periodic_validation"] = True
    if args.shuffle:
        training["shuffle"] = True
    data["training"] = training

    optimizer = dict(data.get("optimizer", {"name": "sgd"}))
    if args.optimizer and args.optimizer != optimizer.get("name"):
        optimizer = {"name": args.optimizer}
    if args.learning_rate is not None:
        optimizer["learning_rate"] = args.learning_rate
    data["optimizer"] = optimizer

    if args.loss_function:
        data["loss"] = mapper.get_loss_function(args.loss_function).value
    return RunConfig.from_mapping(data)


class CommandLineInterface:
    """Load a network and run inference, training and/or validation on it."""

    def __init__(self, args: argparse.Namespace, config: RunConfig) -> None:
        self.args = args
        self.config = config
        self.seed = args.seed if args.seed is not None else int(time.time())
        self.rng = np.random.default_rng(self.seed)
        self.cnn_path: Path = args.cnn
        self.network: Optional[ConvolutionalNeuralNetwork] = None

    def load(self) -> int:
        try:
            self.network = Persistence(self.rng).load_network(self.cnn_path, not self.args.do_not_load)
        except PersistenceException as exc:
            print(f"Could not load network from given file.\n  Reason: {exc}", file=sys.stderr)
            return 1
        self.network.enable_output()
        return 0

    def dump(self) -> int:
        assert self.network is not None
        try:
            Persistence(self.rng).dump_network(self.network, self.cnn_path)
        except (PersistenceException, OSError) as exc:
            print(f"Could not save network to disk.\n  Reason: {exc}", file=sys.stderr)
            return 1
        return 0

    def execute(self) -> int:
        status = self.load()
        if status:
            return status
        assert self.network is not None
        try:
            if self.args.input is not None:
                return self.infer(self.args.input)
            return self.train_and_validate()
        except CNNException as exc:
            print(exc, file=sys.stderr)
            return 1

    def infer(self, path: Path) -> int:
        assert self.network is not None
        self.network.run(parse_input_image(path, self.args.grayscale))
        return 0

    def _dataset(self, files: Optional[List[str]], skip: Optional[int], limit: Optional[int]):
        assert self.network is not None
        if not files:
            return []
        return load_dataset(
            files,
            self.network.input_size,
            self.network.output_size,
            skip or 0,
            limit or 0,
            self.args.grayscale,
        )

    def train_and_validate(self) -> int:
        args = self.args
        settings = self.config.build_settings()
        validation_data = self._dataset(args.validate, args.validate_offset, args.validate_num)
        training_data = self._dataset(args.train, args.train_offset, args.train_num)

        status = 0
        if args.train:
            status = self.train(training_data, validation_data)
        if args.validate and not settings.periodic_validation:
            if status == 0:
                status = self.validate(validation_data)
            else:
                print("Problems occured during training, skipping validation.", file=sys.stderr)
        return status

    def _metrics_sinks(self) -> tuple[list[object], Optional[PlotAdapter]]:
        metrics_dir = self.args.metrics_dir
        if metrics_dir is None:
            return [], None
        plots = PlotAdapter(metrics_dir, enable_plots=self.args.enable_plots)
        sinks: list[object] = [
            JsonlSink(metrics_dir / "metrics.jsonl", seed=self.seed),
            CsvSink(metrics_dir / "metrics.csv"),
            plots,
        ]
        return sinks, plots

    def train(self, training_data, validation_data) -> int:
        assert self.network is not None
        if not training_data:
            print("No data to train on, dataset empty.")
            return 1

        callbacks = CallbackChain()
        if self.args.keep_best:
            higher_is_better = self.network.task_type is TaskType.CLASSIFICATION
            callbacks.append(KeepBestController(self.dump, higher_is_better=higher_is_better))
        sinks, plots = self._metrics_sinks()
        if sinks:
            callbacks.append(EpochMetricsCallback(sinks))
        self.network.set_on_epoch_finished_callback(callbacks if len(callbacks) else None)

        logger.info("Training with seed %d and config %s", self.seed, self.config.to_dict())
        self.network.train(
            self.config.build_settings(),
            training_data,
            self.config.loss_function(),
            self.config.build_optimizer(),
            validation_data,
        )

        if self.args.metrics_dir is not None:
            write_summary(self.args.metrics_dir / "metrics.jsonl", self.args.metrics_dir / "summary.json")
            if plots is not None:
                plots.close()

        if not self.args.do_not_save and not self.args.keep_best:
            return self.dump()
        return 0

    def validate(self, validation_data) -> int:
        assert self.network is not None
        if not validation_data:
            print("No data to validate on, dataset empty.")
            return 1
        self.network.validate(validation_data)
        return 0


def _parsing_error(reason: object) -> int:
    print(f"Error when parsing arguments: {reason}\nUse \"-h\" for help.", file=sys.stderr)
    return 1


def run(argv: Iterable[str] | None = None) -> int:
    try:
        args = parse_args(argv)
    except ArgumentError as exc:
        return _parsing_error(exc)

    logging.basicConfig(level=getattr(logging, args.log_level.upper()))

    if args.list_presets:
        for name in sorted(presets()):
            print(name)
        return 0

    try:
        config = build_run_config(args)
    except (KeyError, ValueError, TypeError, RuntimeError, OSError) as exc:
        return _parsing_error(exc)

    return CommandLineInterface(args, config).execute()


def main(argv: Iterable[str] | None = None) -> None:
    raise SystemExit(run(argv))


if __name__ == "__main__":
    main()
