import math

import numpy as np
import pytest

from convnets.core.container import Dimensions, NumericContainer
from convnets.core.errors import (
    ConfigurationError,
    ErrorKind,
    InputImageDoesNotHaveCorrectDimensions,
    OperationalError,
    Outcome,
    TrainingDivergedError,
)
from convnets.core.fixed_point import fixed_point
from convnets.core.optimizers import Sgd
from convnets.core.types import ActivationFunction, LossFunctionType, TaskType
from convnets.layers import ActivationLayer, ConversionLayer, DropoutLayer, FullyConnectedLayer, MaxPoolingLayer
from convnets.training import ConvolutionalNeuralNetwork, TrainingSettings


def _linear_network(task_type=TaskType.CLASSIFICATION):
    network = ConvolutionalNeuralNetwork(task_type, rng=np.random.default_rng(0))
    layer = FullyConnectedLayer(Dimensions(2, 1, 1), 2, True, rng=network.rng)
    layer.set_neuron_weights(0, [1.0, 0.0, 0.0])
    layer.set_neuron_weights(1, [0.0, 1.0, 0.0])
    network.add_layer(layer)
    return network


def _sample(inputs, expected):
    return NumericContainer.from_flat(inputs), NumericContainer.from_flat(expected)


def test_outcome_success_and_failure():
    assert Outcome.success(3).ok
    assert Outcome.success(3).unwrap() == 3
    failure = Outcome.failure(ErrorKind.EMPTY_DATASET, "nothing")
    assert not failure.ok
    with pytest.raises(OperationalError, match="nothing"):
        failure.unwrap()
    with pytest.raises(InputImageDoesNotHaveCorrectDimensions):
        Outcome.failure(ErrorKind.SHAPE_MISMATCH, "bad").unwrap()


def test_empty_network_reports_no_layers():
    network = ConvolutionalNeuralNetwork()
    outcome = network.try_run(NumericContainer.from_flat([1.0]))
    assert outcome.error is ErrorKind.NO_LAYERS
    with pytest.raises(OperationalError):
        network.validate([_sample([1.0], [1.0])])
    with pytest.raises(OperationalError):
        network.train(TrainingSettings(epochs=1), [_sample([1.0], [1.0])], "mse", Sgd())


def test_empty_dataset_and_shape_mismatch():
    network = _linear_network()
    assert network.try_train(TrainingSettings(), [], "mse", Sgd()).error is ErrorKind.EMPTY_DATASET
    assert network.try_validate([]).error is ErrorKind.EMPTY_DATASET
    with pytest.raises(InputImageDoesNotHaveCorrectDimensions):
        network.run(NumericContainer.from_flat([1.0, 2.0, 3.0]))
    with pytest.raises(InputImageDoesNotHaveCorrectDimensions):
        network.validate([_sample([1.0, 2.0], [1.0])])
    periodic = TrainingSettings(epochs=1, periodic_validation=True)
    outcome = network.try_train(periodic, [_sample([1.0, 2.0], [0.0, 1.0])], "mse", Sgd())
    assert outcome.error is ErrorKind.EMPTY_DATASET


def test_layers_must_chain():
    network = _linear_network()
    with pytest.raises(ConfigurationError):
        network.add_layer(MaxPoolingLayer(Dimensions(4, 4, 1), 2, 2))
    network.add_layer(ActivationLayer(Dimensions(2, 1, 1), ActivationFunction.SIGMOID))
    assert network.input_size == Dimensions(2, 1, 1)
    assert network.output_size == Dimensions(2, 1, 1)
    assert len(network) == 2


def test_precision_changes_only_through_conversion_layers():
    network = _linear_network()
    narrow = fixed_point(8, 8)
    with pytest.raises(ConfigurationError, match="ConversionLayer"):
        network.add_layer(ActivationLayer(Dimensions(2, 1, 1), ActivationFunction.SIGMOID, forward_type=narrow))
    with pytest.raises(ConfigurationError):
        network.add_layer(ConversionLayer(Dimensions(2, 1, 1), narrow, input_type=fixed_point(4, 4)))
    assert len(network) == 1

    network.add_layer(ConversionLayer(Dimensions(2, 1, 1), narrow))
    network.add_layer(ActivationLayer(Dimensions(2, 1, 1), ActivationFunction.SIGMOID, forward_type=narrow))
    output = network.run(NumericContainer.from_flat([0.0, 0.0]))
    assert output.element_type is narrow
    assert [float(v) for v in output] == [0.5, 0.5]


def test_run_returns_a_copy_and_skips_dropout():
    network = _linear_network()
    network.add_layer(DropoutLayer(Dimensions(2, 1, 1), 1.0))
    assert len(network.forward_only_layers) == 1
    output = network.run(NumericContainer.from_flat([3.0, 4.0]))
    assert output.to_list() == [3.0, 4.0]
    output[0] = 100.0
    assert network.all_layers[0].output.to_list() == [3.0, 4.0]


def test_print_results_format(capsys):
    network = _linear_network()
    network.enable_output()
    network.run(NumericContainer.from_flat([0.25, 0.75]))
    assert capsys.readouterr().out == "0.250 0.750\nOutput class is 1\n\n"

    regression = _linear_network(TaskType.REGRESSION)
    regression.enable_output()
    regression.run(NumericContainer.from_flat([0.25, 0.75]))
    assert capsys.readouterr().out == "0.25000 0.75000\n"


def test_output_is_silent_unless_enabled(capsys):
    network = _linear_network()
    network.run(NumericContainer.from_flat([0.25, 0.75]))
    network.validate([_sample([0.25, 0.75], [0.0, 1.0])])
    assert capsys.readouterr().out == ""


def test_validation_metrics(capsys):
    network = _linear_network()
    network.enable_output()
    data = [_sample([0.0, 1.0], [0.0, 1.0]), _sample([1.0, 0.0], [0.0, 1.0])]
    assert network.validate(data) == 50.0
    out = capsys.readouterr().out
    assert "Succesfully classified 1 out of 2" in out
    assert "\tSuccess rate: 50 %" in out

    regression = _linear_network(TaskType.REGRESSION)
    assert regression.validate([_sample([1.0, 2.0], [1.0, 4.0])]) == pytest.approx(0.25)


def test_epoch_callback_and_training_flag():
    network = _linear_network()
    seen = []

    def callback(epoch, settings, loss, metric, seconds):
        seen.append((epoch, loss, metric))
        assert network.training

    network.set_on_epoch_finished_callback(callback)
    data = [_sample([1.0, 0.0], [1.0, 0.0]), _sample([0.0, 1.0], [0.0, 1.0])]
    network.train(TrainingSettings(epochs=3), data, LossFunctionType.MEAN_SQUARED_ERROR, Sgd())
    assert [epoch for epoch, _, _ in seen] == [1, 2, 3]
    assert all(math.isnan(metric) for _, _, metric in seen)
    assert not network.training


def test_periodic_validation_feeds_callback():
    network = _linear_network()
    metrics = []
    network.set_on_epoch_finished_callback(lambda e, s, loss, metric, t: metrics.append(metric))
    data = [_sample([1.0, 0.0], [1.0, 0.0])]
    network.train(TrainingSettings(epochs=2, periodic_validation=True), data, "mse", Sgd(), data)
    assert metrics == [100.0, 100.0]


def test_divergence_aborts_before_later_samples_and_updates():
    network = _linear_network()
    layer = network.all_layers[0]
    before = layer.get_weights()
    epochs = []
    network.set_on_epoch_finished_callback(lambda epoch, *rest: epochs.append(epoch))
    data = [_sample([1e200, 1e200], [0.0, 1.0]), _sample([1.0, 0.0], [0.0, 1.0]), _sample([0.0, 1.0], [1.0, 0.0])]
    with pytest.raises(TrainingDivergedError):
        with np.errstate(over="ignore", invalid="ignore"):
            network.train(TrainingSettings(epochs=2, batch_size=5), data, "mse", Sgd())
    assert not network.training
    assert layer.output.to_list() == [1e200, 1e200]
    assert layer.examples == 0
    assert layer.get_weights() == before
    assert epochs == []


def test_progress_and_epoch_lines(capsys):
    network = _linear_network()
    network.enable_output()
    data = [_sample([1.0, 0.0], [1.0, 0.0])] * 4
    network.train(TrainingSettings(epochs=1, error_output_rate=2), list(data), "mse", Sgd())
    out = capsys.readouterr().out
    assert "(2/4): 0" in out
    assert "(4/4): " in out
    assert "Error in epoch 1: " in out
    assert "Total training time: " in out


def test_shuffle_permutes_in_place():
    network = _linear_network()
    data = [_sample([float(i), 0.0], [0.0, 0.0]) for i in range(6)]
    original = list(data)
    network.train(TrainingSettings(epochs=1, shuffle=True), data, "mse", Sgd(learning_rate=1e-6))
    assert sorted(id(s) for s in data) == sorted(id(s) for s in original)


def test_set_output_is_deprecated():
    network = _linear_network()
    with pytest.warns(DeprecationWarning):
        network.set_output(True)
    assert network.output_enabled
