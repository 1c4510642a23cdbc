import numpy as np

from convnets.core.container import Dimensions, NumericContainer
from convnets.core.optimizers import Adam, Sgd
from convnets.core.types import ActivationFunction, LossFunctionType, PoolingOperation, TaskType
from convnets.layers import ActivationLayer, ConvolutionalLayer, FullyConnectedLayer, pooling_layer
from convnets.training import ConvolutionalNeuralNetwork, NeuralNetwork, TrainingSettings

OR_DATA = [([0.0, 0.0], [0.0]), ([0.0, 1.0], [1.0]), ([1.0, 0.0], [1.0]), ([1.0, 1.0], [1.0])]


def test_logistic_regression_learns_or():
    network = NeuralNetwork(
        2, [], (1, ActivationFunction.SIGMOID), task_type=TaskType.REGRESSION, rng=np.random.default_rng(0)
    )
    network.train(TrainingSettings(epochs=500), OR_DATA, LossFunctionType.MEAN_SQUARED_ERROR, Sgd(2.0))

    assert network.run([0.0, 0.0])[0] < 0.3
    for inputs, _ in OR_DATA[1:]:
        assert network.run(inputs)[0] > 0.7


def test_softmax_classifier_with_adam_separates_clusters():
    data = [
        ([1.0, 0.0], [1.0, 0.0]),
        ([0.0, 1.0], [0.0, 1.0]),
        ([0.9, 0.2], [1.0, 0.0]),
        ([0.1, 0.8], [0.0, 1.0]),
    ]
    network = NeuralNetwork(2, [(4, ActivationFunction.TANH)], (2, ActivationFunction.SOFTMAX), rng=np.random.default_rng(3))
    network.train(TrainingSettings(epochs=100, batch_size=2), data, "ce", Adam(0.05))
    assert network.validate(data) == 100.0


def _stripe(left: bool) -> NumericContainer:
    image = np.zeros((4, 4))
    if left:
        image[:, :2] = 1.0
    else:
        image[:, 2:] = 1.0
    return NumericContainer(Dimensions(4, 4, 1), data=image.ravel())


def test_small_convolutional_network_reduces_loss():
    rng = np.random.default_rng(11)
    network = ConvolutionalNeuralNetwork(rng=rng)
    conv = ConvolutionalLayer(Dimensions(4, 4, 1), 1, 2, 3, 1, True, rng=rng)
    network.add_layer(conv)
    network.add_layer(ActivationLayer(conv.output_size, ActivationFunction.TANH))
    pool = pooling_layer(PoolingOperation.MAX, conv.output_size, 2, 2)
    network.add_layer(pool)
    network.add_layer(FullyConnectedLayer(pool.output_size, 2, rng=rng))
    network.add_layer(ActivationLayer(Dimensions(2, 1, 1), ActivationFunction.SOFTMAX))

    left = NumericContainer(Dimensions(2, 1, 1), data=[1.0, 0.0])
    right = NumericContainer(Dimensions(2, 1, 1), data=[0.0, 1.0])
    data = [(_stripe(True), left), (_stripe(False), right)]

    losses = []
    network.set_on_epoch_finished_callback(lambda epoch, settings, loss, metric, seconds: losses.append(loss))
    network.train(TrainingSettings(epochs=40, shuffle=True), data, LossFunctionType.CROSS_ENTROPY, Sgd(0.5))

    assert len(losses) == 40
    assert losses[-1] < losses[0]
    assert network.validate(data) == 100.0
