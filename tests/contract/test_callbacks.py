import math

from convnets.training import CallbackChain, KeepBestController, TrainingSettings


def _feed(callback, metrics):
    settings = TrainingSettings()
    for epoch, metric in enumerate(metrics, start=1):
        callback(epoch, settings, 0.0, metric, 0.0)


def test_keep_best_saves_on_improvement_only():
    saved = []
    controller = KeepBestController(lambda: saved.append(controller.best))
    _feed(controller, [50.0, 40.0, math.nan, 60.0, 60.0])
    assert saved == [50.0, 60.0]
    assert controller.best_epoch == 4


def test_keep_best_for_errors_prefers_lower_values():
    saved = []
    controller = KeepBestController(lambda: saved.append(controller.best), higher_is_better=False)
    _feed(controller, [0.5, 0.7, 0.2])
    assert saved == [0.5, 0.2]
    assert controller.best_epoch == 3


def test_zero_success_rate_still_counts_as_first_best():
    saved = []
    controller = KeepBestController(lambda: saved.append(True))
    _feed(controller, [0.0])
    assert saved == [True]


def test_callback_chain_forwards_in_order():
    calls = []
    chain = CallbackChain([lambda *args: calls.append(("a", args[0]))])
    chain.append(lambda *args: calls.append(("b", args[0])))
    _feed(chain, [1.0, 2.0])
    assert len(chain) == 2
    assert calls == [("a", 1), ("b", 1), ("a", 2), ("b", 2)]
