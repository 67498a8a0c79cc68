"""
Unit Tests: Dataset and Training Driver
=======================================

Spiral generation, the per-example update cycle, the epoch loop and the
end-to-end spiral run.

Run with: pytest tests/test_train.py -v
Skip the long run with: pytest -m "not slow"
"""

import logging
import pytest
import numpy as np

from scalargrad import (
    MLP,
    TrainingConfig,
    accuracy,
    class_accuracy,
    classify,
    decision_boundary,
    make_spirals,
    predict,
    train,
    train_step,
)
from scalargrad.train import THRESHOLD


class TestSpirals:

    def test_shapes_and_labels(self) -> None:
        X, y = make_spirals(points_per_class=100, seed=0)
        assert X.shape == (200, 2)
        assert y.shape == (200,)
        assert list(y[:4]) == [0, 1, 0, 1]
        assert (y == 0).sum() == (y == 1).sum() == 100

    def test_seed_reproducible(self) -> None:
        X1, _ = make_spirals(seed=5)
        X2, _ = make_spirals(seed=5)
        X3, _ = make_spirals(seed=6)
        np.testing.assert_array_equal(X1, X2)
        assert not np.array_equal(X1, X3)

    def test_noise_free_arms_are_point_symmetric(self) -> None:
        X, _ = make_spirals(points_per_class=50, noise=0.0)
        np.testing.assert_allclose(X[1::2], -X[0::2], atol=1e-12)

    def test_radius_grows_along_arm(self) -> None:
        X, _ = make_spirals(points_per_class=20, noise=0.0)
        radii = np.linalg.norm(X[0::2], axis=1)
        np.testing.assert_allclose(radii, np.arange(20) / 20, atol=1e-12)

    def test_noise_bounded(self) -> None:
        clean, _ = make_spirals(points_per_class=30, noise=0.0, seed=1)
        noisy, _ = make_spirals(points_per_class=30, noise=0.1, seed=1)
        assert np.abs(noisy - clean).max() <= 0.1 + 1e-12

    def test_rejects_empty(self) -> None:
        with pytest.raises(ValueError):
            make_spirals(points_per_class=0)


class TestTrainingConfig:

    def test_defaults(self) -> None:
        config = TrainingConfig()
        assert config.epochs == 200
        assert config.learning_rate == 0.03

    def test_rate_decays(self) -> None:
        config = TrainingConfig(learning_rate=0.03, decay=0.001)
        assert config.rate_at(0) == 0.03
        assert config.rate_at(100) == pytest.approx(0.03 / 1.1)
        assert config.rate_at(199) < config.rate_at(1)

    @pytest.mark.parametrize("kwargs", [
        {"epochs": -1},
        {"learning_rate": 0.0},
        {"decay": -0.5},
        {"log_every": 0},
    ])
    def test_invalid(self, kwargs) -> None:
        with pytest.raises(ValueError):
            TrainingConfig(**kwargs)


class TestTrainStep:

    def test_returns_loss_and_resets_grads(self) -> None:
        model = MLP(2, [3, 1], rng=np.random.default_rng(0))
        before = [p.value for p in model.parameters()]
        out = predict(model, [0.2, -0.4])

        loss = train_step(model, [0.2, -0.4], 1.0, rate=0.1)

        assert loss == pytest.approx((out - 1.0) ** 2)
        assert all(p.grad == 0.0 for p in model.parameters())
        assert [p.value for p in model.parameters()] != before

    def test_update_bounded_by_rate(self) -> None:
        model = MLP(2, [3, 1], rng=np.random.default_rng(0))
        before = [p.value for p in model.parameters()]
        train_step(model, [5.0, -5.0], 1.0, rate=0.01)
        for p, v in zip(model.parameters(), before):
            assert abs(p.value - v) <= 0.01 + 1e-15

    def test_repeated_steps_reduce_loss(self) -> None:
        model = MLP(2, [4, 1], rng=np.random.default_rng(2))
        losses = [train_step(model, [0.5, 0.5], 0.9, rate=0.05) for _ in range(30)]
        assert losses[-1] < losses[0]


class TestTrain:

    def test_returns_epoch_losses(self) -> None:
        X, y = make_spirals(points_per_class=5, seed=0)
        model = MLP(2, [3, 1], rng=np.random.default_rng(0))
        losses = train(model, X, y, TrainingConfig(epochs=3, early_stop_loss=None))
        assert len(losses) == 3
        assert all(l >= 0.0 for l in losses)

    def test_early_stop(self, caplog) -> None:
        X = np.array([[0.1, 0.2], [0.3, 0.4]])
        y = np.array([0, 0])
        model = MLP(2, [2, 1], rng=np.random.default_rng(0))
        with caplog.at_level(logging.INFO, logger='scalargrad.train'):
            losses = train(model, X, y, TrainingConfig(epochs=50, early_stop_loss=1.0))
        assert len(losses) == 1
        assert "Reached target loss at epoch 0" in caplog.text

    def test_logs_epoch_summary(self, caplog) -> None:
        X, y = make_spirals(points_per_class=3, seed=0)
        model = MLP(2, [2, 1], rng=np.random.default_rng(0))
        with caplog.at_level(logging.INFO, logger='scalargrad.train'):
            train(model, X, y, TrainingConfig(epochs=4, log_every=2, early_stop_loss=None))
        summaries = [r for r in caplog.records if r.levelno == logging.INFO]
        assert [r.getMessage().split(':')[0] for r in summaries] == ["Epoch 0", "Epoch 2"]

    def test_same_seeds_same_result(self) -> None:
        X, y = make_spirals(points_per_class=5, seed=0)
        config = TrainingConfig(epochs=2, seed=9, early_stop_loss=None)
        a = MLP(2, [3, 1], rng=np.random.default_rng(1))
        b = MLP(2, [3, 1], rng=np.random.default_rng(1))
        assert train(a, X, y, config) == train(b, X, y, config)
        assert [p.value for p in a.parameters()] == [p.value for p in b.parameters()]

    def test_mismatched_lengths(self) -> None:
        model = MLP(2, [2, 1], rng=np.random.default_rng(0))
        with pytest.raises(ValueError):
            train(model, np.zeros((3, 2)), np.zeros(2))

    def test_empty_dataset(self) -> None:
        model = MLP(2, [2, 1], rng=np.random.default_rng(0))
        with pytest.raises(ValueError):
            train(model, np.zeros((0, 2)), np.zeros(0))


class TestEvaluation:

    def test_classify_threshold(self) -> None:
        model = MLP(2, [1], rng=np.random.default_rng(0))
        neuron = model.layers[0].neurons[0]
        neuron.w[0].value = neuron.w[1].value = 0.0
        neuron.b.value = 1.0
        assert predict(model, [0.0, 0.0]) > THRESHOLD
        assert classify(model, [0.0, 0.0]) == 1
        neuron.b.value = 0.0
        assert classify(model, [0.0, 0.0]) == 0

    def test_accuracy_and_class_accuracy(self) -> None:
        model = MLP(2, [1], rng=np.random.default_rng(0))
        neuron = model.layers[0].neurons[0]
        neuron.w[0].value = neuron.w[1].value = 0.0
        neuron.b.value = 0.0
        # Constant output 0 -> everything classified as 0
        X = np.zeros((4, 2))
        y = np.array([0, 1, 0, 0])
        assert accuracy(model, X, y) == 0.75
        assert class_accuracy(model, X, y) == {0: 1.0, 1: 0.0}

    def test_decision_boundary_layout(self) -> None:
        model = MLP(2, [1], rng=np.random.default_rng(0))
        neuron = model.layers[0].neurons[0]
        # Output > 0.5 only where x is large
        neuron.w[0].value, neuron.w[1].value, neuron.b.value = 5.0, 0.0, -1.0
        grid = decision_boundary(model).splitlines()
        assert len(grid) == 5
        assert all(row == "0 0 0 1 1" for row in grid)

    def test_decision_boundary_top_row_is_max_y(self) -> None:
        model = MLP(2, [1], rng=np.random.default_rng(0))
        neuron = model.layers[0].neurons[0]
        neuron.w[0].value, neuron.w[1].value, neuron.b.value = 0.0, 5.0, -2.0
        grid = decision_boundary(model, grid=(-1.0, 1.0)).splitlines()
        assert grid == ["1 1", "0 0"]


@pytest.mark.slow
def test_spirals_end_to_end() -> None:
    """2 -> 16 -> 8 -> 1 on 200 spiral points for 200 epochs beats chance."""
    X, y = make_spirals(points_per_class=100, noise=0.1, seed=42)
    model = MLP(2, [16, 8, 1], rng=np.random.default_rng(42))
    config = TrainingConfig(epochs=200, learning_rate=0.03, decay=0.001, seed=42)

    losses = train(model, X, y, config)

    assert losses[-1] < losses[0]
    assert accuracy(model, X, y) > 0.5
