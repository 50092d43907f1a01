import numpy as np
import pytest
from baggedtrees import ConfigurationError, InputError, LogLoss, SquaredLoss, make_loss


def test_squared_loss_value_and_derivative():
    loss = SquaredLoss()
    assert loss.value(3.0, 1.0) == pytest.approx(2.0)
    assert loss.derivative(3.0, 1.0) == pytest.approx(2.0)
    assert loss.derivative(-1.0, 1.0) == pytest.approx(-2.0)


def test_squared_leaf_is_weighted_mean():
    loss = SquaredLoss()
    y = np.array([0.0, 1.0, 4.0])
    w = np.array([1.0, 1.0, 2.0])
    sw, swy, swyy = w.sum(), (w * y).sum(), (w * y * y).sum()
    assert loss.leaf_value(sw, swy, swyy) == pytest.approx(9.0 / 4.0)
    # weighted loss at the mean equals half the weighted SSE
    mu = 9.0 / 4.0
    assert loss.leaf_loss(sw, swy, swyy) == pytest.approx(0.5 * np.sum(w * (y - mu) ** 2))


def test_squared_leaf_loss_never_negative():
    loss = SquaredLoss()
    # identical labels: SSE is zero up to round-off
    y = np.full(7, 0.1)
    w = np.ones(7)
    assert loss.leaf_loss(w.sum(), (w * y).sum(), (w * y * y).sum()) >= 0.0


def test_log_loss_at_zero():
    loss = LogLoss()
    assert loss.value(0.0, 1.0) == pytest.approx(np.log(2.0))
    assert loss.value(0.0, -1.0) == pytest.approx(np.log(2.0))
    assert loss.derivative(0.0, 1.0) == pytest.approx(-0.5)
    assert loss.derivative(0.0, -1.0) == pytest.approx(0.5)


def test_log_loss_is_stable_for_extreme_margins():
    loss = LogLoss()
    p = np.array([-1e4, -50.0, 50.0, 1e4])
    for y in (1.0, -1.0):
        v = loss.value(p, y)
        d = loss.derivative(p, y)
        assert np.all(np.isfinite(v))
        assert np.all(np.isfinite(d))
    assert loss.value(-1e4, 1.0) == pytest.approx(1e4)
    assert loss.value(1e4, 1.0) == pytest.approx(0.0)
    assert loss.derivative(-1e4, 1.0) == pytest.approx(-1.0)
    assert loss.derivative(1e4, 1.0) == pytest.approx(0.0)


def test_log_leaf_value_is_log_odds():
    loss = LogLoss()
    # three positives and one negative
    assert loss.leaf_value(4.0, 2.0, 4.0) == pytest.approx(np.log(3.0))
    # a pure node is clamped to a finite value
    pure = loss.leaf_value(2.0, 2.0, 2.0)
    assert np.isfinite(pure) and pure > 9.0
    assert loss.leaf_value(2.0, -2.0, 2.0) == pytest.approx(-pure)


def test_log_leaf_loss_matches_direct_sum():
    loss = LogLoss()
    y = np.array([1.0, 1.0, -1.0, 1.0, -1.0])
    w = np.array([1.0, 2.0, 1.0, 0.5, 1.5])
    stats = (w.sum(), (w * y).sum(), (w * y * y).sum())
    p = loss.leaf_value(*stats)
    assert loss.leaf_loss(*stats) == pytest.approx(np.sum(w * loss.value(p, y)))


def test_log_loss_rejects_non_signed_labels():
    with pytest.raises(InputError):
        LogLoss().validate_labels(np.array([0.0, 1.0]))
    LogLoss().validate_labels(np.array([-1.0, 1.0]))


def test_make_loss():
    assert isinstance(make_loss("squared"), SquaredLoss)
    assert isinstance(make_loss("LOG"), LogLoss)
    with pytest.raises(ConfigurationError):
        make_loss("hinge")
