import logging

import numpy as np
import pytest
from baggedtrees import (ConfigurationError, InputError, RowDataset,
                         SortingTreeTrainer, SortingTreeTrainerParameters,
                         make_sorting_tree_trainer)


def _tiny_dataset():
    """Four examples on one feature with a clean break after x=2."""
    X = np.array([[1.0], [2.0], [3.0], [4.0]])
    y = np.array([0.0, 0.0, 1.0, 1.0])
    return RowDataset.from_arrays(X, y)


def _random_dataset(n=60, d=3, seed=0):
    rng = np.random.RandomState(seed)
    X = rng.normal(size=(n, d))
    y = X[:, 0] - 2.0 * X[:, 1] + 0.1 * rng.normal(size=n)
    w = rng.uniform(0.5, 2.0, size=n)
    return RowDataset.from_arrays(X, y, w)


def test_stump_on_tiny_dataset():
    trainer = make_sorting_tree_trainer("squared", max_depth=1, min_examples_per_leaf=1, min_gain=0.0)
    tree = trainer.train(_tiny_dataset())
    root = tree.root
    assert not root.is_leaf
    assert root.feature_index == 0
    assert root.threshold == 2.0
    assert root.left.is_leaf and root.left.value == pytest.approx(0.0)
    assert root.right.is_leaf and root.right.value == pytest.approx(1.0)
    assert tree.predict([2.0]) == pytest.approx(0.0)
    assert tree.predict([2.5]) == pytest.approx(1.0)


def test_max_depth_zero_returns_best_constant():
    data = _tiny_dataset()
    tree = make_sorting_tree_trainer("squared", max_depth=0).train(data)
    assert tree.root.is_leaf
    assert tree.root.value == pytest.approx(0.5)

    X = np.array([[1.0], [2.0], [3.0], [4.0]])
    signed = RowDataset.from_arrays(X, [-1.0, 1.0, 1.0, 1.0])
    tree = make_sorting_tree_trainer("log", max_depth=0).train(signed)
    assert tree.root.is_leaf
    assert tree.root.value == pytest.approx(np.log(3.0))


def test_training_is_deterministic():
    data = _random_dataset()
    sample = np.random.RandomState(3).randint(0, len(data), len(data))
    trainer = make_sorting_tree_trainer("squared", max_depth=4)
    first = trainer.train(data, sample)
    second = make_sorting_tree_trainer("squared", max_depth=4).train(data, sample)
    again = trainer.train(data, sample)
    assert first.root == second.root
    assert first.root == again.root
    assert first.export_rules() == second.export_rules()


def test_tree_beats_best_constant():
    data = _random_dataset()
    loss_fn = make_sorting_tree_trainer("squared").loss
    tree = make_sorting_tree_trainer("squared", max_depth=3, min_gain=0.0).train(data)
    pred = tree.predict_batch(data.X)
    const = np.sum(data.w * data.y) / np.sum(data.w)
    tree_loss = np.sum(data.w * loss_fn.value(pred, data.y))
    const_loss = np.sum(data.w * loss_fn.value(const, data.y))
    assert tree_loss < const_loss


def test_log_loss_tree_beats_best_constant():
    rng = np.random.RandomState(1)
    X = rng.normal(size=(80, 2))
    y = np.where(X[:, 0] + 0.5 * rng.normal(size=80) > 0, 1.0, -1.0)
    data = RowDataset.from_arrays(X, y)
    trainer = make_sorting_tree_trainer("log", max_depth=2)
    tree = trainer.train(data)
    const = trainer.loss.leaf_value(len(y), y.sum(), len(y))
    assert np.sum(trainer.loss.value(tree.predict_batch(X), y)) < np.sum(trainer.loss.value(const, y))


def test_recovers_separating_feature_and_threshold():
    rng = np.random.RandomState(42)
    X = rng.uniform(0.0, 1.0, size=(50, 3))
    y = (X[:, 1] > 0.3).astype(float)
    data = RowDataset.from_arrays(X, y)
    tree = make_sorting_tree_trainer("squared", max_depth=1).train(data)
    assert tree.root.feature_index == 1
    assert tree.root.threshold == X[y == 0, 1].max()
    assert tree.root.left.value == pytest.approx(0.0)
    assert tree.root.right.value == pytest.approx(1.0)


def test_ties_prefer_lowest_feature():
    X = np.array([[1.0, 1.0], [2.0, 2.0], [3.0, 3.0], [4.0, 4.0]])
    y = np.array([0.0, 0.0, 1.0, 1.0])
    tree = make_sorting_tree_trainer("squared", max_depth=1).train(RowDataset.from_arrays(X, y))
    assert tree.root.feature_index == 0
    assert tree.root.threshold == 2.0


def test_ties_prefer_lowest_threshold():
    # splitting after x=2 or after x=4 gives exactly the same gain
    X = np.arange(1.0, 7.0).reshape(-1, 1)
    y = np.array([0.0, 0.0, 1.0, 1.0, 2.0, 2.0])
    tree = make_sorting_tree_trainer("squared", max_depth=1).train(RowDataset.from_arrays(X, y))
    assert tree.root.threshold == 2.0


def test_constant_features_give_a_leaf():
    X = np.ones((5, 2))
    y = np.array([0.0, 1.0, 0.0, 1.0, 1.0])
    tree = make_sorting_tree_trainer("squared").train(RowDataset.from_arrays(X, y))
    assert tree.root.is_leaf
    assert tree.root.value == pytest.approx(0.6)


def test_constant_labels_give_a_leaf():
    X = np.arange(6, dtype=float).reshape(-1, 1)
    tree = make_sorting_tree_trainer("squared").train(RowDataset.from_arrays(X, np.full(6, 3.0)))
    assert tree.root.is_leaf
    assert tree.root.value == pytest.approx(3.0)


def test_min_examples_per_leaf_is_enforced():
    X = np.array([[1.0], [2.0], [3.0], [4.0]])
    y = np.array([0.0, 1.0, 1.0, 1.0])
    data = RowDataset.from_arrays(X, y)
    loose = make_sorting_tree_trainer("squared", max_depth=1, min_examples_per_leaf=1).train(data)
    assert loose.root.threshold == 1.0
    strict = make_sorting_tree_trainer("squared", max_depth=1, min_examples_per_leaf=2).train(data)
    assert strict.root.threshold == 2.0
    assert strict.root.left.n_samples == 2 and strict.root.right.n_samples == 2
    # three entries cannot be split into two sides of two
    tiny = RowDataset.from_arrays(X[:3], y[:3])
    assert make_sorting_tree_trainer("squared", min_examples_per_leaf=2).train(tiny).root.is_leaf


def test_min_gain_blocks_weak_splits():
    data = _tiny_dataset()
    tree = make_sorting_tree_trainer("squared", min_gain=10.0).train(data)
    assert tree.root.is_leaf


def test_bootstrap_multiset_counts_duplicates():
    data = _tiny_dataset()
    tree = make_sorting_tree_trainer("squared", max_depth=1).train(data, [0, 0, 0, 3])
    assert tree.root.threshold == 1.0
    assert tree.root.n_samples == 4
    assert tree.root.left.n_samples == 3
    # max_depth=0 over the same multiset: mean of [0, 0, 0, 1]
    leaf = make_sorting_tree_trainer("squared", max_depth=0).train(data, [0, 0, 0, 3])
    assert leaf.root.value == pytest.approx(0.25)


def test_weights_shift_leaf_values():
    X = np.array([[1.0], [1.0], [2.0]])
    data = RowDataset.from_arrays(X, [0.0, 1.0, 5.0], sample_weight=[3.0, 1.0, 1.0])
    tree = make_sorting_tree_trainer("squared", max_depth=1).train(data)
    assert tree.root.left.value == pytest.approx(0.25)
    assert tree.root.left.weight == pytest.approx(4.0)


def test_thresholds_separate_training_subsets():
    data = _random_dataset(n=40, d=2, seed=5)
    tree = make_sorting_tree_trainer("squared", max_depth=5).train(data)

    def check(node, rows):
        if node.is_leaf:
            return
        vals = data.X[rows, node.feature_index]
        left, right = rows[vals <= node.threshold], rows[vals > node.threshold]
        assert len(left) > 0 and len(right) > 0
        check(node.left, left)
        check(node.right, right)

    check(tree.root, np.arange(len(data)))


def test_input_errors():
    data = _tiny_dataset()
    trainer = make_sorting_tree_trainer("squared")
    with pytest.raises(InputError):
        trainer.train(data, [])
    with pytest.raises(InputError):
        trainer.train(data, [0, 4])
    with pytest.raises(InputError):
        make_sorting_tree_trainer("log").train(data)


def test_configuration_errors():
    with pytest.raises(ConfigurationError):
        SortingTreeTrainerParameters(max_depth=-1)
    with pytest.raises(ConfigurationError):
        SortingTreeTrainerParameters(min_examples_per_leaf=0)
    with pytest.raises(ConfigurationError):
        SortingTreeTrainerParameters(min_gain=-1.0)
    with pytest.raises(ConfigurationError):
        SortingTreeTrainer("squared", parameters={"max_depth": 2})


def test_zero_gain_split_is_accepted_for_xor():
    # no single split reduces the loss, but two levels fit XOR exactly
    X = np.array([[0.0, 0.0], [0.0, 1.0], [1.0, 0.0], [1.0, 1.0]])
    y = np.array([0.0, 1.0, 1.0, 0.0])
    data = RowDataset.from_arrays(X, y)
    trainer = make_sorting_tree_trainer("squared", max_depth=2, min_gain=0.0)
    tree = trainer.train(data)
    assert not tree.root.is_leaf
    assert tree.root.gain == pytest.approx(0.0)
    assert tree.root.feature_index == 0
    np.testing.assert_allclose(tree.predict_batch(X), y)
    const_loss = np.sum(trainer.loss.value(0.5, y))
    assert np.sum(trainer.loss.value(tree.predict_batch(X), y)) < const_loss


def test_min_gain_above_zero_rejects_xor_root():
    X = np.array([[0.0, 0.0], [0.0, 1.0], [1.0, 0.0], [1.0, 1.0]])
    data = RowDataset.from_arrays(X, [0.0, 1.0, 1.0, 0.0])
    tree = make_sorting_tree_trainer("squared", max_depth=2, min_gain=1e-9).train(data)
    assert tree.root.is_leaf


def test_unbounded_depth_on_alternating_labels():
    n = 3000
    X = np.arange(n, dtype=float).reshape(-1, 1)
    y = np.where(np.arange(n) % 2 == 0, 1.0, -1.0)
    data = RowDataset.from_arrays(X, y)
    trainer = make_sorting_tree_trainer("log")
    tree = trainer.train(data)
    assert tree.num_leaves == tree.num_nodes // 2 + 1
    assert tree.depth >= 1
    pred = tree.predict_batch(X)
    const = trainer.loss.leaf_value(n, y.sum(), n)
    assert np.sum(trainer.loss.value(pred, y)) < np.sum(trainer.loss.value(const, y))


def test_debug_logging_reports_tree_size(caplog):
    caplog.set_level(logging.DEBUG, logger="baggedtrees")
    tree = make_sorting_tree_trainer("squared", max_depth=1).train(_tiny_dataset())
    assert f"trained tree: {tree.num_nodes} nodes, depth 1" in caplog.text


def test_non_integral_parameters_are_rejected():
    with pytest.raises(ConfigurationError):
        SortingTreeTrainerParameters(min_examples_per_leaf=1.5)
    with pytest.raises(ConfigurationError):
        SortingTreeTrainerParameters(min_examples_per_leaf=None)
    with pytest.raises(ConfigurationError):
        SortingTreeTrainerParameters(max_depth=2.0)
    with pytest.raises(ConfigurationError):
        SortingTreeTrainerParameters(min_gain=None)
    assert SortingTreeTrainerParameters(max_depth=np.int64(3)).max_depth == 3
