# -*- coding: utf-8 -*-
"""
baggedtrees.estimators
======================

scikit‑learn style front ends for the bagging trainer.

:class:`BaggedTreeRegressor` (squared loss) and :class:`BaggedTreeClassifier`
(binary labels, log loss by default) follow the usual ``fit`` / ``predict``
conventions.  ``fit`` always starts from a fresh trainer.  ``partial_fit``
keeps the existing trainer and adds ``n_trees`` more trees, which is the
incremental training contract of :class:`BaggingIncrementalTrainer`.

After each fit the latest ensemble snapshot is stored in ``predictor_``.
With ``verbose > 0`` the training error is computed with
:class:`BinaryClassificationEvaluator` and logged.
"""

# -----------------------------------------------------------------------------

from __future__ import annotations

import io
import logging

import numpy as np
from sklearn.base import BaseEstimator, ClassifierMixin, RegressorMixin

from .bagging import BaggingIncrementalTrainer, make_bagging_incremental_trainer
from .config import BaggingIncrementalTrainerParameters, SortingTreeTrainerParameters
from .dataset import RowDataset
from .evaluator import BinaryClassificationEvaluator
from .tree import make_sorting_tree_trainer

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Shared base
# -----------------------------------------------------------------------------
class _BaseBaggedTrees(BaseEstimator):
    """Common parameter handling; subclasses fix the loss and label mapping."""

    def __init__(
        self,
        *,
        n_trees: int = 10,
        max_depth: int | None = 6,
        min_examples_per_leaf: int = 1,
        min_gain: float = 0.0,
        bag_size: int | float | None = None,
        weight_policy: str = "average",
        tree_weight: float = 1.0,
        loss: str = "squared",
        random_state: int | None = None,
        verbose: int = 0,
    ):
        self.n_trees = n_trees
        self.max_depth = max_depth
        self.min_examples_per_leaf = min_examples_per_leaf
        self.min_gain = min_gain
        self.bag_size = bag_size
        self.weight_policy = weight_policy
        self.tree_weight = tree_weight
        self.loss = loss
        self.random_state = random_state
        self.verbose = verbose

    def _make_trainer(self) -> BaggingIncrementalTrainer:
        tree_params = SortingTreeTrainerParameters(
            max_depth=self.max_depth,
            min_examples_per_leaf=self.min_examples_per_leaf,
            min_gain=self.min_gain,
        )
        bag_params = BaggingIncrementalTrainerParameters(
            num_trees_per_update=self.n_trees,
            bag_size=self.bag_size,
            weight_policy=self.weight_policy,
            tree_weight=self.tree_weight,
            random_state=self.random_state,
        )
        base = make_sorting_tree_trainer(self.loss, tree_params)
        return make_bagging_incremental_trainer(base, bag_params, verbose=int(self.verbose))

    def _update(self, trainer: BaggingIncrementalTrainer, X, y, sample_weight, refit: bool):
        # fitted attributes change only after the trainer accepted the batch
        data = RowDataset.from_arrays(X, np.asarray(y, dtype=float), sample_weight)
        trainer.update(data)
        self.trainer_ = trainer
        self.predictor_ = trainer.get_predictor()
        self.n_features_in_ = data.num_features
        if int(self.verbose) > 0:
            self._log_training_error(data)
        return self

    def _log_training_error(self, data: RowDataset) -> None:
        evaluator = BinaryClassificationEvaluator(self.trainer_.loss)
        evaluator.evaluate(data, self.predictor_)
        buf = io.StringIO()
        evaluator.print(buf)
        logger.info("Training error\n%s", buf.getvalue().rstrip())

    def fit(self, X, y, sample_weight=None):
        return self._update(self._make_trainer(), X, y, sample_weight, refit=True)

    def partial_fit(self, X, y, sample_weight=None):
        """Add ``n_trees`` trees trained on ``(X, y)`` to the current ensemble."""
        trainer = getattr(self, "trainer_", None)
        if trainer is None:
            return self._update(self._make_trainer(), X, y, sample_weight, refit=True)
        return self._update(trainer, X, y, sample_weight, refit=False)

    def _check_fitted(self):
        if getattr(self, "predictor_", None) is None:
            raise ValueError("Estimator not fitted. Call fit(...) first.")

    def _raw_predict(self, X) -> np.ndarray:
        self._check_fitted()
        return self.predictor_.predict_batch(X)

    @property
    def n_trees_(self) -> int:
        self._check_fitted()
        return len(self.predictor_)


# -----------------------------------------------------------------------------
# Regressor
# -----------------------------------------------------------------------------
class BaggedTreeRegressor(RegressorMixin, _BaseBaggedTrees):
    """
    Bagged ensemble of sorting regression trees.

    Parameters
    ----------
    n_trees : int, default=10
        Trees added by each call to ``fit`` / ``partial_fit``.
    max_depth : int or None, default=6
        Maximum depth of every tree (``None`` for unbounded).
    min_examples_per_leaf : int, default=1
        Minimum bootstrap entries on each side of a split.
    min_gain : float, default=0.0
        Minimum loss reduction required to split.
    bag_size : int, float or None, default=None
        Bootstrap sample size (count, fraction of ``n_samples`` or ``None``
        for ``n_samples``).
    weight_policy : {"average", "constant"}, default="average"
        How trees are weighted in the ensemble.
    tree_weight : float, default=1.0
        Per‑tree weight under ``weight_policy="constant"``.
    loss : {"squared"}, default="squared"
        Training loss.
    random_state : int or None, default=None
        Seed of the bootstrap generator.
    verbose : int, default=0
        Positive values log progress at INFO level.

    Attributes
    ----------
    trainer_ : BaggingIncrementalTrainer
        The underlying incremental trainer.
    predictor_ : EnsemblePredictor
        Snapshot of the ensemble after the last fit.
    """

    def fit(self, X, y, sample_weight=None):
        """Train a fresh ensemble of ``n_trees`` trees."""
        return super().fit(X, y, sample_weight)

    def predict(self, X):
        """
        Predict regression targets.

        Raises
        ------
        ValueError
            If the estimator has not been fitted.
        """
        return self._raw_predict(X)


# -----------------------------------------------------------------------------
# Classifier
# -----------------------------------------------------------------------------
class BaggedTreeClassifier(ClassifierMixin, _BaseBaggedTrees):
    """
    Bagged ensemble of sorting trees for binary classification.

    The two classes found in ``y`` are sorted and mapped to ``-1`` and
    ``+1``.  With ``loss="log"`` (the default) the ensemble output is a
    log‑odds score; with ``loss="squared"`` it is a regression on the
    ``+/-1`` labels.

    Parameters are those of :class:`BaggedTreeRegressor`, with ``loss``
    defaulting to ``"log"``.

    Attributes
    ----------
    classes_ : ndarray of shape (2,)
        Class labels; ``classes_[1]`` is the positive class.
    trainer_ : BaggingIncrementalTrainer
    predictor_ : EnsemblePredictor
    """

    def __init__(
        self,
        *,
        n_trees: int = 10,
        max_depth: int | None = 6,
        min_examples_per_leaf: int = 1,
        min_gain: float = 0.0,
        bag_size: int | float | None = None,
        weight_policy: str = "average",
        tree_weight: float = 1.0,
        loss: str = "log",
        random_state: int | None = None,
        verbose: int = 0,
    ):
        super().__init__(
            n_trees=n_trees, max_depth=max_depth,
            min_examples_per_leaf=min_examples_per_leaf, min_gain=min_gain,
            bag_size=bag_size, weight_policy=weight_policy, tree_weight=tree_weight,
            loss=loss, random_state=random_state, verbose=verbose,
        )

    def _update(self, trainer, X, y, sample_weight, refit: bool):
        y = np.asarray(y)
        if refit:
            classes = np.unique(y)
            if len(classes) != 2:
                raise ValueError(
                    f"BaggedTreeClassifier supports binary targets only, got {len(classes)} classes")
        else:
            classes = self.classes_
        known = np.isin(y, classes)
        if not known.all():
            raise ValueError(f"y contains labels not seen in the first fit: {np.unique(y[~known])}")
        encoded = np.where(y == classes[1], 1.0, -1.0)
        super()._update(trainer, X, encoded, sample_weight, refit)
        self.classes_ = classes
        return self

    def fit(self, X, y, sample_weight=None):
        """Train a fresh ensemble of ``n_trees`` trees."""
        return super().fit(X, y, sample_weight)

    def decision_function(self, X):
        """Ensemble score; positive values favour ``classes_[1]``."""
        return self._raw_predict(X)

    def predict_proba(self, X):
        """
        Predict class probabilities.

        Returns
        -------
        ndarray of shape (n_samples, 2)
            Columns ordered like :attr:`classes_`.
        """
        score = self.decision_function(X)
        if self.trainer_.loss.name == "log":
            p1 = np.exp(-np.logaddexp(0.0, -score))
        else:
            p1 = np.clip(0.5 * (score + 1.0), 0.0, 1.0)
        return np.column_stack([1.0 - p1, p1])

    def predict(self, X):
        """Predict class labels (``classes_[1]`` when the score is positive)."""
        score = self.decision_function(X)
        return self.classes_[(score > 0).astype(int)]


__all__ = ["BaggedTreeRegressor", "BaggedTreeClassifier"]
