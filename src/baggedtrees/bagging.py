"""Incremental bagging over the sorting tree trainer.

Each call to :meth:`BaggingIncrementalTrainer.update` draws
``num_trees_per_update`` bootstrap samples with the trainer's private random
generator, grows one tree per sample and appends it to the ensemble.  Trees
are never discarded, so repeated calls (over epochs or streaming batches)
accumulate.  The random generator belongs to the trainer and advances across
calls.  Two trainers built from the same seed and fed the same sequence of
updates produce identical ensembles.
"""
from __future__ import annotations

import logging
import time
from typing import List, Optional

import numpy as np
from sklearn.utils import check_random_state

from .config import BaggingIncrementalTrainerParameters
from .dataset import RowDataset, as_dataset
from .exceptions import ConfigurationError, InputError
from .predictors import DecisionTreePredictor, EnsemblePredictor
from .tree import SortingTreeTrainer

logger = logging.getLogger(__name__)


def _generate_sample_indices(random_state, n_samples: int, n_samples_bootstrap: int) -> np.ndarray:
    return random_state.randint(0, n_samples, n_samples_bootstrap).astype(np.int64)


class BaggingIncrementalTrainer:
    """
    Bootstrap‑aggregated ensemble of sorting trees, trained incrementally.

    Parameters
    ----------
    base_trainer : SortingTreeTrainer
        Inducer used for every tree; it carries the loss function.
    parameters : BaggingIncrementalTrainerParameters, optional
        Trees per update, bag size, weight policy and seed.
    verbose : int, default=0
        If positive, log the start and end of every update at INFO level.

    Attributes
    ----------
    num_trees : int
        Number of trees accumulated so far.
    is_initialized : bool
        ``False`` until the first successful :meth:`update`.
    """

    def __init__(self, base_trainer: SortingTreeTrainer,
                 parameters: Optional[BaggingIncrementalTrainerParameters] = None,
                 verbose: int = 0):
        if not isinstance(base_trainer, SortingTreeTrainer):
            raise ConfigurationError("base_trainer must be a SortingTreeTrainer")
        if parameters is None:
            parameters = BaggingIncrementalTrainerParameters()
        if not isinstance(parameters, BaggingIncrementalTrainerParameters):
            raise ConfigurationError("parameters must be a BaggingIncrementalTrainerParameters")
        if base_trainer.max_depth == 0:
            raise ConfigurationError("bagging requires a base trainer with max_depth >= 1")
        self.base_trainer = base_trainer
        self.parameters = parameters
        self.verbose = int(verbose)

        self._random_state = check_random_state(parameters.random_state)
        self._trees: List[DecisionTreePredictor] = []
        self._num_features: Optional[int] = None

    @property
    def loss(self):
        return self.base_trainer.loss

    @property
    def num_trees(self) -> int:
        return len(self._trees)

    @property
    def is_initialized(self) -> bool:
        return self._num_features is not None

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------
    def update(self, examples) -> "BaggingIncrementalTrainer":
        """
        Train ``num_trees_per_update`` more trees on a fresh pass over ``examples``.

        Parameters
        ----------
        examples : RowDataset, ExampleIterator or iterable of Example
            Training data.  Iterators are rewound before use.

        Returns
        -------
        self

        Raises
        ------
        InputError
            If the data is empty, its dimension differs from earlier updates,
            or its labels are invalid for the loss.  The trainer state is left
            untouched in that case.
        """
        data = self._check_update_data(as_dataset(examples))
        n = len(data)
        bag_size = self.parameters.resolve_bag_size(n)
        if self.verbose > 0:
            logger.info("Training %d tree(s) on %d examples (bag size %d) ...",
                        self.parameters.num_trees_per_update, n, bag_size)

        # trees are committed only once the whole update has succeeded
        new_trees: List[DecisionTreePredictor] = []
        for _ in range(self.parameters.num_trees_per_update):
            t0 = time.perf_counter()
            sample = _generate_sample_indices(self._random_state, n, bag_size)
            tree = self.base_trainer.train(data, sample)
            new_trees.append(tree)
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug("tree %d: %d nodes, depth %d, %.3f s",
                             len(self._trees) + len(new_trees), tree.num_nodes, tree.depth,
                             time.perf_counter() - t0)

        self._trees.extend(new_trees)
        self._num_features = data.num_features
        if self.verbose > 0:
            logger.info("Finished update: ensemble has %d tree(s).", self.num_trees)
        return self

    def _check_update_data(self, data: RowDataset) -> RowDataset:
        if len(data) == 0:
            raise InputError("cannot draw a bootstrap sample from an empty dataset")
        if self._num_features is not None and data.num_features != self._num_features:
            raise InputError(
                f"dataset has {data.num_features} features, expected {self._num_features}")
        self.loss.validate_labels(data.y)
        return data

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------
    def tree_weights(self) -> np.ndarray:
        """Weights the current snapshot assigns to each tree."""
        k = len(self._trees)
        if self.parameters.weight_policy == "average":
            return np.full(k, 1.0 / k) if k else np.empty(0)
        return np.full(k, self.parameters.tree_weight)

    def get_predictor(self) -> EnsemblePredictor:
        """Return an immutable snapshot of the ensemble trained so far."""
        return EnsemblePredictor(list(zip(self._trees, self.tree_weights())))

    def __repr__(self) -> str:
        return (f"BaggingIncrementalTrainer(num_trees={self.num_trees}, "
                f"{self.parameters.describe()})")


def make_bagging_incremental_trainer(base_trainer: SortingTreeTrainer,
                                     parameters: Optional[BaggingIncrementalTrainerParameters] = None,
                                     verbose: int = 0,
                                     **kwargs) -> BaggingIncrementalTrainer:
    """
    Wrap ``base_trainer`` in a :class:`BaggingIncrementalTrainer`.

    Keyword arguments are forwarded to
    :class:`BaggingIncrementalTrainerParameters` when ``parameters`` is not
    given.  A base trainer limited to depth 0 is rejected: every tree would
    be the same constant.
    """
    if parameters is None:
        parameters = BaggingIncrementalTrainerParameters(**kwargs)
    elif kwargs:
        raise ConfigurationError("pass either parameters or keyword arguments, not both")
    trainer = BaggingIncrementalTrainer(base_trainer, parameters, verbose=verbose)
    if verbose > 0:
        logger.info("Bagging Tree Trainer: %s; %s; loss=%r",
                    parameters.describe(), base_trainer.parameters.describe(), base_trainer.loss)
    return trainer


__all__ = ["BaggingIncrementalTrainer", "make_bagging_incremental_trainer"]
