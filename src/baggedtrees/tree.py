# -*- coding: utf-8 -*-
"""
baggedtrees.tree
================

This module implements the greedy, sort‑based single‑tree inducer used as
the base learner of the bagging trainer.

For each node the trainer sorts the node's examples on every feature (ties
broken by the original example index), sweeps the ordering once with running
sufficient statistics ``(sum w, sum w*y, sum w*y^2)`` and keeps the threshold
with the largest loss reduction.  Examples are never copied or reordered:
a node is an integer array of indices into the :class:`RowDataset`, and
children receive order‑preserving subsets of it.  Bootstrap multisets are
supported by simply repeating an index.

The procedure is deterministic.  Identical inputs produce bit‑identical
trees.
"""

# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

import numpy as np

from .config import SortingTreeTrainerParameters
from .dataset import RowDataset, as_dataset
from .exceptions import ConfigurationError, InputError
from .loss import Loss, make_loss
from .predictors import DecisionTreePredictor, TreeNode

logger = logging.getLogger(__name__)

# labels whose range is below this are treated as constant
_LABEL_TOLERANCE = 1e-12


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------
def _node_stats(y: np.ndarray, w: np.ndarray) -> Tuple[float, float, float]:
    wy = w * y
    return float(w.sum()), float(wy.sum()), float((wy * y).sum())


# -----------------------------------------------------------------------------
# Trainer
# -----------------------------------------------------------------------------
class SortingTreeTrainer:
    """
    Greedy regression‑tree inducer driven by a loss function.

    Parameters
    ----------
    loss : Loss or str
        Loss used to fit leaf outputs and to score candidate splits.
    parameters : SortingTreeTrainerParameters, optional
        Depth, leaf size and minimum gain.  Defaults to an unbounded tree with
        one example per leaf and ``min_gain=0``.

    Notes
    -----
    A node becomes a leaf when it holds fewer than
    ``2 * min_examples_per_leaf`` entries, when ``max_depth`` is reached,
    when its labels are constant, when no feature has a valid boundary, or
    when the best gain is below ``min_gain``.  A zero‑gain split is accepted
    with ``min_gain=0``, so interactions such as XOR can still be learned at
    the next level.  Among equally good splits the lowest feature index wins,
    then the lowest threshold.
    """

    def __init__(self, loss, parameters: Optional[SortingTreeTrainerParameters] = None):
        self.loss: Loss = make_loss(loss)
        if parameters is None:
            parameters = SortingTreeTrainerParameters()
        if not isinstance(parameters, SortingTreeTrainerParameters):
            raise ConfigurationError("parameters must be a SortingTreeTrainerParameters")
        self.parameters = parameters

    @property
    def max_depth(self) -> Optional[int]:
        return self.parameters.max_depth

    def train(self, examples, sample=None) -> DecisionTreePredictor:
        """
        Grow one tree on ``examples`` (optionally restricted to ``sample``).

        Parameters
        ----------
        examples : RowDataset, ExampleIterator or iterable of Example
            The example store.
        sample : array-like of int, optional
            Indices into the store, duplicates allowed.  ``None`` uses every
            example once, in order.

        Returns
        -------
        DecisionTreePredictor

        Raises
        ------
        InputError
            If the sample is empty, references missing rows, or contains
            labels outside the loss domain.
        """
        data = as_dataset(examples)
        n = len(data)
        if sample is None:
            idx = np.arange(n, dtype=np.int64)
        else:
            idx = np.asarray(sample)
            if idx.ndim != 1 or (idx.size and not np.issubdtype(idx.dtype, np.integer)):
                raise InputError("sample must be a 1-D array of integer indices")
            idx = idx.astype(np.int64, copy=False)
        if idx.size == 0:
            raise InputError("cannot train a tree on an empty sample")
        if idx.min() < 0 or idx.max() >= n:
            raise InputError("sample indices out of range")
        self.loss.validate_labels(data.y[idx])

        root = self._build_tree(data, idx)
        tree = DecisionTreePredictor(root, data.num_features)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("trained tree: %d nodes, depth %d, %d sample entries",
                         tree.num_nodes, tree.depth, idx.size)
        return tree

    # ------------------------------------------------------------------
    # Tree construction
    # ------------------------------------------------------------------
    def _find_split(self, data: RowDataset, idx: np.ndarray, depth: int,
                    stats: Tuple[float, float, float]):
        """Return ``(feature, threshold, gain)`` for a node, or None if it is a leaf."""
        p = self.parameters
        if idx.size < 2 * p.min_examples_per_leaf:
            return None
        if p.max_depth is not None and depth >= p.max_depth:
            return None
        if np.ptp(data.y[idx]) <= _LABEL_TOLERANCE:
            return None
        feat, thr, gain = self._best_split(data, idx, self.loss.leaf_loss(*stats))
        if feat is None or gain < p.min_gain:
            return None
        return feat, thr, gain

    def _build_tree(self, data: RowDataset, idx: np.ndarray) -> TreeNode:
        """
        Grow the tree breadth first with an explicit work queue.

        Every entry of ``plans`` is ``[idx, depth, stats, split, left, right]``;
        children are always appended after their parent, so walking the list
        backwards builds the frozen nodes bottom‑up.
        """
        plans = [[idx, 0, None, None, None, None]]
        i = 0
        while i < len(plans):
            plan = plans[i]
            node_idx, depth = plan[0], plan[1]
            stats = _node_stats(data.y[node_idx], data.w[node_idx])
            split = self._find_split(data, node_idx, depth, stats)
            plan[0], plan[2], plan[3] = node_idx.size, stats, split
            if split is not None:
                feat, thr, gain = split
                logger.debug("depth %d: split feature %d at %.6g (gain %.6g, n=%d)",
                             depth, feat, thr, gain, node_idx.size)
                go_left = data.X[node_idx, feat] <= thr
                plan[4] = len(plans)
                plans.append([node_idx[go_left], depth + 1, None, None, None, None])
                plan[5] = len(plans)
                plans.append([node_idx[~go_left], depth + 1, None, None, None, None])
            i += 1

        nodes: List[Optional[TreeNode]] = [None] * len(plans)
        for i in range(len(plans) - 1, -1, -1):
            n_samples, _, stats, split, left, right = plans[i]
            value = self.loss.leaf_value(*stats)
            if split is None:
                nodes[i] = TreeNode.leaf(value, n_samples, stats[0])
            else:
                feat, thr, gain = split
                nodes[i] = TreeNode.split(feat, thr, nodes[left], nodes[right],
                                          value=value, n_samples=n_samples,
                                          weight=stats[0], gain=gain)
                nodes[left] = nodes[right] = None
        return nodes[0]

    def _best_split(self, data: RowDataset, idx: np.ndarray, parent_loss: float):
        """Return ``(feature, threshold, gain)`` of the best split, or ``(None, None, -inf)``."""
        min_leaf = self.parameters.min_examples_per_leaf
        n = idx.size
        best_gain, best_feat, best_thr = -np.inf, None, None

        y = data.y[idx]
        w = data.w[idx]
        # left side sizes 1..n-1 at boundary i (left = first i+1 entries)
        left_count = np.arange(1, n)
        size_ok = (left_count >= min_leaf) & (n - left_count >= min_leaf)

        for j in range(data.num_features):
            col = data.X[idx, j]
            # stable: value ascending, then original example index
            order = np.lexsort((idx, col))
            v = col[order]
            yk = y[order]
            wk = w[order]

            boundary = (v[:-1] != v[1:]) & size_ok
            if not boundary.any():
                continue

            # prefix sums
            sw = np.cumsum(wk)
            sy = np.cumsum(wk * yk)
            sy2 = np.cumsum(wk * yk * yk)
            SW, SY, SY2 = sw[-1], sy[-1], sy2[-1]

            cand = np.nonzero(boundary)[0]
            swL, syL, sy2L = sw[cand], sy[cand], sy2[cand]
            loss_left = self.loss.leaf_loss(swL, syL, sy2L)
            loss_right = self.loss.leaf_loss(SW - swL, SY - syL, SY2 - sy2L)
            gains = parent_loss - (np.asarray(loss_left) + np.asarray(loss_right))
            gains = np.where(np.isnan(gains), -np.inf, gains)

            # argmax returns the first maximum, i.e. the lowest threshold
            k = int(np.argmax(gains))
            if gains[k] > best_gain:
                best_gain = float(gains[k])
                best_feat = j
                best_thr = float(v[cand[k]])

        return best_feat, best_thr, best_gain

    def __repr__(self) -> str:
        return f"SortingTreeTrainer(loss={self.loss!r}, {self.parameters.describe()})"


def make_sorting_tree_trainer(loss="squared",
                              parameters: Optional[SortingTreeTrainerParameters] = None,
                              **kwargs) -> SortingTreeTrainer:
    """
    Build a :class:`SortingTreeTrainer` from a loss name and parameters.

    Keyword arguments are forwarded to :class:`SortingTreeTrainerParameters`
    when ``parameters`` is not given.
    """
    if parameters is None:
        parameters = SortingTreeTrainerParameters(**kwargs)
    elif kwargs:
        raise ConfigurationError("pass either parameters or keyword arguments, not both")
    return SortingTreeTrainer(make_loss(loss), parameters)


__all__ = ["SortingTreeTrainer", "make_sorting_tree_trainer"]
