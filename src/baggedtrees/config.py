"""Hyperparameter containers for the sorting tree and bagging trainers.

Count fields must be integral and numeric fields real; both are normalized to
plain ``int`` / ``float`` and validated eagerly.  Any invalid value, including
a wrong type such as ``None`` or ``1.5`` for a count, raises
:class:`~baggedtrees.exceptions.ConfigurationError` before any training work
is done.
"""
from __future__ import annotations

import numbers
from dataclasses import dataclass, fields
from typing import Optional, Union

from .exceptions import ConfigurationError

WEIGHT_POLICIES = ("average", "constant")


def _describe(obj) -> str:
    return ", ".join(f"{f.name}={getattr(obj, f.name)!r}" for f in fields(obj))


def _check_int(name: str, value, minimum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise ConfigurationError(f"{name} must be an int, got {value!r}")
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}")
    return int(value)


def _check_real(name: str, value) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ConfigurationError(f"{name} must be a number, got {value!r}")
    return float(value)


@dataclass(frozen=True)
class SortingTreeTrainerParameters:
    """
    Parameters of a single greedy tree.

    Parameters
    ----------
    max_depth : int or None, default=None
        Maximum depth of the tree.  ``0`` yields a single leaf; ``None``
        means unbounded.
    min_examples_per_leaf : int, default=1
        Minimum number of (sample) entries on each side of a split.
    min_gain : float, default=0.0
        Minimum loss reduction required to accept a split.
    """

    max_depth: Optional[int] = None
    min_examples_per_leaf: int = 1
    min_gain: float = 0.0

    def __post_init__(self):
        if self.max_depth is not None:
            object.__setattr__(self, "max_depth", _check_int("max_depth", self.max_depth, 0))
        object.__setattr__(self, "min_examples_per_leaf",
                           _check_int("min_examples_per_leaf", self.min_examples_per_leaf, 1))
        min_gain = _check_real("min_gain", self.min_gain)
        if not (min_gain >= 0.0):
            raise ConfigurationError("min_gain must be a non-negative number")
        object.__setattr__(self, "min_gain", min_gain)

    def describe(self) -> str:
        return _describe(self)


@dataclass(frozen=True)
class BaggingIncrementalTrainerParameters:
    """
    Parameters of the bagging loop.

    Parameters
    ----------
    num_trees_per_update : int, default=1
        Trees trained by each call to ``update``.
    bag_size : int, float or None, default=None
        Bootstrap sample size.  ``None`` uses the dataset size, an ``int`` is
        an absolute count and a ``float`` in ``(0, 1]`` a fraction of it.
    weight_policy : {"average", "constant"}, default="average"
        ``"average"`` weights every tree by ``1 / num_trees``; ``"constant"``
        gives every tree ``tree_weight``.
    tree_weight : float, default=1.0
        Per‑tree weight under the ``"constant"`` policy.
    random_state : int or None, default=None
        Seed of the trainer's private random generator.
    """

    num_trees_per_update: int = 1
    bag_size: Optional[Union[int, float]] = None
    weight_policy: str = "average"
    tree_weight: float = 1.0
    random_state: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "num_trees_per_update",
                           _check_int("num_trees_per_update", self.num_trees_per_update, 1))

        bag_size = self.bag_size
        if bag_size is not None:
            if isinstance(bag_size, bool):
                raise ConfigurationError("bag_size must be an int, a float or None")
            if isinstance(bag_size, numbers.Integral):
                if bag_size < 1:
                    raise ConfigurationError("bag_size must be >= 1")
                bag_size = int(bag_size)
            elif isinstance(bag_size, numbers.Real):
                if not (0.0 < bag_size <= 1.0):
                    raise ConfigurationError("a fractional bag_size must be in (0, 1]")
                bag_size = float(bag_size)
            else:
                raise ConfigurationError("bag_size must be an int, a float or None")
            object.__setattr__(self, "bag_size", bag_size)

        if self.weight_policy not in WEIGHT_POLICIES:
            raise ConfigurationError(
                f"weight_policy must be one of {WEIGHT_POLICIES}, got {self.weight_policy!r}")
        tree_weight = _check_real("tree_weight", self.tree_weight)
        if not (tree_weight > 0.0):
            raise ConfigurationError("tree_weight must be > 0")
        object.__setattr__(self, "tree_weight", tree_weight)

    def resolve_bag_size(self, num_examples: int) -> int:
        """Number of indices to draw for a dataset of ``num_examples`` rows."""
        if self.bag_size is None:
            return int(num_examples)
        if isinstance(self.bag_size, int):
            return self.bag_size
        return max(1, int(round(num_examples * self.bag_size)))

    def describe(self) -> str:
        return _describe(self)


__all__ = [
    "SortingTreeTrainerParameters",
    "BaggingIncrementalTrainerParameters",
    "WEIGHT_POLICIES",
]
