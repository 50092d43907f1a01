# -*- coding: utf-8 -*-
"""
baggedtrees.dataset
===================

The example store consumed by the trainers and the evaluator.

A :class:`RowDataset` keeps ``N`` examples as three aligned numpy arrays
(features ``X``, labels ``y`` and weights ``w``).  Trainers never copy or
reorder those arrays; they work on index arrays into them.  The dataset also
hands out :class:`ExampleIterator` objects, restartable forward iterators
over immutable :class:`Example` records.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Optional

import numpy as np
from sklearn.utils import check_array

from .exceptions import InputError


# -----------------------------------------------------------------------------
# Example
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class Example:
    """A single (feature vector, label, weight) record."""

    features: np.ndarray
    label: float
    weight: float = 1.0

    def __post_init__(self):
        x = np.array(self.features, dtype=float)
        x.setflags(write=False)
        object.__setattr__(self, "features", x)
        object.__setattr__(self, "label", float(self.label))
        object.__setattr__(self, "weight", float(self.weight))


# -----------------------------------------------------------------------------
# Iterator
# -----------------------------------------------------------------------------
class ExampleIterator:
    """Forward iterator over a :class:`RowDataset` that can be rewound."""

    def __init__(self, dataset: "RowDataset"):
        self.dataset = dataset
        self._pos = 0

    def reset(self) -> "ExampleIterator":
        self._pos = 0
        return self

    def __iter__(self) -> Iterator[Example]:
        return self

    def __next__(self) -> Example:
        if self._pos >= len(self.dataset):
            raise StopIteration
        ex = self.dataset[self._pos]
        self._pos += 1
        return ex


# -----------------------------------------------------------------------------
# Dataset
# -----------------------------------------------------------------------------
class RowDataset:
    """
    Ordered, indexable collection of weighted examples.

    Parameters
    ----------
    X : array-like of shape (n_examples, n_features)
        Dense numeric features.  Missing or non‑finite values are rejected.
    y : array-like of shape (n_examples,)
        Labels.
    sample_weight : array-like of shape (n_examples,), optional
        Non‑negative example weights; defaults to ones.

    Raises
    ------
    InputError
        If the arrays are malformed, misaligned or contain negative weights.
    """

    def __init__(self, X, y, sample_weight=None):
        try:
            X = check_array(X, dtype=np.float64, ensure_2d=True,
                            ensure_min_samples=0, ensure_min_features=0)
        except ValueError as e:
            raise InputError(f"invalid feature matrix: {e}") from e
        y = np.asarray(y, dtype=float).reshape(-1)
        if y.shape[0] != X.shape[0]:
            raise InputError("labels must have the same length as X")
        if sample_weight is None:
            w = np.ones(X.shape[0], dtype=float)
        else:
            w = np.asarray(sample_weight, dtype=float).reshape(-1)
            if w.shape[0] != X.shape[0]:
                raise InputError("sample_weight must have the same length as y")
            if np.any(w < 0) or not np.all(np.isfinite(w)):
                raise InputError("sample_weight must be finite and non-negative")
        self.X = X
        self.y = y
        self.w = w

    @classmethod
    def from_arrays(cls, X, y, sample_weight=None) -> "RowDataset":
        return cls(X, y, sample_weight)

    @classmethod
    def from_examples(cls, examples: Iterable[Example],
                      num_features: Optional[int] = None) -> "RowDataset":
        """Materialize an iterable of :class:`Example` into a dataset."""
        rows, labels, weights = [], [], []
        for ex in examples:
            if num_features is None:
                num_features = len(ex.features)
            if len(ex.features) != num_features:
                raise InputError(
                    f"example has {len(ex.features)} features, expected {num_features}")
            rows.append(ex.features)
            labels.append(ex.label)
            weights.append(ex.weight)
        if not rows:
            return cls(np.empty((0, num_features or 0)), np.empty(0))
        return cls(np.vstack(rows), labels, weights)

    @property
    def num_examples(self) -> int:
        return self.X.shape[0]

    @property
    def num_features(self) -> int:
        return self.X.shape[1]

    def __len__(self) -> int:
        return self.X.shape[0]

    def __getitem__(self, i: int) -> Example:
        return Example(self.X[i], self.y[i], self.w[i])

    def __iter__(self) -> Iterator[Example]:
        return self.get_iterator()

    def get_iterator(self) -> ExampleIterator:
        return ExampleIterator(self)

    def __repr__(self) -> str:
        return f"RowDataset(num_examples={self.num_examples}, num_features={self.num_features})"


def as_dataset(examples) -> RowDataset:
    """Coerce a dataset, an :class:`ExampleIterator` or an iterable of examples."""
    if isinstance(examples, RowDataset):
        return examples
    if isinstance(examples, ExampleIterator):
        return examples.reset().dataset
    return RowDataset.from_examples(examples)


__all__ = ["Example", "ExampleIterator", "RowDataset", "as_dataset"]
