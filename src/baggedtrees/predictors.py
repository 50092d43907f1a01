"""Immutable tree and ensemble predictors.

This module holds the output of training: :class:`TreeNode` (a frozen
binary tree of axis‑aligned threshold splits), :class:`DecisionTreePredictor`
wrapping one root, and :class:`EnsemblePredictor`, a weighted sum of trees.
It also carries the rule‑export, pretty‑printing and Graphviz helpers for
single trees.
"""
from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence, Tuple

import numpy as np

from .exceptions import InputError


def _walk(root: "TreeNode") -> Iterator[Tuple["TreeNode", int]]:
    """Pre‑order ``(node, depth)`` pairs, left before right, without recursion."""
    stack = [(root, 0)]
    while stack:
        node, depth = stack.pop()
        yield node, depth
        if not node.is_leaf:
            stack.append((node.right, depth + 1))
            stack.append((node.left, depth + 1))


# ----------------------------- Node -----------------------------

@dataclass(frozen=True)
class TreeNode:
    is_leaf: bool
    value: float
    n_samples: int
    weight: float
    feature_index: Optional[int] = None
    threshold: Optional[float] = None
    left: Optional["TreeNode"] = field(default=None, repr=False)
    right: Optional["TreeNode"] = field(default=None, repr=False)
    gain: float = 0.0

    @classmethod
    def leaf(cls, value: float, n_samples: int, weight: float) -> "TreeNode":
        return cls(is_leaf=True, value=float(value), n_samples=int(n_samples), weight=float(weight))

    @classmethod
    def split(cls, feature_index: int, threshold: float, left: "TreeNode", right: "TreeNode",
              *, value: float, n_samples: int, weight: float, gain: float) -> "TreeNode":
        return cls(is_leaf=False, value=float(value), n_samples=int(n_samples), weight=float(weight),
                   feature_index=int(feature_index), threshold=float(threshold),
                   left=left, right=right, gain=float(gain))

    @property
    def n_leaves(self) -> int:
        return sum(1 for node, _ in _walk(self) if node.is_leaf)

    @property
    def n_nodes(self) -> int:
        return sum(1 for _ in _walk(self))

    @property
    def depth(self) -> int:
        return max(d for _, d in _walk(self))


def _check_vector(x, num_features: Optional[int]) -> np.ndarray:
    x = np.asarray(x, dtype=float)
    if num_features is not None and x.shape != (num_features,):
        raise InputError(f"expected a feature vector of shape ({num_features},), got {x.shape}")
    return x


def _check_matrix(X, num_features: Optional[int]) -> np.ndarray:
    X = np.asarray(X, dtype=float)
    if X.ndim != 2 or (num_features is not None and X.shape[1] != num_features):
        raise InputError(f"expected a matrix with {num_features} columns, got shape {X.shape}")
    return X


# ----------------------------- Single tree -----------------------------

class DecisionTreePredictor:
    """
    A trained regression tree.

    Parameters
    ----------
    root : TreeNode
        Root of the tree.  The predictor never mutates it.
    num_features : int
        Dimension of the feature vectors the tree was trained on.
    """

    def __init__(self, root: TreeNode, num_features: int):
        self._root = root
        self._num_features = int(num_features)

    @property
    def root(self) -> TreeNode:
        return self._root

    @property
    def num_features(self) -> int:
        return self._num_features

    @property
    def num_nodes(self) -> int:
        return self._root.n_nodes

    @property
    def num_leaves(self) -> int:
        return self._root.n_leaves

    @property
    def depth(self) -> int:
        return self._root.depth

    def predict(self, x) -> float:
        """Route ``x`` from the root to a leaf and return the leaf value."""
        x = _check_vector(x, self._num_features)
        return self._predict_instance(x)

    def predict_batch(self, X) -> np.ndarray:
        X = _check_matrix(X, self._num_features)
        return np.array([self._predict_instance(x) for x in X], dtype=float)

    def _predict_instance(self, x: np.ndarray) -> float:
        node = self._root
        while not node.is_leaf:
            node = node.left if x[node.feature_index] <= node.threshold else node.right
        return node.value

    # ----------------------------- Pretty / Rules / Graphviz -----------------------------

    def _feature_name(self, j: int, fn) -> str:
        return fn[j] if (fn is not None and 0 <= j < len(fn)) else f"X[{j}]"

    def print_tree(self, feature_names: Optional[Sequence[str]] = None, file=None) -> None:
        """
        Pretty‑print the tree to ``file`` (``stdout`` by default).

        Parameters
        ----------
        feature_names : list[str], optional
            Names used in place of ``X[j]``.
        file : text stream, optional
            Destination stream.
        """
        out = file or sys.stdout
        # entries are either a node to print or a finished line
        stack: list = [(self._root, "")]
        while stack:
            item, indent = stack.pop()
            if isinstance(item, str):
                print(item, file=out)
            elif item.is_leaf:
                print(f"{indent}Predict {item.value:.6g} (N={item.n_samples})", file=out)
            else:
                name = self._feature_name(item.feature_index, feature_names)
                print(f"{indent}if {name} <= {item.threshold:.6g}:", file=out)
                stack.append((item.right, indent + "  "))
                stack.append((f"{indent}else:", indent))
                stack.append((item.left, indent + "  "))

    def export_rules(self, feature_names: Optional[Sequence[str]] = None) -> List[str]:
        """
        Export every root‑to‑leaf path as a rule.

        Returns
        -------
        list[str]
            One string per leaf of the form
            ``"<antecedent> => value=<prediction> (N=<count>)"``.
        """
        rules: List[str] = []
        stack: List[Tuple[TreeNode, Tuple[str, ...]]] = [(self._root, ())]
        while stack:
            node, parts = stack.pop()
            if node.is_leaf:
                antecedent = " AND ".join(parts) if parts else "<root>"
                rules.append(f"{antecedent} => value={node.value:.6g} (N={node.n_samples})")
                continue
            name = self._feature_name(node.feature_index, feature_names)
            stack.append((node.right, parts + (f"{name} > {node.threshold:.6g}",)))
            stack.append((node.left, parts + (f"{name} <= {node.threshold:.6g}",)))
        return rules

    def export_graphviz(self, filename: Optional[str] = None, *,
                        feature_names: Optional[Sequence[str]] = None,
                        format: str = "dot") -> str:
        """
        Export the tree in Graphviz format.

        With ``format='dot'`` the DOT source is written directly and no
        external ``dot`` binary is needed.  Other formats are rendered with
        the installed binary, falling back to a ``.dot`` file when it is
        unavailable.

        Parameters
        ----------
        filename : str or None, default=None
            Basename of the output file.  If None, the DOT source is returned
            and nothing is written.
        feature_names : list[str], optional
            Names used in node labels.
        format : str, default="dot"
            Graphviz output format.

        Returns
        -------
        str
            Path to the written file, or the DOT source if ``filename`` is None.

        Raises
        ------
        RuntimeError
            If the ``graphviz`` Python package is not installed.
        """
        try:
            from graphviz import Digraph
        except ImportError as e:
            raise RuntimeError("Please install the 'graphviz' Python package.") from e
        dot = Digraph(comment="DecisionTreePredictor", format=format)
        self._add_graph_nodes(dot, self._root, feature_names)
        if filename is None:
            return dot.source
        if format.lower() == "dot":
            path = f"{filename}.dot"
            dot.save(path)
            return path
        try:
            dot.render(filename, cleanup=True)
            return f"{filename}.{format}"
        except Exception:
            fallback_path = f"{filename}.dot"
            dot.save(fallback_path)
            return fallback_path

    def _add_graph_nodes(self, dot, root: TreeNode, fn) -> None:
        # ids are assigned in creation order, root is "0"
        stack = [(root, 0)]
        next_id = 1
        while stack:
            node, node_id = stack.pop()
            if node.is_leaf:
                dot.node(str(node_id), f"Leaf\nvalue={node.value:.6g}\nN={node.n_samples}",
                         shape="box", style="filled", color="lightgrey")
                continue
            name = self._feature_name(node.feature_index, fn)
            dot.node(str(node_id), f"{name} <= {node.threshold:.6g}\nN={node.n_samples}",
                     shape="ellipse", style="filled", color="lightblue")
            left_id, right_id = next_id, next_id + 1
            next_id += 2
            dot.edge(str(node_id), str(left_id), label="True")
            dot.edge(str(node_id), str(right_id), label="False")
            stack.append((node.right, right_id))
            stack.append((node.left, left_id))

    def __repr__(self) -> str:
        return (f"DecisionTreePredictor(num_features={self._num_features}, "
                f"num_nodes={self.num_nodes}, depth={self.depth})")


# ----------------------------- Ensemble -----------------------------

class EnsemblePredictor:
    """
    Weighted sum of decision trees.

    Instances are immutable: trainers build a new ensemble for every
    snapshot instead of appending to one that was already handed out.

    Parameters
    ----------
    members : sequence of (DecisionTreePredictor, float)
        Trees and their weights, in training order.
    """

    def __init__(self, members: Sequence[Tuple[DecisionTreePredictor, float]] = ()):
        self._members: Tuple[Tuple[DecisionTreePredictor, float], ...] = tuple(
            (p, float(wt)) for p, wt in members)
        dims = {p.num_features for p, _ in self._members}
        if len(dims) > 1:
            raise InputError(f"ensemble members disagree on the feature dimension: {sorted(dims)}")
        self._num_features = dims.pop() if dims else None

    @property
    def num_features(self) -> Optional[int]:
        return self._num_features

    @property
    def predictors(self) -> Tuple[DecisionTreePredictor, ...]:
        return tuple(p for p, _ in self._members)

    @property
    def weights(self) -> np.ndarray:
        return np.array([wt for _, wt in self._members], dtype=float)

    def __len__(self) -> int:
        return len(self._members)

    def __iter__(self) -> Iterator[Tuple[DecisionTreePredictor, float]]:
        return iter(self._members)

    def predict(self, x) -> float:
        x = _check_vector(x, self._num_features)
        return float(sum(wt * p._predict_instance(x) for p, wt in self._members))

    def predict_batch(self, X) -> np.ndarray:
        X = _check_matrix(X, self._num_features)
        acc = np.zeros(X.shape[0], dtype=float)
        for p, wt in self._members:
            acc += wt * np.array([p._predict_instance(x) for x in X], dtype=float)
        return acc

    def __repr__(self) -> str:
        return f"EnsemblePredictor(num_trees={len(self)}, num_features={self._num_features})"


__all__ = ["TreeNode", "DecisionTreePredictor", "EnsemblePredictor"]
