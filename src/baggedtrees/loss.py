"""Loss functions used to fit leaves and score splits.

Every loss exposes the scalar contract (``value`` / ``derivative``) plus the
sufficient‑statistics helpers the sorting tree trainer needs during its
left‑to‑right sweep: given running sums ``(sum w, sum w*y, sum w*y^2)`` of a
candidate node, return the loss‑minimizing constant and the weighted loss it
incurs.  All methods broadcast over numpy arrays.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, Type

import numpy as np

from .exceptions import ConfigurationError, InputError

# ----------------------------- Helpers -----------------------------

def _safe_div(a, b, default: float = 0.0):
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    out = np.full(np.broadcast(a, b).shape, default, dtype=float)
    np.divide(a, b, out=out, where=(b > 0.0))
    return out if out.ndim else float(out)


# ----------------------------- Base -----------------------------

class Loss(ABC):
    """Two‑method loss capability with node‑level helpers."""

    name: str = ""

    @abstractmethod
    def value(self, prediction, label):
        ...

    @abstractmethod
    def derivative(self, prediction, label):
        ...

    @abstractmethod
    def leaf_value(self, sum_w, sum_wy, sum_wyy):
        """Loss‑minimizing constant for a node with the given statistics."""

    @abstractmethod
    def leaf_loss(self, sum_w, sum_wy, sum_wyy):
        """Weighted loss of a node that predicts :meth:`leaf_value`."""

    def validate_labels(self, labels: np.ndarray) -> None:
        """Raise :class:`InputError` if ``labels`` are outside the loss domain."""
        if not np.all(np.isfinite(labels)):
            raise InputError(f"{self.name} loss requires finite labels")

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


# ----------------------------- Squared loss -----------------------------

class SquaredLoss(Loss):
    """``(p - y)^2 / 2``; leaves predict the weighted mean label."""

    name = "squared"

    def value(self, prediction, label):
        d = np.subtract(prediction, label)
        return 0.5 * d * d

    def derivative(self, prediction, label):
        return np.subtract(prediction, label)

    def leaf_value(self, sum_w, sum_wy, sum_wyy):
        return _safe_div(sum_wy, sum_w)

    def leaf_loss(self, sum_w, sum_wy, sum_wyy):
        # SSE = sum w*y^2 - (sum w*y)^2 / sum w
        sum_wy = np.asarray(sum_wy, dtype=float)
        sse = np.asarray(sum_wyy, dtype=float) - _safe_div(sum_wy * sum_wy, sum_w)
        out = 0.5 * np.maximum(sse, 0.0)
        return out if out.ndim else float(out)


# ----------------------------- Log loss -----------------------------

class LogLoss(Loss):
    """
    Logistic loss ``log(1 + exp(-y*p))`` for labels in ``{-1, +1}``.

    Leaves use the closed‑form weighted log‑odds ``log(W+ / W-)``.  The
    positive fraction is clipped to ``[eps, 1 - eps]`` so that pure nodes
    produce a finite output (about +/-9.21 with the default ``eps``).

    Parameters
    ----------
    eps : float, default=1e-4
        Clipping applied to the positive fraction before taking log‑odds.
    """

    name = "log"

    def __init__(self, eps: float = 1e-4):
        eps = float(eps)
        if not (0.0 < eps < 0.5):
            raise ConfigurationError("eps must be in (0, 0.5)")
        self.eps = eps

    def value(self, prediction, label):
        return np.logaddexp(0.0, -np.multiply(label, prediction))

    def derivative(self, prediction, label):
        # -y / (1 + exp(y*p)) without overflow
        margin = np.multiply(label, prediction)
        return -np.asarray(label, dtype=float) * np.exp(-np.logaddexp(0.0, margin))

    def _positive_fraction(self, sum_w, sum_wy):
        q = _safe_div(0.5 * (np.asarray(sum_w, dtype=float) + np.asarray(sum_wy, dtype=float)),
                      sum_w, default=0.5)
        return np.clip(q, self.eps, 1.0 - self.eps)

    def leaf_value(self, sum_w, sum_wy, sum_wyy):
        q = self._positive_fraction(sum_w, sum_wy)
        out = np.log(q) - np.log1p(-q)
        return out if np.ndim(out) else float(out)

    def leaf_loss(self, sum_w, sum_wy, sum_wyy):
        sum_w = np.asarray(sum_w, dtype=float)
        sum_wy = np.asarray(sum_wy, dtype=float)
        p = self.leaf_value(sum_w, sum_wy, sum_wyy)
        w_pos = 0.5 * (sum_w + sum_wy)
        w_neg = 0.5 * (sum_w - sum_wy)
        out = w_pos * self.value(p, 1.0) + w_neg * self.value(p, -1.0)
        return out if np.ndim(out) else float(out)

    def validate_labels(self, labels: np.ndarray) -> None:
        labels = np.asarray(labels)
        if not np.all((labels == 1.0) | (labels == -1.0)):
            raise InputError("log loss requires labels in {-1, +1}")

    def __repr__(self) -> str:
        return f"LogLoss(eps={self.eps!r})"


# ----------------------------- Factory -----------------------------

_LOSSES: Dict[str, Type[Loss]] = {
    "squared": SquaredLoss,
    "log": LogLoss,
}


def make_loss(name) -> Loss:
    """Return a loss instance from its name (``"squared"`` or ``"log"``)."""
    if isinstance(name, Loss):
        return name
    key = str(name).lower()
    if key not in _LOSSES:
        raise ConfigurationError(
            f"unknown loss {name!r}; expected one of {sorted(_LOSSES)}")
    return _LOSSES[key]()


__all__ = ["Loss", "SquaredLoss", "LogLoss", "make_loss"]
