"""Binary classification evaluator.

Accumulates the weighted loss and the sign‑based classification error of a
predictor over a dataset.  Every call to
:meth:`BinaryClassificationEvaluator.evaluate` is one read‑only pass and
appends one row to the evaluator's history, which :meth:`print` renders as a
small tab‑separated table.
"""
from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from .dataset import as_dataset
from .exceptions import InputError
from .loss import Loss, make_loss

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EvaluationResult:
    total_loss: float
    total_weight: float
    weighted_errors: float
    num_errors: int
    num_examples: int
    num_trees: Optional[int] = None

    @property
    def mean_loss(self) -> float:
        return self.total_loss / self.total_weight if self.total_weight > 0 else 0.0

    @property
    def error_rate(self) -> float:
        return self.weighted_errors / self.total_weight if self.total_weight > 0 else 0.0


class BinaryClassificationEvaluator:
    """
    Evaluate predictors on binary labels.

    An example counts as misclassified when ``(prediction > 0) != (label > 0)``.

    Parameters
    ----------
    loss : Loss or str, default="log"
        Loss used for the aggregate loss column.
    """

    def __init__(self, loss="log"):
        self.loss: Loss = make_loss(loss)
        self.results: List[EvaluationResult] = []

    def evaluate(self, examples, predictor) -> EvaluationResult:
        """
        Score ``predictor`` on ``examples`` and record the result.

        Parameters
        ----------
        examples : RowDataset, ExampleIterator or iterable of Example
            Evaluation data; it is not modified.
        predictor : DecisionTreePredictor or EnsemblePredictor
            Any object with ``predict_batch``.

        Returns
        -------
        EvaluationResult
        """
        data = as_dataset(examples)
        if len(data) == 0:
            raise InputError("cannot evaluate on an empty dataset")
        pred = np.asarray(predictor.predict_batch(data.X), dtype=float)
        y, w = data.y, data.w

        losses = np.asarray(self.loss.value(pred, y), dtype=float)
        wrong = (pred > 0) != (y > 0)
        num_trees = len(predictor) if hasattr(predictor, "__len__") else None
        result = EvaluationResult(
            total_loss=float(np.sum(w * losses)),
            total_weight=float(w.sum()),
            weighted_errors=float(w[wrong].sum()),
            num_errors=int(wrong.sum()),
            num_examples=len(data),
            num_trees=num_trees,
        )
        self.results.append(result)
        logger.debug("evaluation: loss=%.6g error=%.6g over %d examples",
                     result.mean_loss, result.error_rate, result.num_examples)
        return result

    def reset(self) -> None:
        self.results.clear()

    def print(self, file=None) -> None:
        """Write the accumulated results to ``file`` (``stdout`` by default)."""
        out = file or sys.stdout
        print("binary classification evaluation", file=out)
        print("trees\tloss\terror", file=out)
        for r in self.results:
            trees = "-" if r.num_trees is None else str(r.num_trees)
            print(f"{trees}\t{r.mean_loss:.6g}\t{r.error_rate:.6g}", file=out)


__all__ = ["BinaryClassificationEvaluator", "EvaluationResult"]
