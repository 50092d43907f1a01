# baggedtrees/__init__.py
"""
baggedtrees: bagged sorting-tree ensembles in pure Python (scikit-learn style).

Exports:
    - SortingTreeTrainer, BaggingIncrementalTrainer and their factories
    - DecisionTreePredictor, EnsemblePredictor
    - SquaredLoss, LogLoss
    - BinaryClassificationEvaluator
    - RowDataset, Example
    - BaggedTreeRegressor, BaggedTreeClassifier
"""
import logging

from .bagging import BaggingIncrementalTrainer, make_bagging_incremental_trainer
from .config import BaggingIncrementalTrainerParameters, SortingTreeTrainerParameters
from .dataset import Example, ExampleIterator, RowDataset
from .estimators import BaggedTreeClassifier, BaggedTreeRegressor
from .evaluator import BinaryClassificationEvaluator, EvaluationResult
from .exceptions import ConfigurationError, InputError
from .loss import LogLoss, Loss, SquaredLoss, make_loss
from .predictors import DecisionTreePredictor, EnsemblePredictor, TreeNode
from .tree import SortingTreeTrainer, make_sorting_tree_trainer

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "BaggingIncrementalTrainer",
    "make_bagging_incremental_trainer",
    "BaggingIncrementalTrainerParameters",
    "SortingTreeTrainerParameters",
    "Example",
    "ExampleIterator",
    "RowDataset",
    "BaggedTreeClassifier",
    "BaggedTreeRegressor",
    "BinaryClassificationEvaluator",
    "EvaluationResult",
    "ConfigurationError",
    "InputError",
    "Loss",
    "LogLoss",
    "SquaredLoss",
    "make_loss",
    "DecisionTreePredictor",
    "EnsemblePredictor",
    "TreeNode",
    "SortingTreeTrainer",
    "make_sorting_tree_trainer",
]
__version__ = "0.1.0"
