import logging
from time import perf_counter

import numpy as np
from baggedtrees import (BinaryClassificationEvaluator, RowDataset, BaggedTreeClassifier,
                         make_bagging_incremental_trainer, make_sorting_tree_trainer)

logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")

rng = np.random.RandomState(0)
X = rng.normal(size=(400, 4))
y = np.where(X[:, 0] + 0.5 * X[:, 1] ** 2 - X[:, 2] > 0.3, 1.0, -1.0)
train = RowDataset.from_arrays(X[:300], y[:300])
test = RowDataset.from_arrays(X[300:], y[300:])

# low-level trainer API: three incremental updates of five trees each
base = make_sorting_tree_trainer("log", max_depth=4, min_examples_per_leaf=2)
trainer = make_bagging_incremental_trainer(base, num_trees_per_update=5,
                                           random_state=42, verbose=1)
evaluator = BinaryClassificationEvaluator("log")
t0 = perf_counter()
for _ in range(3):
    trainer.update(train)
    evaluator.evaluate(test, trainer.get_predictor())
print(f"train: {perf_counter()-t0:.3f} s")
print("Test error")
evaluator.print()

ensemble = trainer.get_predictor()
print("\nFirst tree:")
ensemble.predictors[0].print_tree(feature_names=["a", "b", "c", "d"])
try:
    print(ensemble.predictors[0].export_graphviz(feature_names=["a", "b", "c", "d"]))
except RuntimeError as e:
    print(f"Skipping Graphviz export: {e}")

# scikit-learn front end
labels = np.where(y > 0, "pos", "neg")
clf = BaggedTreeClassifier(n_trees=15, max_depth=4, random_state=42, verbose=1)
clf.fit(X[:300], labels[:300])
print(f"\nBaggedTreeClassifier accuracy: {clf.score(X[300:], labels[300:]):.3f}")
print(clf.predict_proba(X[300:305]))
