from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from numbers import Real
from typing import Any, Mapping

import numpy as np

from columnar_batch import as_batch, column_as_float64
from data_structures.ensemble import TreeEnsemble
from data_structures.tree import Tree
from model_errors import FeatureNotFound, TypeMismatch

logger = logging.getLogger(__name__)


@dataclass
class PredictParams:
    n_jobs: int = 1  # worker threads, each scoring whole row chunks
    chunk_size: int = 65536

    def __post_init__(self) -> None:
        if self.n_jobs < 1:
            raise ValueError("n_jobs must be >= 1")
        if self.chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")


def _tree_leaf_weights(tree: Tree, X: np.ndarray) -> np.ndarray:
    """Route every row of X through one tree and return the reached leaf weights."""
    nodes = np.zeros(X.shape[0], dtype=np.int64)
    if tree.is_leaf[0]:
        return tree.leaf_weight[nodes]

    has_categorical = tree.has_categorical
    active = np.arange(X.shape[0], dtype=np.int64)
    while active.size:
        current = nodes[active]
        values = X[active, tree.split_feature_index[current]]
        missing = ~np.isfinite(values)
        go_left = values < tree.split_condition[current]

        if has_categorical:
            categorical = tree.is_categorical[current] & ~missing
            for node in np.unique(current[categorical]):
                rows = categorical & (current == node)
                go_left[rows] = ~tree.category_goes_right(int(node), values[rows])

        go_left = np.where(missing, tree.default_left[current], go_left)
        nodes[active] = np.where(go_left, tree.left_child[current], tree.right_child[current])
        active = active[~tree.is_leaf[nodes[active]]]

    return tree.leaf_weight[nodes]


def _raw_scores(ensemble: TreeEnsemble, X: np.ndarray) -> np.ndarray:
    raw = np.full((X.shape[0], ensemble.num_outputs), ensemble.base_score, dtype=np.float64)
    # Trees are added in ascending index order so each row's sum is reproducible.
    for tree_index, tree in enumerate(ensemble.trees):
        raw[:, ensemble.tree_class(tree_index)] += _tree_leaf_weights(tree, X)
    return raw


class Predictor:
    """Scores columnar batches against one immutable ensemble.

    Holds no mutable state, so one instance may serve concurrent callers.
    """

    def __init__(self, ensemble: TreeEnsemble, params: PredictParams | None = None) -> None:
        self.ensemble = ensemble
        self.params = params or PredictParams()

    def _materialize(self, batch: Any) -> np.ndarray:
        batch = as_batch(batch)
        num_rows = int(batch.num_rows)
        features = self.ensemble.features
        X = np.full((num_rows, features.num_features), np.nan, dtype=np.float64)

        for feature in self.ensemble.used_features:
            name = features.names[feature]
            try:
                values = batch.column(name)
            except KeyError:
                raise FeatureNotFound(name) from None
            X[:, feature] = column_as_float64(name, values, num_rows)

        return X

    def _score(self, X: np.ndarray) -> np.ndarray:
        num_rows = X.shape[0]
        chunk_size = self.params.chunk_size
        if self.params.n_jobs == 1 or num_rows <= chunk_size:
            return _raw_scores(self.ensemble, X)

        starts = range(0, num_rows, chunk_size)
        with ThreadPoolExecutor(max_workers=self.params.n_jobs) as pool:
            parts = list(pool.map(lambda s: _raw_scores(self.ensemble, X[s:s + chunk_size]), starts))
        return np.concatenate(parts, axis=0)

    def _run(self, batch: Any, transform: bool) -> np.ndarray:
        start = time.perf_counter()
        X = self._materialize(batch)
        scores = self._score(X)
        if transform:
            scores = self.ensemble.objective.apply(scores)

        logger.debug(
            "Scored %d rows with %d trees in %.4fs",
            X.shape[0],
            self.ensemble.num_trees,
            time.perf_counter() - start,
        )
        return scores.reshape(-1)

    def predict(self, batch: Any) -> np.ndarray:
        """Final scores, row-major with ``num_outputs`` values per row."""
        return self._run(batch, transform=True)

    def predict_raw(self, batch: Any) -> np.ndarray:
        """Accumulated scores before the objective transform."""
        return self._run(batch, transform=False)

    def predict_row(self, row: Mapping[str, Any]) -> np.ndarray:
        """Score a single row given as feature name -> value."""
        features = self.ensemble.features
        values = np.full(features.num_features, np.nan, dtype=np.float64)
        for feature in self.ensemble.used_features:
            name = features.names[feature]
            if name not in row:
                raise FeatureNotFound(name)
            value = row[name]
            if value is None:
                continue
            if not isinstance(value, (Real, np.bool_)):
                raise TypeMismatch(name, f"type {type(value).__name__}")
            values[feature] = float(value)

        raw = np.full(self.ensemble.num_outputs, self.ensemble.base_score, dtype=np.float64)
        for tree_index, tree in enumerate(self.ensemble.trees):
            raw[self.ensemble.tree_class(tree_index)] += tree.predict_row(values)
        return self.ensemble.objective.apply(raw[np.newaxis, :])[0]


def predict_batch(
    ensemble: TreeEnsemble,
    batch: Any,
    params: PredictParams | None = None,
) -> np.ndarray:
    return Predictor(ensemble, params).predict(batch)


def predict_raw(
    ensemble: TreeEnsemble,
    batch: Any,
    params: PredictParams | None = None,
) -> np.ndarray:
    return Predictor(ensemble, params).predict_raw(batch)


def predict_row(ensemble: TreeEnsemble, row: Mapping[str, Any]) -> np.ndarray:
    return Predictor(ensemble).predict_row(row)
