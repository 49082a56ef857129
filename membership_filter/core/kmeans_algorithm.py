"""
K-Means Clustering Algorithm Implementation.

K-Means is ideal for:
- Fast clustering of large datasets
- When number of clusters is known or can be estimated
- Spherical, evenly-sized clusters

Membership is hard: the nearest centroid receives probability 1.
"""

import logging
from typing import Any, Dict, Optional

import numpy as np
from sklearn.cluster import KMeans, MiniBatchKMeans

from membership_filter.core.base_clustering import (
    BaseClusteringAlgorithm,
    ClusteringConfig,
    ClusteringResult,
    ParamSpec,
)

logger = logging.getLogger(__name__)


def _parse_bool(value: str) -> bool:
    lowered = value.lower()
    if lowered in ("true", "1", "yes"):
        return True
    if lowered in ("false", "0", "no"):
        return False
    raise ValueError(f"Not a boolean: {value}")


class KMeansAlgorithm(BaseClusteringAlgorithm):
    """
    K-Means clustering implementation.

    Best for: fast partitioning when k is known
    Strengths: Fast, scalable, simple, honours record weights
    Weaknesses: Requires k as input, assumes spherical clusters, hard membership
    """

    NAME = "kmeans"
    DEFAULTS: Dict[str, Any] = {
        "n_clusters": 2,
        "n_init": 10,
        "max_iter": 300,
        "algorithm": "lloyd",
        "random_state": 10,
        "use_minibatch": False,
        "batch_size": 1024,
        "tol": 1e-4,
    }
    OPTIONS = (
        ParamSpec("N", "n_clusters", int, "Number of clusters."),
        ParamSpec("I", "max_iter", int, "Maximum number of iterations."),
        ParamSpec("S", "random_state", int, "Random number seed."),
        ParamSpec("A", "n_init", int, "Number of centroid initialisations."),
        ParamSpec("B", "use_minibatch", _parse_bool, "Use MiniBatchKMeans for large datasets."),
    )

    def __init__(self, config: Optional[ClusteringConfig] = None):
        super().__init__(config)
        self._model = None

        logger.info(
            f"Initialized K-Means: n_clusters={self.params['n_clusters']}, "
            f"n_init={self.params['n_init']}, use_minibatch={self.params['use_minibatch']}"
        )

    def _fit_matrix(self, matrix: np.ndarray, weights: np.ndarray) -> ClusteringResult:
        requested = self.params["n_clusters"]
        actual_n_clusters = min(requested, len(matrix))

        if actual_n_clusters < requested:
            logger.warning(
                f"Reducing n_clusters from {requested} to {actual_n_clusters} "
                f"due to small dataset size"
            )

        batch_size = self.params["batch_size"]
        if self.params["use_minibatch"] and len(matrix) > batch_size * 10:
            model = MiniBatchKMeans(
                n_clusters=actual_n_clusters,
                batch_size=batch_size,
                max_iter=self.params["max_iter"],
                random_state=self.params["random_state"],
                n_init=self.params["n_init"],
                tol=self.params["tol"],
                reassignment_ratio=0.01,
            )
            logger.info(f"Using MiniBatchKMeans with batch_size={batch_size}")
        else:
            model = KMeans(
                n_clusters=actual_n_clusters,
                n_init=self.params["n_init"],
                max_iter=self.params["max_iter"],
                algorithm=self.params["algorithm"],
                random_state=self.params["random_state"],
                tol=self.params["tol"],
            )

        labels = model.fit_predict(matrix, sample_weight=weights)
        self._model = model

        quality_metrics = self._calculate_quality_metrics(matrix, labels)
        if hasattr(model, "inertia_"):
            quality_metrics["inertia"] = float(model.inertia_)
        if hasattr(model, "n_iter_"):
            quality_metrics["iterations"] = int(model.n_iter_)

        return ClusteringResult(
            cluster_labels=labels,
            n_clusters=actual_n_clusters,
            quality_metrics=quality_metrics,
            centroids=model.cluster_centers_,
            cluster_probabilities=self._one_hot(labels, actual_n_clusters),
        )

    def _distribution(self, matrix: np.ndarray) -> np.ndarray:
        return self._one_hot(self._model.predict(matrix), self._n_clusters)

    @staticmethod
    def _one_hot(labels: np.ndarray, n_clusters: int) -> np.ndarray:
        distribution = np.zeros((len(labels), n_clusters))
        distribution[np.arange(len(labels)), labels] = 1.0
        return distribution
