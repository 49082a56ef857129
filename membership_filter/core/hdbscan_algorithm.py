"""
HDBSCAN Clustering Algorithm Implementation.

Hierarchical Density-Based Spatial Clustering of Applications with Noise (HDBSCAN)
is ideal for:
- Finding clusters of varying densities
- Handling outliers/noise
- Not requiring the number of clusters as input

Membership probabilities come from HDBSCAN's soft clustering, which needs
prediction data to be generated at fit time.
"""

import logging
from typing import Any, Dict, Optional

import hdbscan
import numpy as np

from membership_filter.core.base_clustering import (
    BaseClusteringAlgorithm,
    ClusteringConfig,
    ClusteringResult,
    ParamSpec,
)

logger = logging.getLogger(__name__)


class HDBSCANAlgorithm(BaseClusteringAlgorithm):
    """
    HDBSCAN clustering implementation.

    Best for: data with noise and clusters of uneven density
    Strengths: Handles variable density, chooses the cluster count itself
    Weaknesses: Slower than K-Means; may find zero clusters on small data
    """

    NAME = "hdbscan"
    DEFAULTS: Dict[str, Any] = {
        "min_cluster_size": 5,
        "min_samples": None,
        "cluster_selection_epsilon": 0.0,
        "metric": "euclidean",
        "cluster_selection_method": "eom",
        "allow_single_cluster": False,
    }
    OPTIONS = (
        ParamSpec("M", "min_cluster_size", int, "Minimum cluster size."),
        ParamSpec("K", "min_samples", int, "Neighbourhood size for core distances."),
        ParamSpec("E", "cluster_selection_epsilon", float, "Cluster selection epsilon."),
        ParamSpec("D", "metric", str, "Distance metric."),
        ParamSpec("C", "cluster_selection_method", str, "Cluster selection method (eom or leaf)."),
    )

    def __init__(self, config: Optional[ClusteringConfig] = None):
        super().__init__(config)
        self._model: Optional[hdbscan.HDBSCAN] = None

        logger.info(
            f"Initialized HDBSCAN: min_cluster_size={self.params['min_cluster_size']}, "
            f"min_samples={self.params['min_samples']}, metric={self.params['metric']}"
        )

    def _fit_matrix(self, matrix: np.ndarray, weights: np.ndarray) -> ClusteringResult:
        model = hdbscan.HDBSCAN(
            min_cluster_size=self.params["min_cluster_size"],
            min_samples=self.params["min_samples"],
            cluster_selection_epsilon=self.params["cluster_selection_epsilon"],
            metric=self.params["metric"],
            cluster_selection_method=self.params["cluster_selection_method"],
            allow_single_cluster=self.params["allow_single_cluster"],
            prediction_data=True,
        )
        labels = model.fit_predict(matrix)
        self._model = model

        n_clusters = int(labels.max()) + 1 if np.any(labels >= 0) else 0
        outlier_count = int(np.sum(labels == -1))

        logger.info(f"HDBSCAN found {n_clusters} clusters with {outlier_count} outliers")

        if n_clusters > 0:
            probabilities = np.asarray(
                hdbscan.all_points_membership_vectors(model), dtype=np.float64
            ).reshape(len(matrix), n_clusters)
        else:
            logger.warning("HDBSCAN found no clusters; membership vectors will be empty")
            probabilities = np.zeros((len(matrix), 0))

        quality_metrics = self._calculate_quality_metrics(matrix, labels)
        if hasattr(model, "probabilities_") and np.any(model.probabilities_ > 0):
            quality_metrics["avg_membership_probability"] = float(
                np.mean(model.probabilities_[model.probabilities_ > 0])
            )

        return ClusteringResult(
            cluster_labels=labels,
            n_clusters=n_clusters,
            quality_metrics=quality_metrics,
            cluster_probabilities=probabilities,
        )

    def _distribution(self, matrix: np.ndarray) -> np.ndarray:
        if self._n_clusters == 0:
            return np.zeros((len(matrix), 0))
        return np.asarray(
            hdbscan.membership_vector(self._model, matrix), dtype=np.float64
        ).reshape(len(matrix), self._n_clusters)
