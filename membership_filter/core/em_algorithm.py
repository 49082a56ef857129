"""
EM Clustering Algorithm Implementation.

Expectation-maximisation over a mixture of diagonal Gaussians. This is the
default clusterer of the membership filter:
- Produces genuine soft memberships (posterior probabilities)
- Can choose the number of clusters itself (BIC) when none is given
"""

import logging
from typing import Any, Dict, Optional

import numpy as np
from sklearn.mixture import GaussianMixture

from membership_filter.core.base_clustering import (
    BaseClusteringAlgorithm,
    ClusteringConfig,
    ClusteringResult,
    ParamSpec,
)

logger = logging.getLogger(__name__)


class EMAlgorithm(BaseClusteringAlgorithm):
    """
    Gaussian mixture clustering fitted with EM.

    Best for: soft cluster membership, numeric attributes
    Strengths: probabilistic output, automatic cluster count via BIC
    Weaknesses: assumes per-cluster Gaussian attributes, sensitive to init

    Limitations:
    - Record weights are ignored; GaussianMixture has no sample weights.
      A warning is logged when the training weights are not uniform.
    - Nominal attributes that are not the label are modelled as Gaussians
      over their label indices. Exclude them with -I.
    """

    NAME = "em"
    DEFAULTS: Dict[str, Any] = {
        "n_clusters": -1,
        "max_clusters": 10,
        "max_iter": 100,
        "random_state": 100,
        "reg_covar": 1e-6,
    }
    OPTIONS = (
        ParamSpec("N", "n_clusters", int, "Number of clusters. -1 selects the number by BIC."),
        ParamSpec("X", "max_clusters", int, "Largest number of clusters tried when selecting by BIC."),
        ParamSpec("I", "max_iter", int, "Maximum number of EM iterations."),
        ParamSpec("S", "random_state", int, "Random number seed."),
        ParamSpec("M", "reg_covar", float, "Minimum variance added to each diagonal covariance."),
    )

    def __init__(self, config: Optional[ClusteringConfig] = None):
        super().__init__(config)
        self._model: Optional[GaussianMixture] = None

        logger.info(
            f"Initialized EM: n_clusters={self.params['n_clusters']}, "
            f"max_iter={self.params['max_iter']}, random_state={self.params['random_state']}"
        )

    def _build_model(self, n_components: int) -> GaussianMixture:
        return GaussianMixture(
            n_components=n_components,
            covariance_type="diag",
            max_iter=self.params["max_iter"],
            random_state=self.params["random_state"],
            reg_covar=self.params["reg_covar"],
        )

    def _select_n_components(self, matrix: np.ndarray) -> int:
        """Pick the component count with the lowest BIC."""
        max_k = max(1, min(self.params["max_clusters"], len(matrix)))

        best_k = 1
        best_bic = np.inf
        for k in range(1, max_k + 1):
            bic = self._build_model(k).fit(matrix).bic(matrix)
            logger.debug(f"EM k={k}, bic={bic:.4f}")
            if bic < best_bic:
                best_bic = bic
                best_k = k

        logger.info(f"Selected {best_k} clusters by BIC (tried k=1 to {max_k})")
        return best_k

    def _fit_matrix(self, matrix: np.ndarray, weights: np.ndarray) -> ClusteringResult:
        if len(weights) and not np.all(weights == weights[0]):
            logger.warning("EM ignores record weights; fitting as if all weights were equal")

        requested = self.params["n_clusters"]
        if requested is None or requested <= 0:
            n_components = self._select_n_components(matrix)
        else:
            n_components = min(requested, len(matrix))
            if n_components < requested:
                logger.warning(
                    f"Reducing n_clusters from {requested} to {n_components} "
                    f"due to small dataset size"
                )

        self._model = self._build_model(n_components).fit(matrix)

        probabilities = self._model.predict_proba(matrix)
        labels = np.argmax(probabilities, axis=1)

        quality_metrics = self._calculate_quality_metrics(matrix, labels)
        quality_metrics["log_likelihood"] = float(self._model.score(matrix))
        quality_metrics["iterations"] = int(self._model.n_iter_)

        return ClusteringResult(
            cluster_labels=labels,
            n_clusters=n_components,
            quality_metrics=quality_metrics,
            centroids=self._model.means_,
            cluster_probabilities=probabilities,
        )

    def _distribution(self, matrix: np.ndarray) -> np.ndarray:
        return self._model.predict_proba(matrix)
