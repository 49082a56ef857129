"""
Base Clustering Algorithm Interface.

Defines the contract every clusterer used by the membership filter fulfils:
fit on a dataset, report the number of clusters, and return a probability
distribution over clusters for a single record.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple, runtime_checkable
import logging

import numpy as np

from membership_filter.schemas.data_models import Dataset, Record
from membership_filter.utils.error_handling import (
    ClustererNotFittedError,
    ConfigurationError,
    InsufficientDataError,
)
from membership_filter.utils.options import Option, check_for_remaining_options, get_option

logger = logging.getLogger(__name__)


@runtime_checkable
class Clusterer(Protocol):
    """What the membership filter needs from a clustering model."""

    def fit(self, dataset: Dataset) -> Any:
        ...

    def cluster_count(self) -> int:
        ...

    def membership_probabilities(self, record: Record) -> np.ndarray:
        ...


@dataclass
class ClusteringConfig:
    """Configuration for clustering algorithms."""

    algorithm_name: str
    params: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ParamSpec:
    """Maps a single-letter option flag to an algorithm parameter."""

    flag: str
    param: str
    parser: Callable[[str], Any]
    description: str


class ClusteringResult:
    """Results from fitting a clusterer on its training data."""

    def __init__(
        self,
        cluster_labels: np.ndarray,
        n_clusters: int,
        quality_metrics: Dict[str, float],
        centroids: Optional[np.ndarray] = None,
        cluster_probabilities: Optional[np.ndarray] = None,
    ):
        self.cluster_labels = cluster_labels
        self.n_clusters = n_clusters
        self.quality_metrics = quality_metrics
        self.centroids = centroids
        self.cluster_probabilities = cluster_probabilities

    @property
    def labels(self) -> np.ndarray:
        return self.cluster_labels

    @property
    def outlier_count(self) -> int:
        return int(np.sum(self.cluster_labels == -1))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "n_clusters": self.n_clusters,
            "outlier_count": self.outlier_count,
            "quality_metrics": self.quality_metrics,
            "total_items": len(self.cluster_labels),
        }


class BaseClusteringAlgorithm(ABC):
    """
    Abstract base class for clustering algorithms.

    Subclasses declare NAME, DEFAULTS and OPTIONS and implement _fit_matrix()
    and _distribution(). Missing values are replaced by the training column
    means before the data reaches the underlying estimator.
    """

    NAME: str = ""
    DEFAULTS: Dict[str, Any] = {}
    OPTIONS: Tuple[ParamSpec, ...] = ()

    def __init__(self, config: Optional[ClusteringConfig] = None):
        """
        Initialize clustering algorithm.

        Args:
            config: Clustering configuration (defaults to the class defaults)
        """
        config = config or ClusteringConfig(algorithm_name=self.NAME)
        self.config = config
        self.name = config.algorithm_name
        self.params: Dict[str, Any] = {**self.DEFAULTS, **config.params}
        self._column_means: Optional[np.ndarray] = None
        self._n_clusters: Optional[int] = None
        self.last_result: Optional[ClusteringResult] = None

    # -------------------------------------------------------------------------
    # Clusterer contract
    # -------------------------------------------------------------------------

    def fit(self, dataset: Dataset) -> ClusteringResult:
        """
        Fit the clusterer on a dataset.

        Args:
            dataset: Training data; every attribute is used as a feature

        Returns:
            ClusteringResult for the training data

        Raises:
            InsufficientDataError: If the dataset has no records or no attributes
        """
        if len(dataset) == 0:
            raise InsufficientDataError(
                f"Cannot fit {self.NAME} on an empty dataset",
                details={"relation": dataset.relation_name},
            )
        if dataset.num_attributes == 0:
            raise InsufficientDataError(
                f"Cannot fit {self.NAME} on a dataset without attributes",
                details={"relation": dataset.relation_name},
            )

        matrix = dataset.to_numpy()
        self._column_means = self._compute_column_means(matrix)
        matrix = self._impute(matrix)

        logger.info(f"Fitting {self.NAME} on {matrix.shape[0]} records x {matrix.shape[1]} attributes")

        result = self._fit_matrix(matrix, dataset.weights())
        self._n_clusters = result.n_clusters
        self.last_result = result

        logger.info(f"{self.NAME} fitted: {result.n_clusters} clusters")
        return result

    def cluster_count(self) -> int:
        self._require_fitted()
        return self._n_clusters

    def membership_probabilities(self, record: Record) -> np.ndarray:
        """
        Probability distribution over clusters for one record.

        Returns:
            Array of length cluster_count()
        """
        self._require_fitted()
        if len(record) != len(self._column_means):
            raise ValueError(
                f"Record has {len(record)} values, {self.NAME} was fitted on "
                f"{len(self._column_means)} attributes"
            )
        vector = self._impute(record.values.reshape(1, -1))
        distribution = np.asarray(self._distribution(vector), dtype=np.float64)
        return distribution.reshape(-1)[: self._n_clusters]

    @property
    def is_fitted(self) -> bool:
        return self._n_clusters is not None

    @abstractmethod
    def _fit_matrix(self, matrix: np.ndarray, weights: np.ndarray) -> ClusteringResult:
        """
        Fit on an imputed (N x D) matrix.

        Args:
            matrix: Training values
            weights: Per-record weights (N,)

        Returns:
            ClusteringResult with labels and metrics
        """
        pass

    @abstractmethod
    def _distribution(self, matrix: np.ndarray) -> np.ndarray:
        """Return an (N x n_clusters) probability matrix for imputed rows."""
        pass

    # -------------------------------------------------------------------------
    # Options
    # -------------------------------------------------------------------------

    def list_options(self) -> List[Option]:
        return [
            Option(
                f"\t{spec.description}\n\t(default {self.DEFAULTS.get(spec.param)})",
                spec.flag,
                1,
                f"-{spec.flag} <{spec.param}>",
            )
            for spec in self.OPTIONS
        ]

    def set_options(self, options: List[str]) -> None:
        """
        Parse single-letter options into parameters.

        Raises:
            ConfigurationError: On unparsable values or unknown options
        """
        for spec in self.OPTIONS:
            value = get_option(spec.flag, options)
            if not value:
                continue
            try:
                self.params[spec.param] = spec.parser(value)
            except ValueError as e:
                raise ConfigurationError(
                    f"Invalid value '{value}' for -{spec.flag} ({spec.param})",
                    details={"algorithm": self.NAME},
                ) from e
        check_for_remaining_options(options)

    def get_options(self) -> List[str]:
        options = []
        for spec in self.OPTIONS:
            value = self.params.get(spec.param)
            if value is not None:
                options.extend([f"-{spec.flag}", str(value)])
        return options

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _require_fitted(self) -> None:
        if self._n_clusters is None:
            raise ClustererNotFittedError(
                f"{self.NAME} clusterer has not been fitted",
                details={"algorithm": self.NAME},
            )

    @staticmethod
    def _compute_column_means(matrix: np.ndarray) -> np.ndarray:
        means = np.zeros(matrix.shape[1])
        for j in range(matrix.shape[1]):
            column = matrix[:, j]
            observed = column[~np.isnan(column)]
            if len(observed) > 0:
                means[j] = observed.mean()
        return means

    def _impute(self, matrix: np.ndarray) -> np.ndarray:
        missing = np.isnan(matrix)
        if not missing.any():
            return matrix
        filled = matrix.copy()
        filled[missing] = np.take(self._column_means, np.nonzero(missing)[1])
        return filled

    def _calculate_quality_metrics(
        self,
        vectors: np.ndarray,
        labels: np.ndarray,
    ) -> Dict[str, float]:
        """
        Calculate clustering quality metrics.

        Args:
            vectors: Training vectors
            labels: Cluster labels (-1 for noise)

        Returns:
            Dictionary of quality metrics
        """
        from sklearn.metrics import silhouette_score, davies_bouldin_score

        metrics = {}

        non_outlier_mask = labels != -1
        n_labelled = int(np.sum(non_outlier_mask))
        n_unique = len(np.unique(labels[non_outlier_mask]))

        # Both scores need 2 <= n_labels <= n_samples - 1
        if 1 < n_unique < n_labelled:
            metrics["silhouette_score"] = float(
                silhouette_score(vectors[non_outlier_mask], labels[non_outlier_mask])
            )
            metrics["davies_bouldin_index"] = float(
                davies_bouldin_score(vectors[non_outlier_mask], labels[non_outlier_mask])
            )

        return metrics
