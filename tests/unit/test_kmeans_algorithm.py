"""
Unit tests for K-Means clustering algorithm.

Tests the KMeansAlgorithm class including:
- Basic clustering functionality
- MiniBatch K-Means for large datasets
- Adaptive cluster count
- Hard membership distributions
- Quality metrics
"""

import numpy as np
import pytest

from membership_filter.core.base_clustering import ClusteringConfig
from membership_filter.core.kmeans_algorithm import KMeansAlgorithm
from membership_filter.schemas.data_models import Attribute, Dataset, Record, Schema
from membership_filter.utils.error_handling import ConfigurationError


@pytest.mark.unit
class TestKMeansAlgorithm:
    """Test suite for K-Means clustering algorithm."""

    def test_init(self):
        """Test K-Means algorithm initialization."""
        config = ClusteringConfig(
            algorithm_name="kmeans",
            params={"n_clusters": 10}
        )

        clusterer = KMeansAlgorithm(config)
        assert clusterer.config == config
        assert clusterer.params["n_clusters"] == 10
        assert clusterer.params["n_init"] == 10

    def test_cluster_basic(self, clustered_dataset):
        """Test basic clustering on vectors with clear structure."""
        clusterer = KMeansAlgorithm(ClusteringConfig(algorithm_name="kmeans", params={"n_clusters": 3}))
        result = clusterer.fit(clustered_dataset)

        # Should find exactly 3 clusters
        assert result.n_clusters == 3
        assert len(result.labels) == len(clustered_dataset)
        # K-Means assigns all points to clusters (no outliers)
        assert result.outlier_count == 0
        assert result.centroids.shape == (3, 4)

    def test_hard_membership(self, clustered_dataset):
        """Test the nearest centroid gets probability 1."""
        clusterer = KMeansAlgorithm(ClusteringConfig(algorithm_name="kmeans", params={"n_clusters": 3}))
        result = clusterer.fit(clustered_dataset)

        distribution = clusterer.membership_probabilities(clustered_dataset[0])
        assert sorted(distribution.tolist()) == [0.0, 0.0, 1.0]
        assert int(np.argmax(distribution)) == result.labels[0]

    def test_quality_metrics(self, clustered_dataset):
        """Test that quality metrics are calculated."""
        clusterer = KMeansAlgorithm(ClusteringConfig(algorithm_name="kmeans", params={"n_clusters": 3}))
        result = clusterer.fit(clustered_dataset)

        assert "silhouette_score" in result.quality_metrics
        assert "davies_bouldin_index" in result.quality_metrics
        assert "inertia" in result.quality_metrics
        assert result.quality_metrics["silhouette_score"] > 0.8

    def test_adaptive_cluster_count(self):
        """Test that cluster count adapts to small datasets."""
        schema = Schema(attributes=[Attribute.numeric("x"), Attribute.numeric("y")])
        dataset = Dataset(schema, [Record([0.0, 0.0]), Record([1.0, 1.0]), Record([9.0, 9.0])])
        clusterer = KMeansAlgorithm(ClusteringConfig(algorithm_name="kmeans", params={"n_clusters": 10}))

        result = clusterer.fit(dataset)
        assert result.n_clusters == 3
        assert clusterer.cluster_count() == 3

    def test_minibatch(self, clustered_dataset):
        """Test MiniBatch K-Means is used for large inputs."""
        clusterer = KMeansAlgorithm(ClusteringConfig(
            algorithm_name="kmeans",
            params={"n_clusters": 3, "use_minibatch": True, "batch_size": 10},
        ))
        result = clusterer.fit(clustered_dataset)

        assert result.n_clusters == 3
        assert type(clusterer._model).__name__ == "MiniBatchKMeans"

    def test_weights_used(self):
        """Test heavier records pull the centroid."""
        schema = Schema(attributes=[Attribute.numeric("x")])
        dataset = Dataset(schema, [Record([0.0], 1.0), Record([10.0], 9.0)])
        clusterer = KMeansAlgorithm(ClusteringConfig(algorithm_name="kmeans", params={"n_clusters": 1}))

        result = clusterer.fit(dataset)
        assert result.centroids[0][0] == pytest.approx(9.0)

    def test_options(self):
        """Test flat options including the boolean minibatch switch."""
        clusterer = KMeansAlgorithm()
        clusterer.set_options(["-N", "5", "-B", "true"])

        assert clusterer.params["n_clusters"] == 5
        assert clusterer.params["use_minibatch"] is True
        assert clusterer.get_options() == [
            "-N", "5", "-I", "300", "-S", "10", "-A", "10", "-B", "True",
        ]

    def test_invalid_boolean(self):
        """Test unparsable booleans are rejected."""
        with pytest.raises(ConfigurationError):
            KMeansAlgorithm().set_options(["-B", "perhaps"])
