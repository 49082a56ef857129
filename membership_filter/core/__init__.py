"""
Core clustering module.

Exports:
- ClusteringEngine: Registry and factory for clusterers
- BaseClusteringAlgorithm: Base class for algorithms
- Clusterer: Protocol the membership filter relies on
- ClusteringResult: Result container
- ClusteringConfig: Configuration container
- Individual algorithm implementations
"""

from membership_filter.core.base_clustering import (
    BaseClusteringAlgorithm,
    Clusterer,
    ClusteringResult,
    ClusteringConfig,
)
from membership_filter.core.clustering_engine import ClusteringEngine
from membership_filter.core.em_algorithm import EMAlgorithm
from membership_filter.core.hdbscan_algorithm import HDBSCANAlgorithm
from membership_filter.core.kmeans_algorithm import KMeansAlgorithm

__all__ = [
    "ClusteringEngine",
    "BaseClusteringAlgorithm",
    "Clusterer",
    "ClusteringResult",
    "ClusteringConfig",
    "EMAlgorithm",
    "HDBSCANAlgorithm",
    "KMeansAlgorithm",
]
