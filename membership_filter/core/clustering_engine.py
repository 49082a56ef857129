"""
Clustering Engine - resolves and builds clusterers.

Maps clusterer names given on the command line or in settings to
implementations, applies nested options and builds the default clusterer.
"""

import importlib
import logging
from typing import Any, Dict, List, Optional

from membership_filter.config.settings_loader import Settings, get_settings
from membership_filter.core.base_clustering import (
    BaseClusteringAlgorithm,
    Clusterer,
    ClusteringConfig,
)
from membership_filter.core.em_algorithm import EMAlgorithm
from membership_filter.core.hdbscan_algorithm import HDBSCANAlgorithm
from membership_filter.core.kmeans_algorithm import KMeansAlgorithm
from membership_filter.utils.error_handling import ConfigurationError, InvalidAlgorithmError
from membership_filter.utils.options import OptionHandler

logger = logging.getLogger(__name__)


class ClusteringEngine:
    """
    Registry and factory for clustering algorithms.

    Names are matched case-insensitively against the registry; anything else
    is treated as a dotted ``module.ClassName`` path.
    """

    # Registry of available algorithms
    ALGORITHMS = {
        "em": EMAlgorithm,
        "kmeans": KMeansAlgorithm,
        "hdbscan": HDBSCANAlgorithm,
    }

    @classmethod
    def resolve(cls, name: str) -> type:
        """
        Find the class for a clusterer name.

        Raises:
            InvalidAlgorithmError: If the name cannot be resolved to a clusterer
        """
        key = name.strip().lower()
        if key in cls.ALGORITHMS:
            return cls.ALGORITHMS[key]

        module_name, _, class_name = name.strip().rpartition(".")
        if not module_name:
            raise InvalidAlgorithmError(
                f"Unsupported algorithm '{name}'. "
                f"Supported: {list(cls.ALGORITHMS.keys())} or a dotted class path",
                details={"algorithm": name},
            )
        try:
            algorithm_class = getattr(importlib.import_module(module_name), class_name)
        except (ImportError, AttributeError) as e:
            raise InvalidAlgorithmError(
                f"Cannot load clusterer class '{name}': {e}",
                details={"algorithm": name},
            ) from e

        if not isinstance(algorithm_class, type) or not all(
            callable(getattr(algorithm_class, method, None))
            for method in ("fit", "cluster_count", "membership_probabilities")
        ):
            raise InvalidAlgorithmError(
                f"'{name}' is not a clusterer",
                details={"algorithm": name},
            )
        return algorithm_class

    @classmethod
    def create(
        cls,
        name: str,
        options: Optional[List[str]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Clusterer:
        """
        Build a clusterer.

        Args:
            name: Registered name or dotted class path
            options: Flat options for the clusterer (consumed)
            params: Parameters for registered algorithms, applied before options

        Returns:
            Unfitted clusterer

        Raises:
            InvalidAlgorithmError: If the name is unknown
            ConfigurationError: If options are given to a clusterer that takes none
        """
        algorithm_class = cls.resolve(name)

        if issubclass(algorithm_class, BaseClusteringAlgorithm):
            clusterer = algorithm_class(
                ClusteringConfig(algorithm_name=algorithm_class.NAME, params=dict(params or {}))
            )
        else:
            clusterer = algorithm_class()

        if options:
            if not isinstance(clusterer, OptionHandler):
                raise ConfigurationError(
                    f"Clusterer '{name}' does not accept options",
                    details={"options": list(options)},
                )
            clusterer.set_options(options)

        logger.info(f"Created clusterer {cls.name_of(clusterer)}")
        return clusterer

    @classmethod
    def default_clusterer(cls, settings: Optional[Settings] = None) -> Clusterer:
        """Build the clusterer named by the filter settings."""
        settings = settings or get_settings()
        name = settings.filter.default_clusterer
        return cls.create(name, params=settings.clustering.params_for(name))

    @classmethod
    def name_of(cls, clusterer: Any) -> str:
        """Registry name of a clusterer, or its dotted class path."""
        for name, algorithm_class in cls.ALGORITHMS.items():
            if type(clusterer) is algorithm_class:
                return name
        clusterer_class = type(clusterer)
        return f"{clusterer_class.__module__}.{clusterer_class.__qualname__}"
