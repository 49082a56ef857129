"""
Pytest configuration and shared fixtures for Cluster Membership Filter tests.

This module provides:
- Shared test fixtures
- Schema and dataset generators
- Stub clusterers with fixed membership distributions
- Settings cache cleanup
"""

import os
import numpy as np
import pytest
from typing import List

from membership_filter.config.settings_loader import ConfigManager
from membership_filter.schemas.data_models import Attribute, Dataset, Record, Schema

# Set test environment variables
os.environ["TESTING"] = "true"
os.environ["LOG_LEVEL"] = "DEBUG"


# =============================================================================
# Stub Clusterers
# =============================================================================

class StubClusterer:
    """Clusterer returning the same distribution for every record."""

    def __init__(self, distribution=(0.3, 0.7)):
        self.distribution = np.asarray(distribution, dtype=np.float64)
        self.fit_calls = 0
        self.training: Dataset = None
        self.queried: List[Record] = []

    def fit(self, dataset: Dataset) -> None:
        self.fit_calls += 1
        self.training = dataset

    def cluster_count(self) -> int:
        return len(self.distribution)

    def membership_probabilities(self, record: Record) -> np.ndarray:
        self.queried.append(record)
        return self.distribution.copy()


class FailingClusterer(StubClusterer):
    """Clusterer whose fit always fails."""

    def fit(self, dataset: Dataset) -> None:
        self.fit_calls += 1
        raise RuntimeError("fit failed")


@pytest.fixture
def stub_clusterer():
    """Clusterer with two clusters and distribution [0.3, 0.7]."""
    return StubClusterer()


@pytest.fixture
def failing_clusterer():
    """Clusterer that raises on fit."""
    return FailingClusterer()


# =============================================================================
# Schema and Dataset Fixtures
# =============================================================================

@pytest.fixture
def numeric_schema():
    """Three numeric attributes, no label."""
    return Schema(
        relation_name="points",
        attributes=[Attribute.numeric("a"), Attribute.numeric("b"), Attribute.numeric("c")],
    )


@pytest.fixture
def labelled_schema():
    """Three numeric attributes plus a nominal label in last position."""
    return Schema(
        relation_name="weather",
        attributes=[
            Attribute.numeric("temperature"),
            Attribute.numeric("humidity"),
            Attribute.numeric("wind"),
            Attribute.nominal("play", ["yes", "no"]),
        ],
        class_index=3,
    )


@pytest.fixture
def numeric_dataset(numeric_schema):
    """Four weighted records without a label."""
    return Dataset.from_rows(
        numeric_schema,
        [
            [1.0, 2.0, 3.0],
            [4.0, 5.0, 6.0],
            [7.0, 8.0, 9.0],
            [10.0, 11.0, 12.0],
        ],
        weights=[1.0, 2.0, 0.5, 3.0],
    )


@pytest.fixture
def labelled_dataset(labelled_schema):
    """Four records with a nominal label."""
    return Dataset.from_rows(
        labelled_schema,
        [
            [21.0, 60.0, 3.0, "yes"],
            [25.0, 80.0, 9.0, "no"],
            [18.0, 55.0, 1.0, "yes"],
            [30.0, 90.0, 12.0, "no"],
        ],
    )


@pytest.fixture
def clustered_vectors():
    """Generate vectors with three well separated clusters (150 x 4)."""
    np.random.seed(42)

    centers = np.array([
        [0.0, 0.0, 0.0, 0.0],
        [10.0, 10.0, 10.0, 10.0],
        [-10.0, 10.0, -10.0, 10.0],
    ])

    vectors = []
    labels = []
    for cluster_id, center in enumerate(centers):
        vectors.append(center + np.random.randn(50, 4) * 0.5)
        labels.extend([cluster_id] * 50)

    return np.vstack(vectors), np.array(labels)


@pytest.fixture
def clustered_dataset(clustered_vectors):
    """The clustered vectors as a dataset without a label."""
    vectors, _ = clustered_vectors
    schema = Schema(
        relation_name="blobs",
        attributes=[Attribute.numeric(f"x{i}") for i in range(vectors.shape[1])],
    )
    return Dataset(schema, [Record(row) for row in vectors])


@pytest.fixture
def clustered_labelled_dataset(clustered_vectors):
    """The clustered vectors with their true cluster as a nominal label."""
    vectors, labels = clustered_vectors
    schema = Schema(
        relation_name="blobs",
        attributes=[Attribute.numeric(f"x{i}") for i in range(vectors.shape[1])]
        + [Attribute.nominal("cluster", ["c0", "c1", "c2"])],
        class_index=vectors.shape[1],
    )
    rows = np.column_stack([vectors, labels.astype(np.float64)])
    return Dataset(schema, [Record(row) for row in rows])


# =============================================================================
# Cleanup
# =============================================================================

@pytest.fixture(autouse=True)
def reset_settings():
    """Drop cached settings around each test."""
    ConfigManager.reset()
    yield
    ConfigManager.reset()


# =============================================================================
# Markers
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests for individual components"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests running real clustering algorithms"
    )
