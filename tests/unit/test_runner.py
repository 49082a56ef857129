"""
Unit tests for filter runners.

Tests use_filter, batch_filter and filter_incrementally with both the
membership filter and the removal filter.
"""

from unittest.mock import MagicMock

import numpy as np
import pytest

from membership_filter.filters.cluster_membership import ClusterMembership
from membership_filter.filters.remove import RemoveAttributes
from membership_filter.filters.runner import batch_filter, filter_incrementally, use_filter
from membership_filter.schemas.data_models import Dataset
from membership_filter.utils.advanced_logging import StreamProgress
from membership_filter.utils.error_handling import DataFormatError


@pytest.mark.unit
class TestRunners:
    """Test suite for filter runners."""

    def test_use_filter(self, stub_clusterer, labelled_dataset):
        """Test a whole dataset goes through as one batch."""
        result = use_filter(labelled_dataset, ClusterMembership(clusterer=stub_clusterer))

        assert len(result) == 4
        assert result.relation_name == "weather_clusterMembership"
        assert result[3].formatted(result.schema) == [0.3, 0.7, "no"]

    def test_use_filter_counts_buffered_records(self, stub_clusterer, labelled_dataset):
        """Test the first batch is counted as buffered until it completes."""
        logger = MagicMock()
        progress = StreamProgress("ClusterMembership", logger)

        use_filter(labelled_dataset, ClusterMembership(clusterer=stub_clusterer), progress)

        event, = logger.info.call_args[0]
        fields = logger.info.call_args[1]
        assert event == "batch_completed"
        assert fields["buffered"] == 4
        assert fields["converted"] == 0
        assert fields["pending_output"] == 4
        assert progress.batch == 1

    def test_batch_filter_same_schema(self, stub_clusterer, labelled_dataset):
        """Test the second dataset is converted without refitting."""
        second = Dataset(labelled_dataset.schema, list(labelled_dataset)[:2])
        first_out, second_out = batch_filter(
            labelled_dataset, second, ClusterMembership(clusterer=stub_clusterer)
        )

        assert stub_clusterer.fit_calls == 1
        assert len(first_out) == 4
        assert len(second_out) == 2
        assert second_out.schema == first_out.schema

    def test_batch_filter_incompatible(self, stub_clusterer, numeric_dataset, labelled_dataset):
        """Test datasets with different attributes are rejected."""
        with pytest.raises(DataFormatError, match="not compatible"):
            batch_filter(numeric_dataset, labelled_dataset, ClusterMembership(clusterer=stub_clusterer))

    def test_incremental_membership(self, stub_clusterer, numeric_dataset):
        """Test buffered output is released after the input ends."""
        records = list(filter_incrementally(
            numeric_dataset.schema, numeric_dataset, ClusterMembership(clusterer=stub_clusterer)
        ))

        assert len(records) == 4
        assert [r.weight for r in records] == [1.0, 2.0, 0.5, 3.0]

    def test_incremental_streaming(self, numeric_dataset):
        """Test streaming filters release each record immediately."""
        filter_ = RemoveAttributes("1")
        stream = filter_incrementally(numeric_dataset.schema, numeric_dataset, filter_)

        first = next(stream)
        np.testing.assert_array_equal(first.values, [2.0, 3.0])
        assert len(list(stream)) == 3
