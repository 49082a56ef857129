"""
Cluster membership filter.

Replaces every record with its cluster membership probabilities, computed by
a clusterer fitted on the first batch. The label column (if any) is ignored
while clustering and copied to the end of each output record.

Output schema: ``pCluster0 .. pCluster{k-1}`` numeric attributes, followed
by a copy of the label attribute when the input has one.
"""

from typing import List, Optional

import numpy as np

from membership_filter.core.base_clustering import Clusterer
from membership_filter.core.clustering_engine import ClusteringEngine
from membership_filter.filters.base_filter import FilterState, FilterStateMachine
from membership_filter.filters.remove import RemoveAttributes
from membership_filter.schemas.attribute_range import AttributeRange
from membership_filter.schemas.data_models import Attribute, Dataset, Record, Schema
from membership_filter.utils.advanced_logging import get_logger, timed_operation
from membership_filter.utils.error_handling import ConfigurationError
from membership_filter.utils.options import (
    Option,
    OptionHandler,
    check_for_remaining_options,
    get_option,
    partition_options,
)

logger = get_logger(__name__)


class ClusterMembership:
    """
    Filter producing cluster membership probabilities.

    Options:
        -W <clusterer> [-- clusterer options]  clusterer to use (required)
        -I <att1,att2-att4,...>                attributes ignored while clustering
    """

    def __init__(
        self,
        clusterer: Optional[Clusterer] = None,
        ignored_attribute_indices: Optional[str] = None,
    ):
        """
        Args:
            clusterer: Clusterer to fit; defaults to the clusterer named in settings
            ignored_attribute_indices: 1-based range of attributes to ignore
        """
        self._protocol = FilterStateMachine(self.__class__.__name__)
        self._clusterer = clusterer if clusterer is not None else ClusteringEngine.default_clusterer()
        self._ignore_range: Optional[AttributeRange] = None
        self._remove_filter: Optional[RemoveAttributes] = None
        self.ignored_attribute_indices = ignored_attribute_indices or ""

    @staticmethod
    def global_info() -> str:
        return (
            "A filter that uses a clusterer to generate cluster membership "
            "probabilities; filtered records are composed of these probabilities "
            "plus the class attribute (if set in the input data). The class attribute "
            "(if set) and any user specified attributes are ignored during the "
            "clustering operation."
        )

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    @property
    def clusterer(self) -> Clusterer:
        return self._clusterer

    @clusterer.setter
    def clusterer(self, clusterer: Clusterer) -> None:
        self._clusterer = clusterer

    @property
    def ignored_attribute_indices(self) -> str:
        if self._ignore_range is None:
            return ""
        return self._ignore_range.get_ranges()

    @ignored_attribute_indices.setter
    def ignored_attribute_indices(self, ranges: Optional[str]) -> None:
        if not ranges:
            self._ignore_range = None
        else:
            self._ignore_range = AttributeRange(ranges)

    def list_options(self) -> List[Option]:
        options = [
            Option(
                "\tFull name of clusterer to use (required).\n"
                "\teg: em, kmeans, hdbscan or package.module.ClassName",
                "W", 1, "-W <clusterer name>",
            ),
            Option(
                "\tThe range of attributes the clusterer should ignore.\n"
                "\t(the class attribute is automatically ignored)",
                "I", 1, "-I <att1,att2-att4,...>",
            ),
        ]
        if isinstance(self._clusterer, OptionHandler):
            options.extend(self._clusterer.list_options())
        return options

    def set_options(self, options: List[str]) -> None:
        """
        Parse ``-W``, ``-I`` and the clusterer options after ``--``.

        Raises:
            ConfigurationError: If -W is missing or options are left over
        """
        clusterer_name = get_option("W", options)
        if not clusterer_name:
            raise ConfigurationError("A clusterer must be specified with the -W option.")
        nested = partition_options(options)
        self.clusterer = ClusteringEngine.create(clusterer_name, options=nested)

        self.ignored_attribute_indices = get_option("I", options)
        check_for_remaining_options(options)

    def get_options(self) -> List[str]:
        options = []
        if self.ignored_attribute_indices:
            options.extend(["-I", self.ignored_attribute_indices])
        options.extend(["-W", ClusteringEngine.name_of(self._clusterer)])
        nested = []
        if isinstance(self._clusterer, OptionHandler):
            nested = self._clusterer.get_options()
        options.append("--")
        options.extend(nested)
        return options

    # -------------------------------------------------------------------------
    # Filter protocol
    # -------------------------------------------------------------------------

    @property
    def state(self) -> FilterState:
        return self._protocol.state

    def input_schema(self) -> Optional[Schema]:
        return self._protocol.input_schema

    def set_input_schema(self, schema: Schema) -> bool:
        """
        Accept the schema of the data about to be streamed.

        Returns:
            False: the output schema needs the clusterer to see a batch first
        """
        self._protocol.configure(schema)
        self._remove_filter = None
        return False

    def input(self, record: Record) -> bool:
        """
        Returns:
            True if the converted record can be collected with output() now

        Raises:
            InvalidStateError: If no input schema has been set
        """
        self._protocol.begin_input()

        if self._protocol.is_streaming:
            self._protocol.push(self._convert_record(record, self._protocol.require_output_schema()))
            return True

        self._protocol.buffer(record)
        return False

    def batch_complete(self) -> bool:
        """
        Fit the clusterer on the first batch and convert the buffered records.

        Returns:
            True if there are records pending output

        Raises:
            InvalidStateError: If no input schema has been set
        """
        schema = self._protocol.require_input_schema()

        if not self._protocol.is_streaming:
            buffered = self._protocol.buffered()
            training = self._training_view(schema, buffered)

            with timed_operation(
                "fit_clusterer",
                logger=logger,
                item_count=len(training),
                clusterer=ClusteringEngine.name_of(self._clusterer),
                attributes=training.num_attributes,
            ):
                self._clusterer.fit(training)

            output_schema = self._build_output_schema(schema)
            converted = [self._convert_record(record, output_schema) for record in buffered]

            self._protocol.establish_output_schema(output_schema)
            for record in converted:
                self._protocol.push(record)

            logger.info(
                "output_schema_established",
                relation=output_schema.relation_name,
                n_clusters=self._clusterer.cluster_count(),
                records=len(converted),
            )

        return self._protocol.finish_batch()

    def output(self) -> Optional[Record]:
        return self._protocol.pop()

    def output_peek(self) -> Optional[Record]:
        return self._protocol.peek()

    def num_pending_output(self) -> int:
        return self._protocol.pending()

    def output_schema(self) -> Schema:
        return self._protocol.require_output_schema()

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _ignored_ranges(self, schema: Schema) -> str:
        """Ignored range plus the 1-based label index."""
        pieces = []
        if self._ignore_range is not None:
            pieces.append(self._ignore_range.get_ranges())
        if schema.has_class:
            pieces.append(AttributeRange.indices_to_ranges([schema.class_index]))
        return ",".join(pieces)

    def _training_view(self, schema: Schema, records: List[Record]) -> Dataset:
        """Buffered records with the ignored attributes removed."""
        if self._ignore_range is None and not schema.has_class:
            return Dataset(schema, records)

        remove = RemoveAttributes(self._ignored_ranges(schema), invert_selection=False)
        remove.set_input_schema(schema)
        for record in records:
            remove.input(record)
        remove.batch_complete()

        training = Dataset(remove.output_schema())
        reduced = remove.output()
        while reduced is not None:
            training.add(reduced)
            reduced = remove.output()

        self._remove_filter = remove
        return training

    def _build_output_schema(self, schema: Schema) -> Schema:
        attributes = [
            Attribute.numeric(f"pCluster{i}")
            for i in range(self._clusterer.cluster_count())
        ]
        class_index = -1
        if schema.has_class:
            attributes.append(schema.class_attribute().copy())
            class_index = len(attributes) - 1

        return Schema(
            relation_name=f"{schema.relation_name}_clusterMembership",
            attributes=attributes,
            class_index=class_index,
        )

    def _convert_record(self, record: Record, output_schema: Schema) -> Record:
        if self._remove_filter is not None:
            self._remove_filter.input(record)
            probabilities = self._clusterer.membership_probabilities(self._remove_filter.output())
        else:
            probabilities = self._clusterer.membership_probabilities(record)
        probabilities = np.asarray(probabilities, dtype=np.float64)

        values = np.zeros(output_schema.num_attributes)
        values[: len(probabilities)] = probabilities

        input_schema = self._protocol.input_schema
        if input_schema.has_class:
            values[-1] = record.class_value(input_schema)

        return Record(values, record.weight)
