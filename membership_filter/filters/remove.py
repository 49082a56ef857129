"""
Attribute removal filter.

Drops the attributes named by a range (or keeps only them when the selection
is inverted). The output schema depends on the input schema alone, so it is
available as soon as the input schema is set and records convert immediately.
"""

from typing import List, Optional

from membership_filter.filters.base_filter import FilterState, FilterStateMachine
from membership_filter.schemas.attribute_range import AttributeRange
from membership_filter.schemas.data_models import Record, Schema
from membership_filter.utils.options import (
    Option,
    check_for_remaining_options,
    get_flag,
    get_option,
)


class RemoveAttributes:
    """
    Removes a range of attributes from each record.

    Options:
        -R <att1,att2-att4,...>  attributes to act on (1-based, first/last allowed)
        -V                       invert: keep only the listed attributes
    """

    def __init__(self, attribute_indices: str = "", invert_selection: bool = False):
        self._protocol = FilterStateMachine(self.__class__.__name__)
        self._range = AttributeRange(attribute_indices, invert=invert_selection)
        self._selected: List[int] = []

    @staticmethod
    def global_info() -> str:
        return (
            "A filter that removes a range of attributes from the dataset. "
            "With the selection inverted, only the given attributes are kept."
        )

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    @property
    def attribute_indices(self) -> str:
        return self._range.get_ranges()

    @attribute_indices.setter
    def attribute_indices(self, ranges: str) -> None:
        self._range.set_ranges(ranges)

    @property
    def invert_selection(self) -> bool:
        return self._range.invert

    @invert_selection.setter
    def invert_selection(self, invert: bool) -> None:
        self._range.invert = invert

    def list_options(self) -> List[Option]:
        return [
            Option(
                "\tSpecify list of columns to delete. First and last are valid\n"
                "\tindexes. (default none)",
                "R", 1, "-R <index1,index2-index4,...>",
            ),
            Option(
                "\tInvert matching sense (i.e. only keep specified columns)",
                "V", 0, "-V",
            ),
        ]

    def set_options(self, options: List[str]) -> None:
        self.attribute_indices = get_option("R", options)
        self.invert_selection = get_flag("V", options)
        check_for_remaining_options(options)

    def get_options(self) -> List[str]:
        options = []
        if self.attribute_indices:
            options.extend(["-R", self.attribute_indices])
        if self.invert_selection:
            options.append("-V")
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
        self._protocol.configure(schema)

        if schema.num_attributes == 0:
            self._selected = []
        else:
            self._range.set_upper(schema.num_attributes - 1)
            removed = set(self._range.selection())
            self._selected = [i for i in range(schema.num_attributes) if i not in removed]

        class_index = -1
        if schema.has_class and schema.class_index in self._selected:
            class_index = self._selected.index(schema.class_index)

        output = Schema(
            relation_name=schema.relation_name,
            attributes=[schema.attribute(i).copy() for i in self._selected],
            class_index=class_index,
        )
        self._protocol.establish_output_schema(output)
        return True

    def input(self, record: Record) -> bool:
        self._protocol.begin_input()
        self._protocol.push(self._convert_record(record))
        return True

    def batch_complete(self) -> bool:
        self._protocol.require_input_schema()
        return self._protocol.finish_batch()

    def output(self) -> Optional[Record]:
        return self._protocol.pop()

    def output_peek(self) -> Optional[Record]:
        return self._protocol.peek()

    def num_pending_output(self) -> int:
        return self._protocol.pending()

    def output_schema(self) -> Schema:
        return self._protocol.require_output_schema()

    def _convert_record(self, record: Record) -> Record:
        return Record(record.values[self._selected], record.weight)
