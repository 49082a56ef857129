"""
Unit tests for the filter state machine.

Tests FilterStateMachine including:
- State transitions
- Batch boundary handling
- Output queue access rules
"""

import pytest

from membership_filter.filters.base_filter import FilterState, FilterStateMachine
from membership_filter.schemas.data_models import Record
from membership_filter.utils.error_handling import InvalidStateError


@pytest.mark.unit
class TestFilterStateMachine:
    """Test suite for FilterStateMachine."""

    def test_initial_state(self):
        """Test a fresh machine has no schemas."""
        machine = FilterStateMachine("test")

        assert machine.state == FilterState.UNCONFIGURED
        assert machine.input_schema is None
        with pytest.raises(InvalidStateError, match="no input instance format"):
            machine.begin_input()

    def test_configure_copies_schema(self, numeric_schema):
        """Test configuring keeps a private copy of the schema."""
        machine = FilterStateMachine("test")
        machine.configure(numeric_schema)

        assert machine.state == FilterState.AWAITING_BATCH
        assert machine.input_schema == numeric_schema
        assert machine.input_schema is not numeric_schema

    def test_establish_output_schema(self, numeric_schema):
        """Test publishing the output schema starts streaming."""
        machine = FilterStateMachine("test")
        machine.configure(numeric_schema)
        machine.establish_output_schema(numeric_schema)

        assert machine.is_streaming
        assert machine.require_output_schema() is numeric_schema

    def test_establish_requires_input_schema(self, numeric_schema):
        """Test the output schema cannot precede the input schema."""
        with pytest.raises(InvalidStateError):
            FilterStateMachine("test").establish_output_schema(numeric_schema)

    def test_pop_requires_output_schema(self, numeric_schema):
        """Test the queue is closed until the output schema exists."""
        machine = FilterStateMachine("test")
        machine.configure(numeric_schema)

        with pytest.raises(InvalidStateError, match="no output instance format"):
            machine.pop()
        with pytest.raises(InvalidStateError):
            machine.peek()

    def test_batch_boundary_clears_queue(self, numeric_schema):
        """Test the first input after a batch drops queued output."""
        machine = FilterStateMachine("test")
        machine.configure(numeric_schema)
        machine.establish_output_schema(numeric_schema)
        machine.push(Record([1.0, 2.0, 3.0]))

        assert machine.finish_batch() is True
        assert machine.pending() == 1

        machine.begin_input()
        assert machine.pending() == 0

    def test_finish_batch_flushes_buffer(self, numeric_schema):
        """Test completing a batch empties the input buffer."""
        machine = FilterStateMachine("test")
        machine.configure(numeric_schema)
        machine.buffer(Record([1.0, 2.0, 3.0]))

        assert machine.buffered() == [Record([1.0, 2.0, 3.0])]
        assert machine.finish_batch() is False
        assert machine.buffered() == []

    def test_reconfigure_resets(self, numeric_schema):
        """Test a new input schema drops output schema and queue."""
        machine = FilterStateMachine("test")
        machine.configure(numeric_schema)
        machine.establish_output_schema(numeric_schema)
        machine.push(Record([1.0, 2.0, 3.0]))

        machine.configure(numeric_schema)
        assert machine.state == FilterState.AWAITING_BATCH
        with pytest.raises(InvalidStateError):
            machine.require_output_schema()
        assert machine.pending() == 0

    def test_pop_order(self, numeric_schema):
        """Test the queue is first in, first out."""
        machine = FilterStateMachine("test")
        machine.configure(numeric_schema)
        machine.establish_output_schema(numeric_schema)
        machine.push(Record([1.0, 0.0, 0.0]))
        machine.push(Record([2.0, 0.0, 0.0]))

        assert machine.peek().value(0) == 1.0
        assert machine.pop().value(0) == 1.0
        assert machine.pop().value(0) == 2.0
        assert machine.pop() is None
