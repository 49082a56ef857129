"""
Batch/Streaming Filter Protocol.

Defines the contract shared by all filters and the state machine component
that filters compose to implement it.

States:
- UNCONFIGURED: no input schema yet; input and batch completion are errors
- AWAITING_BATCH: input schema set, output schema not yet known; records are
  buffered until the batch completes
- STREAMING: output schema established; records convert immediately

The transition to STREAMING happens once per input schema. After every batch
completion a new-batch flag is raised; the next input clears any output still
queued from the previous batch.
"""

from collections import deque
from enum import Enum
from typing import Deque, List, Optional, Protocol, runtime_checkable

from membership_filter.schemas.data_models import Record, Schema
from membership_filter.utils.error_handling import InvalidStateError


class FilterState(str, Enum):
    """Filter lifecycle states."""

    UNCONFIGURED = "unconfigured"
    AWAITING_BATCH = "awaiting_batch"
    STREAMING = "streaming"


@runtime_checkable
class StreamFilter(Protocol):
    """Batch/streaming transform capability."""

    def set_input_schema(self, schema: Schema) -> bool:
        ...

    def input(self, record: Record) -> bool:
        ...

    def batch_complete(self) -> bool:
        ...

    def output(self) -> Optional[Record]:
        ...

    def output_peek(self) -> Optional[Record]:
        ...

    def num_pending_output(self) -> int:
        ...

    def output_schema(self) -> Schema:
        ...


class FilterStateMachine:
    """
    Schemas, input buffer and output queue of one filter.

    Owned by exactly one filter; not shared.
    """

    def __init__(self, owner: str):
        self.owner = owner
        self.state = FilterState.UNCONFIGURED
        self._input_schema: Optional[Schema] = None
        self._output_schema: Optional[Schema] = None
        self._buffer: List[Record] = []
        self._queue: Deque[Record] = deque()
        self._new_batch = False

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    def configure(self, schema: Schema) -> None:
        """Accept a new input schema and discard everything derived from the old one."""
        self._input_schema = schema.copy()
        self._output_schema = None
        self._buffer = []
        self._queue.clear()
        self._new_batch = True
        self.state = FilterState.AWAITING_BATCH

    def establish_output_schema(self, schema: Schema) -> None:
        if self.state == FilterState.UNCONFIGURED:
            raise InvalidStateError(f"{self.owner}: no input instance format defined")
        self._output_schema = schema
        self.state = FilterState.STREAMING

    @property
    def input_schema(self) -> Optional[Schema]:
        return self._input_schema

    @property
    def is_streaming(self) -> bool:
        return self.state == FilterState.STREAMING

    def require_input_schema(self) -> Schema:
        """
        Raises:
            InvalidStateError: If no input schema has been set
        """
        if self._input_schema is None:
            raise InvalidStateError(
                f"{self.owner}: no input instance format defined",
                details={"state": self.state.value},
            )
        return self._input_schema

    def require_output_schema(self) -> Schema:
        """
        Raises:
            InvalidStateError: If no output schema has been established
        """
        if self._output_schema is None:
            raise InvalidStateError(
                f"{self.owner}: no output instance format defined",
                details={"state": self.state.value},
            )
        return self._output_schema

    # -------------------------------------------------------------------------
    # Input side
    # -------------------------------------------------------------------------

    def begin_input(self) -> None:
        """Check state before accepting a record; clears the queue at a batch boundary."""
        self.require_input_schema()
        if self._new_batch:
            self._queue.clear()
            self._new_batch = False

    def buffer(self, record: Record) -> None:
        self._buffer.append(record)

    def buffered(self) -> List[Record]:
        return list(self._buffer)

    def flush_input(self) -> None:
        self._buffer = []

    def finish_batch(self) -> bool:
        """Flush the input buffer, mark the batch boundary, report pending output."""
        self.flush_input()
        self._new_batch = True
        return len(self._queue) != 0

    # -------------------------------------------------------------------------
    # Output side
    # -------------------------------------------------------------------------

    def push(self, record: Record) -> None:
        self._queue.append(record)

    def pop(self) -> Optional[Record]:
        self.require_output_schema()
        if not self._queue:
            return None
        return self._queue.popleft()

    def peek(self) -> Optional[Record]:
        self.require_output_schema()
        if not self._queue:
            return None
        return self._queue[0]

    def pending(self) -> int:
        return len(self._queue)
