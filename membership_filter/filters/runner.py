"""
Filter runners.

Drive a filter over whole datasets or record streams:
- use_filter: one batch in, converted dataset out
- batch_filter: fit on a first dataset, convert a second with the same output schema
- filter_incrementally: yield converted records as soon as the filter releases them
"""

from typing import Iterable, Iterator, Optional, Tuple

from membership_filter.filters.base_filter import StreamFilter
from membership_filter.schemas.data_models import Dataset, Record, Schema
from membership_filter.utils.advanced_logging import StreamProgress, get_logger
from membership_filter.utils.error_handling import DataFormatError

logger = get_logger(__name__)


def _progress(filter_: StreamFilter) -> StreamProgress:
    return StreamProgress(type(filter_).__name__, logger)


def _drain(filter_: StreamFilter, dataset: Dataset) -> None:
    record = filter_.output()
    while record is not None:
        dataset.add(record)
        record = filter_.output()


def _run_batch(records: Iterable[Record], filter_: StreamFilter, progress: StreamProgress) -> None:
    for record in records:
        progress.record_submitted(filter_.input(record))
    filter_.batch_complete()
    progress.batch_finished(filter_.num_pending_output())


def use_filter(
    dataset: Dataset,
    filter_: StreamFilter,
    progress: Optional[StreamProgress] = None,
) -> Dataset:
    """
    Run one dataset through a filter as a single batch.

    Args:
        dataset: Input data
        filter_: Filter to apply (its input schema is set from the dataset)
        progress: Progress counter to continue, e.g. across several batches

    Returns:
        Converted dataset with the filter's output schema
    """
    filter_.set_input_schema(dataset.schema)
    _run_batch(dataset, filter_, progress or _progress(filter_))

    result = Dataset(filter_.output_schema())
    _drain(filter_, result)
    return result


def batch_filter(
    first: Dataset,
    second: Dataset,
    filter_: StreamFilter,
) -> Tuple[Dataset, Dataset]:
    """
    Configure a filter on one dataset and apply it unchanged to another.

    Args:
        first: Dataset that determines the output schema (e.g. training data)
        second: Dataset converted with the same filter state (e.g. test data)
        filter_: Filter to apply

    Returns:
        (converted first, converted second)

    Raises:
        DataFormatError: If the two datasets have different attributes
    """
    if first.schema.attributes != second.schema.attributes:
        raise DataFormatError(
            f"Datasets '{first.relation_name}' and '{second.relation_name}' "
            f"are not compatible",
            details={
                "first": [a.name for a in first.schema.attributes],
                "second": [a.name for a in second.schema.attributes],
            },
        )

    progress = _progress(filter_)
    first_out = use_filter(first, filter_, progress)

    _run_batch(second, filter_, progress)
    second_out = Dataset(filter_.output_schema())
    _drain(filter_, second_out)

    logger.info(
        "batch_filter_completed",
        first_records=len(first_out),
        second_records=len(second_out),
    )
    return first_out, second_out


def filter_incrementally(
    schema: Schema,
    records: Iterable[Record],
    filter_: StreamFilter,
) -> Iterator[Record]:
    """
    Stream records through a filter, yielding output as it becomes available.

    Filters that need a whole batch first release everything after the input
    is exhausted; streaming filters release each record immediately.
    """
    filter_.set_input_schema(schema)

    progress = _progress(filter_)
    for record in records:
        converted = filter_.input(record)
        progress.record_submitted(converted)
        if converted:
            released = filter_.output()
            while released is not None:
                yield released
                released = filter_.output()

    filter_.batch_complete()
    progress.batch_finished(filter_.num_pending_output())
    released = filter_.output()
    while released is not None:
        yield released
        released = filter_.output()
