"""
Filters.

Exports:
- ClusterMembership: Cluster membership probability filter
- RemoveAttributes: Attribute removal filter
- FilterState / FilterStateMachine / StreamFilter: Batch/streaming protocol
- use_filter / batch_filter / filter_incrementally: Filter runners
"""

from membership_filter.filters.base_filter import FilterState, FilterStateMachine, StreamFilter
from membership_filter.filters.cluster_membership import ClusterMembership
from membership_filter.filters.remove import RemoveAttributes
from membership_filter.filters.runner import batch_filter, filter_incrementally, use_filter

__all__ = [
    "ClusterMembership",
    "RemoveAttributes",
    "FilterState",
    "FilterStateMachine",
    "StreamFilter",
    "use_filter",
    "batch_filter",
    "filter_incrementally",
]
