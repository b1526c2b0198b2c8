from .counter import count_keys
from .emitter import iter_records, sorted_keys, stream_records
from .grouper import GroupedPayloads, group_payloads
from .types import MIN_POSTS_PER_AUTHOR, OutputRecord, PayloadView, Row

__all__ = [
    "MIN_POSTS_PER_AUTHOR",
    "GroupedPayloads",
    "OutputRecord",
    "PayloadView",
    "Row",
    "count_keys",
    "group_payloads",
    "iter_records",
    "sorted_keys",
    "stream_records",
]
