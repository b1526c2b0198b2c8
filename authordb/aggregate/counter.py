"""First pass: count posts per author."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable

from authordb.aggregate.types import Row

logger = logging.getLogger(__name__)


def count_keys(rows: Iterable[Row]) -> Counter[str]:
    """Count how many rows each key appears in.

    Every valid row is counted, including keys that fall below the retention
    threshold later on. Raises MalformedRowError on the first short row.
    """
    counts: Counter[str] = Counter()
    total = 0
    for row in rows:
        counts[row.validate().key] += 1
        total += 1

    logger.debug(f"Counted {total} rows across {len(counts)} keys")
    return counts
