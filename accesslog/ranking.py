"""
accesslog/ranking.py
--------------------
Frequency ranking over parsed ``FieldRecord`` sequences.

Used by the "top visited paths" and "top active IPs" queries (``rank``) and
by the "unique IPs" query (``distinct_values``).

Ranking is dense: values that share a hit count share a rank, and the next
lower count gets the next rank number.  ``limit`` therefore counts rank tiers,
not items: ``limit=3`` over counts 5, 5, 4, 2, 1 yields three groups holding
four values.

Public API
----------
    rank(records, filter_key, limit)      -> list[RankedGroup]
    distinct_values(records, filter_key)  -> list[str | None]
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from itertools import groupby
from typing import Sequence

from accesslog.parser import FieldRecord

logger = logging.getLogger(__name__)


class EmptyInputError(ValueError):
    """Raised when a query receives no parsed records at all."""

    def __init__(self, message: str = "No log entries found") -> None:
        super().__init__(message)


# ─────────────────────────────────────────────────────────────────────────────
# Result dataclass
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class RankedGroup:
    """
    All values sharing one hit count.

    Attributes
    ----------
    rank      : int                    – 1-based dense rank
    hit_count : int                    – occurrences of each value in the tier
    items     : tuple[str | None, ...] – values in the tier, None first then
                                         ascending
    """

    rank:      int
    hit_count: int
    items:     tuple[str | None, ...]

    def as_dict(self) -> dict:
        return {
            "rank":      self.rank,
            "hit_count": self.hit_count,
            "items":     list(self.items),
        }


# ─────────────────────────────────────────────────────────────────────────────
# Public API
# ─────────────────────────────────────────────────────────────────────────────

def rank(
    records: Sequence[FieldRecord],
    filter_key: str,
    limit: int,
) -> list[RankedGroup]:
    """
    Rank the values of *filter_key* by how often they occur.

    Raises
    ------
    EmptyInputError – *records* is empty (nothing was parsed at all).
    ValueError      – *limit* is below 1.

    Returns an empty list when records exist but none has *filter_key*.
    """
    if not records:
        raise EmptyInputError()
    if limit < 1:
        raise ValueError(f"limit must be a positive integer, got {limit!r}")

    counter: Counter[str | None] = Counter(
        record.value for record in records if record.key == filter_key
    )
    if not counter:
        logger.info("rank: no records with key %r among %d records", filter_key, len(records))
        return []

    ordered = sorted(counter.items(), key=lambda item: (-item[1], _value_sort_key(item[0])))

    groups: list[RankedGroup] = []
    for position, (hit_count, tier) in enumerate(groupby(ordered, key=lambda item: item[1]), start=1):
        if position > limit:
            break
        groups.append(RankedGroup(
            rank      = position,
            hit_count = hit_count,
            items     = tuple(value for value, _ in tier),
        ))

    logger.debug(
        "rank: key=%r | %d distinct values | %d tier(s) returned (limit=%d)",
        filter_key, len(counter), len(groups), limit,
    )
    return groups


def distinct_values(
    records: Sequence[FieldRecord],
    filter_key: str,
) -> list[str | None]:
    """
    Values of *filter_key* without duplicates, in order of first appearance.

    Raises ``EmptyInputError`` when *records* is empty.
    """
    if not records:
        raise EmptyInputError()

    # dict keeps insertion order and treats None / "" as separate keys
    seen = dict.fromkeys(record.value for record in records if record.key == filter_key)
    return list(seen)


# ─────────────────────────────────────────────────────────────────────────────
# Internal helpers
# ─────────────────────────────────────────────────────────────────────────────

def _value_sort_key(value: str | None) -> tuple[bool, str]:
    """Order None before every string, strings ordinally."""
    return (value is not None, value or "")
