# -*- coding: utf-8 -*-
"""Records: summary statistics over a loaded record set (no I/O)."""

from __future__ import annotations

from typing import Dict, Iterable, List

from .models import Record, RecordStatus, RecordSummary, StatusCounts


def counts_by_status(records: Iterable[Record]) -> StatusCounts:
    counts = {status.value: 0 for status in RecordStatus}
    for record in records:
        counts[record.status.value] += 1
    return StatusCounts(**counts)


def allergen_frequency(records: Iterable[Record], *, distinct: bool = False) -> Dict[str, int]:
    """Occurrences of each allergen across records.

    By default every listed occurrence counts, so an allergen repeated inside one
    record counts twice. ``distinct=True`` counts it once per record.
    """
    freq: Dict[str, int] = {}
    for record in records:
        allergens = record.potential_allergens
        if distinct:
            allergens = list(dict.fromkeys(allergens))
        for allergen in allergens:
            freq[allergen] = freq.get(allergen, 0) + 1
    return dict(sorted(freq.items(), key=lambda kv: (-kv[1], kv[0])))


def allergen_share(records: Iterable[Record], *, distinct: bool = False) -> Dict[str, float]:
    """Allergen frequency relative to the number of records."""
    items = list(records)
    if not items:
        return {}
    freq = allergen_frequency(items, distinct=distinct)
    return {name: round(count / len(items), 4) for name, count in freq.items()}


def filter_records(records: Iterable[Record], query: str) -> List[Record]:
    needle = (query or "").strip().lower()
    if not needle:
        return list(records)

    def matches(record: Record) -> bool:
        return (
            needle in record.id.lower()
            or needle in record.owner.lower()
            or needle in record.status.value
            or any(needle in a.lower() for a in record.potential_allergens)
        )

    return [r for r in records if matches(r)]


def summarize(records: Iterable[Record], *, distinct: bool = False) -> RecordSummary:
    items = list(records)
    return RecordSummary(
        total=len(items),
        counts=counts_by_status(items),
        allergen_frequency=allergen_frequency(items, distinct=distinct),
        allergen_share=allergen_share(items, distinct=distinct),
    )
