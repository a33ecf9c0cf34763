# -*- coding: utf-8 -*-

from __future__ import annotations

import unittest

from allergen_tracker.records.aggregator import (
    allergen_frequency,
    allergen_share,
    counts_by_status,
    filter_records,
    summarize,
)
from allergen_tracker.records.models import Record, RecordStatus


def _record(rid: str, status: RecordStatus, allergens=(), owner: str = "0xabc") -> Record:
    return Record(
        id=rid,
        encrypted_food="f",
        encrypted_symptoms="s",
        timestamp=1,
        owner=owner,
        status=status,
        potential_allergens=list(allergens),
    )


RECORDS = [
    _record("r1", RecordStatus.pending),
    _record("r2", RecordStatus.analyzed, ["Dairy", "Gluten"]),
    _record("r3", RecordStatus.flagged, ["Dairy", "Nuts", "Dairy"], owner="0xDEF"),
    _record("r4", RecordStatus.analyzed, ["Gluten"]),
]


class TestAggregator(unittest.TestCase):
    def test_counts_by_status(self) -> None:
        counts = counts_by_status(RECORDS)
        self.assertEqual((counts.pending, counts.analyzed, counts.flagged), (1, 2, 1))

        empty = counts_by_status([])
        self.assertEqual((empty.pending, empty.analyzed, empty.flagged), (0, 0, 0))

    def test_frequency_counts_every_occurrence_by_default(self) -> None:
        self.assertEqual(allergen_frequency(RECORDS), {"Dairy": 3, "Gluten": 2, "Nuts": 1})

    def test_frequency_distinct_per_record(self) -> None:
        self.assertEqual(
            allergen_frequency(RECORDS, distinct=True),
            {"Dairy": 2, "Gluten": 2, "Nuts": 1},
        )

    def test_share_is_relative_to_record_count(self) -> None:
        self.assertEqual(allergen_share(RECORDS, distinct=True), {"Dairy": 0.5, "Gluten": 0.5, "Nuts": 0.25})
        self.assertEqual(allergen_share([]), {})

    def test_filter_matches_owner_status_and_allergen(self) -> None:
        self.assertEqual([r.id for r in filter_records(RECORDS, "")], ["r1", "r2", "r3", "r4"])
        self.assertEqual([r.id for r in filter_records(RECORDS, "0xdef")], ["r3"])
        self.assertEqual([r.id for r in filter_records(RECORDS, "FLAG")], ["r3"])
        self.assertEqual([r.id for r in filter_records(RECORDS, "glu")], ["r2", "r4"])
        self.assertEqual(filter_records(RECORDS, "shellfish"), [])

    def test_summarize_does_not_mutate_input(self) -> None:
        before = [r.model_copy(deep=True) for r in RECORDS]
        summary = summarize(iter(RECORDS))
        self.assertEqual(summary.total, 4)
        self.assertEqual(summary.counts.analyzed, 2)
        self.assertEqual(summary.allergen_frequency["Dairy"], 3)
        self.assertEqual(summary.allergen_share["Dairy"], 0.75)
        self.assertEqual(RECORDS, before)


if __name__ == "__main__":
    unittest.main()
