# -*- coding: utf-8 -*-
"""Test doubles shared by the record store tests."""

from __future__ import annotations

import asyncio
from typing import List, Optional, Sequence, Tuple

from allergen_tracker.kvstore import InMemoryBackend, KVStore
from allergen_tracker.records.analysis import AnalysisResult
from allergen_tracker.records.lifecycle import RecordLifecycle
from allergen_tracker.records.repository import RecordRepository


class ScriptedAnalyzer:
    """Returns queued results in call order; each result may wait before returning."""

    def __init__(self, results: Sequence[Tuple[List[str], bool, float]] = ()) -> None:
        self._results = list(results)
        self.calls: List[Tuple[str, str]] = []

    async def analyze(self, food: str, symptoms: str) -> AnalysisResult:
        self.calls.append((food, symptoms))
        if self._results:
            allergens, severe, delay = self._results.pop(0)
        else:
            allergens, severe, delay = ["Dairy"], False, 0.0
        if delay:
            await asyncio.sleep(delay)
        return AnalysisResult(allergens=list(allergens), severe=severe)


def make_repository(
    backend: Optional[InMemoryBackend] = None,
    *,
    times: Optional[Sequence[float]] = None,
) -> Tuple[InMemoryBackend, RecordRepository]:
    backend = backend or InMemoryBackend()
    store = KVStore(backend, timeout=5)
    if times is None:
        repo = RecordRepository(store)
    else:
        it = iter(times)
        repo = RecordRepository(store, clock=lambda: next(it))
    return backend, repo


def make_lifecycle(
    analyzer: Optional[ScriptedAnalyzer] = None,
    backend: Optional[InMemoryBackend] = None,
) -> Tuple[InMemoryBackend, RecordRepository, RecordLifecycle, ScriptedAnalyzer]:
    backend, repo = make_repository(backend)
    analyzer = analyzer or ScriptedAnalyzer()
    return backend, repo, RecordLifecycle(repo, analyzer), analyzer
