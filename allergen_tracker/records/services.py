# -*- coding: utf-8 -*-
"""Records: wiring of store, repository, lifecycle and operation tracker."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..config import Settings, settings
from ..kvstore import KVStore, StorageBackend, build_backend
from .analysis import AnalysisCollaborator, DemoSealer, PayloadSealer, SimulatedAnalyzer
from .lifecycle import RecordLifecycle
from .operations import OperationTracker
from .repository import RecordRepository


@dataclass
class RecordServices:
    store: KVStore
    repository: RecordRepository
    lifecycle: RecordLifecycle
    operations: OperationTracker


def build_services(
    cfg: Optional[Settings] = None,
    *,
    backend: Optional[StorageBackend] = None,
    analyzer: Optional[AnalysisCollaborator] = None,
    sealer: Optional[PayloadSealer] = None,
) -> RecordServices:
    cfg = cfg or settings
    if backend is None:
        backend = build_backend(
            cfg.backend,
            kv_path=cfg.kv_path,
            ledger_url=cfg.ledger_url,
            timeout=cfg.kv_timeout,
        )
    if analyzer is None:
        analyzer = SimulatedAnalyzer(delay=cfg.analysis_delay, flag_probability=cfg.flag_probability)
    store = KVStore(backend, timeout=cfg.kv_timeout)
    repository = RecordRepository(store)
    lifecycle = RecordLifecycle(repository, analyzer, sealer=sealer or DemoSealer())
    return RecordServices(
        store=store,
        repository=repository,
        lifecycle=lifecycle,
        operations=OperationTracker(cfg.max_operations),
    )
