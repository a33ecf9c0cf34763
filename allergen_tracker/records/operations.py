# -*- coding: utf-8 -*-
"""Records: status tracking for long-running calls (create/analyze).

Each tracked call moves pending -> success | error and keeps the failing step
so a client can say which part of the write went wrong.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Awaitable, Dict, Optional, TypeVar
from uuid import uuid4

from .errors import OrphanedRecord, RecordStoreError, WriteRejected
from .models import OperationState, OperationStatus

logger = logging.getLogger(__name__)

T = TypeVar("T")

_FAILURE_PREFIX: Dict[str, str] = {
    "create": "Submission failed",
    "analyze": "Analysis failed",
}


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def describe_failure(kind: str, exc: BaseException) -> str:
    if isinstance(exc, WriteRejected) and exc.user_declined:
        return "Transaction rejected by user"
    prefix = _FAILURE_PREFIX.get(kind, "Operation failed")
    return f"{prefix}: {exc or 'Unknown error'}"


class OperationTracker:
    def __init__(self, max_operations: int = 256) -> None:
        self.max_operations = max(1, int(max_operations))
        self._ops: "OrderedDict[str, OperationStatus]" = OrderedDict()

    def start(self, kind: str, *, record_id: Optional[str] = None, message: str = "") -> OperationStatus:
        op = OperationStatus(
            id=str(uuid4()),
            kind=kind,
            record_id=record_id,
            message=message,
            started_at=_utc_now(),
        )
        self._ops[op.id] = op
        self._evict()
        return op

    def get(self, op_id: str) -> Optional[OperationStatus]:
        return self._ops.get(op_id)

    def succeed(self, op_id: str, message: str, *, record_id: Optional[str] = None) -> OperationStatus:
        op = self._ops[op_id]
        op.state = OperationState.success
        op.message = message
        if record_id:
            op.record_id = record_id
        op.finished_at = _utc_now()
        return op

    def fail(self, op_id: str, exc: BaseException) -> OperationStatus:
        op = self._ops[op_id]
        op.state = OperationState.error
        op.message = describe_failure(op.kind, exc)
        op.error = type(exc).__name__
        op.step = getattr(exc, "step", None)
        if isinstance(exc, OrphanedRecord):
            op.record_id = exc.record.id
        op.finished_at = _utc_now()
        return op

    async def run(self, op_id: str, work: Awaitable[T], *, success_message: str) -> Optional[T]:
        """Await ``work`` and record its outcome. Store errors are recorded, not raised."""
        try:
            result = await work
        except RecordStoreError as exc:
            logger.error("Operation %s (%s) failed at %s: %s", op_id, self._ops[op_id].kind, exc.step, exc)
            self.fail(op_id, exc)
            return None
        except Exception as exc:
            logger.exception("Operation %s crashed", op_id)
            self.fail(op_id, exc)
            raise
        record_id = getattr(result, "id", None)
        self.succeed(op_id, success_message, record_id=record_id)
        return result

    def _evict(self) -> None:
        while len(self._ops) > self.max_operations:
            victim = next(
                (k for k, v in self._ops.items() if v.state is not OperationState.pending),
                None,
            )
            if victim is None:
                break
            self._ops.pop(victim)
