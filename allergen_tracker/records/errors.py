# -*- coding: utf-8 -*-
"""Records: typed errors raised by the store, index, repository and lifecycle.

Every error carries ``step`` naming the stage that failed so callers can report
which part of a multi-step write went wrong.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .models import Record


class RecordStoreError(Exception):
    """Base class for all record store failures."""

    step: str = "store"

    def __init__(self, message: str, *, step: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        if step is not None:
            self.step = step


class BackendUnavailable(RecordStoreError):
    step = "probe"


class NotFound(RecordStoreError):
    step = "read"

    def __init__(self, key: str, *, step: Optional[str] = None) -> None:
        super().__init__(f"Record not found: {key}", step=step)
        self.key = key


class DecodeError(RecordStoreError):
    step = "decode"

    def __init__(self, key: str, reason: str, *, step: Optional[str] = None) -> None:
        super().__init__(f"Malformed payload at {key}: {reason}", step=step)
        self.key = key
        self.reason = reason


class Unauthorized(RecordStoreError):
    step = "authorize"


class InvalidTransition(RecordStoreError):
    step = "transition"

    def __init__(self, record_id: str, current: str, *, step: Optional[str] = None) -> None:
        super().__init__(
            f"Record {record_id} is already {current}; only pending records can be analyzed",
            step=step,
        )
        self.record_id = record_id
        self.current = current


class WriteRejected(RecordStoreError):
    step = "write"

    def __init__(
        self,
        message: str,
        *,
        key: Optional[str] = None,
        user_declined: bool = False,
        step: Optional[str] = None,
    ) -> None:
        super().__init__(message, step=step)
        self.key = key
        self.user_declined = user_declined


class OrphanedRecord(RecordStoreError):
    """The record blob was written but the index append failed."""

    step = "index_append"

    def __init__(self, record: "Record", cause: BaseException) -> None:
        super().__init__(
            f"Record {record.id} was stored but could not be added to the index: {cause}"
        )
        self.record = record
        self.cause = cause


class Forbidden(RecordStoreError):
    step = "authorize"
