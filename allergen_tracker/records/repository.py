# -*- coding: utf-8 -*-
"""Records: repository over ``record_<id>`` keys plus the index."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from ..kvstore import KVStore
from .codec import decode_record, encode_record, new_record_id, record_key
from .errors import DecodeError, NotFound, OrphanedRecord, RecordStoreError
from .index import RecordIndex
from .models import Record, RecordListing, RecordStatus, SkippedRecord

logger = logging.getLogger(__name__)

_IMMUTABLE_FIELDS = ("id", "timestamp", "owner")


class RecordRepository:
    def __init__(
        self,
        store: KVStore,
        *,
        index: Optional[RecordIndex] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.index = index or RecordIndex(store)
        self._clock = clock

    async def create(
        self,
        *,
        food: str,
        symptoms: str,
        owner: str,
        meal_time: Optional[str] = None,
    ) -> Record:
        now = self._clock()
        record = Record(
            id=new_record_id(int(now * 1000)),
            encrypted_food=food,
            encrypted_symptoms=symptoms,
            timestamp=int(now),
            owner=owner,
            status=RecordStatus.pending,
            potential_allergens=[],
            meal_time=meal_time or None,
        )
        # WriteRejected from here means nothing was persisted.
        await self.store.set(record_key(record.id), encode_record(record))
        try:
            await self.index.append(record.id)
        except RecordStoreError as exc:
            logger.warning("Record %s stored but not indexed: %s", record.id, exc)
            raise OrphanedRecord(record, exc) from exc
        logger.info("Created record %s for %s", record.id, owner)
        return record

    async def get(self, record_id: str) -> Record:
        raw = await self.store.get(record_key(record_id))
        if not raw:
            raise NotFound(record_id)
        return decode_record(record_id, raw)

    async def list(self) -> RecordListing:
        snapshot = await self.index.snapshot()
        listing = RecordListing(index_warning=snapshot.warning)
        for record_id in snapshot.ids:
            try:
                listing.records.append(await self.get(record_id))
            except (NotFound, DecodeError) as exc:
                logger.warning("Skipping record %s: %s", record_id, exc)
                listing.skipped.append(SkippedRecord(id=record_id, reason=str(exc)))
        listing.records.sort(key=lambda r: (-r.timestamp, r.id))
        return listing

    async def update(self, record_id: str, mutate: Callable[[Record], Record]) -> Record:
        """Read-modify-write one record. No conflict detection: last writer wins."""
        current = await self.get(record_id)
        updated = mutate(current.model_copy(deep=True))
        for name in _IMMUTABLE_FIELDS:
            if getattr(updated, name) != getattr(current, name):
                raise ValueError(f"Record field {name!r} is immutable")
        await self.store.set(record_key(record_id), encode_record(updated))
        return updated

    async def reappend(self, record_id: str) -> bool:
        """Retry the index append for a record left orphaned by ``create``."""
        await self.get(record_id)
        return await self.index.append(record_id)
