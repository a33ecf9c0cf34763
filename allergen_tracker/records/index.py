# -*- coding: utf-8 -*-
"""Records: the id index kept under ``record_keys``.

The index is a JSON array of record ids and is the only way records are
enumerated. ``append`` is a read-then-write on a store without compare-and-swap:
two appends racing on the same index can lose one id. Callers that need the
guarantee must serialize their creates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ..kvstore import KVStore
from .codec import INDEX_KEY
from .errors import DecodeError

logger = logging.getLogger(__name__)


@dataclass
class IndexSnapshot:
    ids: List[str] = field(default_factory=list)
    warning: Optional[str] = None


class RecordIndex:
    def __init__(self, store: KVStore, *, key: str = INDEX_KEY) -> None:
        self.store = store
        self.key = key

    async def _read_strict(self) -> List[str]:
        data = await self.store.get_json(self.key)
        if data is None:
            return []
        if not isinstance(data, list) or not all(isinstance(i, str) for i in data):
            raise DecodeError(self.key, "expected a JSON array of strings")
        return _dedup(data)

    async def snapshot(self) -> IndexSnapshot:
        try:
            ids = await self._read_strict()
        except DecodeError as exc:
            logger.warning("Ignoring malformed record index: %s", exc.reason)
            return IndexSnapshot(ids=[], warning=str(exc))
        return IndexSnapshot(ids=ids)

    async def load(self) -> List[str]:
        return (await self.snapshot()).ids

    async def append(self, record_id: str) -> bool:
        """Add ``record_id`` unless present. Returns False when it was already there.

        A malformed index is never overwritten; ``DecodeError`` is raised instead.
        """
        ids = await self._read_strict()
        if record_id in ids:
            return False
        ids.append(record_id)
        await self.store.set_json(self.key, ids)
        return True


def _dedup(ids: List[str]) -> List[str]:
    seen = set()
    out: List[str] = []
    for i in ids:
        if i not in seen:
            seen.add(i)
            out.append(i)
    return out
