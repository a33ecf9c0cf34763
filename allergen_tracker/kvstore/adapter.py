# -*- coding: utf-8 -*-
"""KV store: adapter over a storage backend.

Normalizes empty-vs-missing reads, carries UTF-8 JSON payloads, and gates every
session on the backend's availability probe.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional

from ..records.errors import BackendUnavailable, DecodeError, RecordStoreError, WriteRejected
from .backends import StorageBackend

logger = logging.getLogger(__name__)


class KVStore:
    def __init__(self, backend: StorageBackend, *, timeout: Optional[float] = None) -> None:
        self.backend = backend
        self.timeout = timeout
        self._available = False

    async def is_available(self) -> bool:
        try:
            ok = await asyncio.wait_for(self.backend.is_available(), self.timeout)
        except Exception as exc:
            logger.warning("Storage probe failed: %s", exc)
            return False
        return bool(ok)

    async def ensure_available(self) -> None:
        """Run the availability probe once per session; raise when it fails."""
        if self._available:
            return
        if not await self.is_available():
            raise BackendUnavailable("Storage backend is not available")
        self._available = True

    async def get(self, key: str) -> bytes:
        await self.ensure_available()
        try:
            value = await asyncio.wait_for(self.backend.get_data(key), self.timeout)
        except asyncio.TimeoutError as exc:
            raise BackendUnavailable(f"Timed out reading {key}", step="read") from exc
        except RecordStoreError:
            raise
        except Exception as exc:
            raise BackendUnavailable(f"Failed to read {key}: {exc}", step="read") from exc
        return bytes(value) if value else b""

    async def set(self, key: str, value: bytes) -> None:
        await self.ensure_available()
        try:
            await asyncio.wait_for(self.backend.set_data(key, value), self.timeout)
        except asyncio.TimeoutError as exc:
            # The write may still land; only the wait is abandoned.
            raise WriteRejected(f"Timed out waiting for write to {key}", key=key) from exc
        except RecordStoreError:
            raise
        except Exception as exc:
            raise WriteRejected(f"Failed to write {key}: {exc}", key=key) from exc

    async def get_json(self, key: str) -> Any:
        raw = await self.get(key)
        if not raw:
            return None
        try:
            return json.loads(raw.decode("utf-8"))
        except UnicodeDecodeError as exc:
            raise DecodeError(key, f"invalid UTF-8 ({exc})") from exc
        except json.JSONDecodeError as exc:
            raise DecodeError(key, f"invalid JSON ({exc.msg})") from exc
        except RecursionError as exc:
            raise DecodeError(key, "payload nested too deeply") from exc

    async def set_json(self, key: str, value: Any) -> None:
        payload = json.dumps(value, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
        await self.set(key, payload)
