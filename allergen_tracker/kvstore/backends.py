# -*- coding: utf-8 -*-
"""KV store: storage backend collaborators.

A backend exposes the three primitives the ledger service offers:
``is_available``, ``get_data`` and ``set_data``. Values are raw bytes; a key
that was never written reads back as ``None`` or ``b""``.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import sqlite3
from pathlib import Path
from typing import Dict, Optional, Protocol, Set, runtime_checkable
from urllib.parse import quote

import httpx

from ..records.errors import DecodeError, WriteRejected

logger = logging.getLogger(__name__)


@runtime_checkable
class StorageBackend(Protocol):
    async def is_available(self) -> bool: ...

    async def get_data(self, key: str) -> Optional[bytes]: ...

    async def set_data(self, key: str, value: bytes) -> None: ...


class InMemoryBackend:
    """Dict-backed backend for local runs and tests.

    Failure injection:
    - ``available``: value reported by the probe.
    - ``reject_writes_for``: keys whose next write is rejected (one-shot).
    - ``write_delay``: seconds every write stays pending before it lands.
    """

    def __init__(self, data: Optional[Dict[str, bytes]] = None) -> None:
        self.data: Dict[str, bytes] = dict(data or {})
        self.available = True
        self.reject_writes_for: Set[str] = set()
        self.write_delay = 0.0
        self.writes: list[str] = []

    async def is_available(self) -> bool:
        return self.available

    async def get_data(self, key: str) -> Optional[bytes]:
        return self.data.get(key)

    async def set_data(self, key: str, value: bytes) -> None:
        if self.write_delay:
            await asyncio.sleep(self.write_delay)
        if key in self.reject_writes_for:
            self.reject_writes_for.discard(key)
            raise WriteRejected(f"Write to {key} rejected", key=key)
        self.data[key] = bytes(value)
        self.writes.append(key)


class SqliteBackend:
    """Single-table SQLite file standing in for the ledger's key/value contract."""

    def __init__(self, db_path: Path) -> None:
        self._db_path = db_path
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        return sqlite3.connect(str(self._db_path), check_same_thread=False)

    def _init_db(self) -> None:
        conn = self._connect()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value BLOB NOT NULL
                );
                """
            )
            conn.commit()
        finally:
            conn.close()

    def _read(self, key: str) -> Optional[bytes]:
        conn = self._connect()
        try:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        finally:
            conn.close()
        return bytes(row[0]) if row else None

    def _write(self, key: str, value: bytes) -> None:
        conn = self._connect()
        try:
            conn.execute(
                "INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)",
                (key, sqlite3.Binary(value)),
            )
            conn.commit()
        finally:
            conn.close()

    async def is_available(self) -> bool:
        try:
            await asyncio.to_thread(self._read, "__probe__")
        except sqlite3.Error as exc:
            logger.warning("SQLite backend unavailable at %s: %s", self._db_path, exc)
            return False
        return True

    async def get_data(self, key: str) -> Optional[bytes]:
        return await asyncio.to_thread(self._read, key)

    async def set_data(self, key: str, value: bytes) -> None:
        try:
            await asyncio.to_thread(self._write, key, value)
        except sqlite3.Error as exc:
            raise WriteRejected(f"SQLite write failed: {exc}", key=key) from exc


class HttpLedgerBackend:
    """HTTP client for a ledger gateway exposing the key/value contract as JSON.

    Routes (relative to ``base_url``):
    - ``GET /available`` -> ``{"available": bool}``
    - ``GET /data/{key}`` -> ``{"value": "<base64>"}``; 404 means absent
    - ``PUT /data/{key}`` with ``{"value": "<base64>"}``
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._timeout, follow_redirects=True, transport=self._transport
        )

    def _data_url(self, key: str) -> str:
        return f"{self._base}/data/{quote(key, safe='')}"

    async def is_available(self) -> bool:
        async with self._client() as client:
            try:
                resp = await client.get(f"{self._base}/available")
                resp.raise_for_status()
                data = resp.json()
            except (httpx.HTTPError, ValueError) as exc:
                logger.warning("Ledger gateway probe failed: %s", exc)
                return False
        return bool(isinstance(data, dict) and data.get("available"))

    async def get_data(self, key: str) -> Optional[bytes]:
        async with self._client() as client:
            resp = await client.get(self._data_url(key))
            if resp.status_code == 404:
                return None
            resp.raise_for_status()
            try:
                data = resp.json()
            except ValueError as exc:
                raise DecodeError(key, "gateway returned invalid JSON") from exc
        raw = data.get("value") if isinstance(data, dict) else None
        if not raw:
            return None
        if not isinstance(raw, str):
            raise DecodeError(key, f"expected a base64 string, got {type(raw).__name__}")
        try:
            return base64.b64decode(raw, validate=True)
        except binascii.Error as exc:
            raise DecodeError(key, f"invalid base64 ({exc})") from exc

    async def set_data(self, key: str, value: bytes) -> None:
        payload = {"value": base64.b64encode(value).decode("ascii")}
        async with self._client() as client:
            try:
                resp = await client.put(self._data_url(key), json=payload)
            except httpx.HTTPError as exc:
                raise WriteRejected(f"Ledger write failed: {exc}", key=key) from exc
        if resp.status_code >= 400:
            message = _error_message(resp)
            raise WriteRejected(
                f"Ledger rejected write to {key}: {message}",
                key=key,
                user_declined="user rejected" in message.lower(),
            )


def _error_message(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.text or f"HTTP {resp.status_code}"
    if isinstance(data, dict):
        detail = data.get("error") or data.get("detail") or data.get("message")
        if isinstance(detail, dict):
            detail = detail.get("message")
        if detail:
            return str(detail)
    return f"HTTP {resp.status_code}"


def build_backend(kind: str, *, kv_path: Path, ledger_url: str, timeout: float) -> StorageBackend:
    if kind == "memory":
        return InMemoryBackend()
    if kind == "sqlite":
        return SqliteBackend(kv_path)
    if kind == "http":
        return HttpLedgerBackend(ledger_url, timeout=timeout)
    raise ValueError(f"Unknown storage backend: {kind!r} (expected memory, sqlite or http)")
