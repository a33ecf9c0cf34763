# -*- coding: utf-8 -*-

from __future__ import annotations

import asyncio
import base64
import json
import shutil
import tempfile
import unittest
from pathlib import Path

import httpx

from allergen_tracker.kvstore import HttpLedgerBackend, InMemoryBackend, KVStore, SqliteBackend, build_backend
from allergen_tracker.records.errors import BackendUnavailable, DecodeError, WriteRejected


class _CountingBackend(InMemoryBackend):
    def __init__(self) -> None:
        super().__init__()
        self.probes = 0
        self.reads = 0

    async def is_available(self) -> bool:
        self.probes += 1
        return await super().is_available()

    async def get_data(self, key: str):
        self.reads += 1
        return await super().get_data(key)


class _ExplodingProbe(InMemoryBackend):
    async def is_available(self) -> bool:
        raise ConnectionError("gateway down")


class TestKVStoreAdapter(unittest.IsolatedAsyncioTestCase):
    async def test_absent_and_empty_values_read_as_empty_bytes(self) -> None:
        backend = InMemoryBackend({"empty": b""})
        store = KVStore(backend)
        self.assertEqual(await store.get("missing"), b"")
        self.assertEqual(await store.get("empty"), b"")
        self.assertIsNone(await store.get_json("missing"))

    async def test_json_round_trip_is_utf8(self) -> None:
        backend = InMemoryBackend()
        store = KVStore(backend)
        await store.set_json("k", {"food": "蛋"})
        self.assertEqual(backend.data["k"], json.dumps({"food": "蛋"}, separators=(",", ":"), ensure_ascii=False).encode("utf-8"))
        self.assertEqual(await store.get_json("k"), {"food": "蛋"})

    async def test_probe_runs_once_per_session(self) -> None:
        backend = _CountingBackend()
        store = KVStore(backend)
        await store.get("a")
        await store.get("b")
        self.assertEqual(backend.probes, 1)
        self.assertEqual(backend.reads, 2)

    async def test_unavailable_backend_short_circuits_reads(self) -> None:
        backend = _CountingBackend()
        backend.available = False
        store = KVStore(backend)
        with self.assertRaises(BackendUnavailable):
            await store.get("record_keys")
        with self.assertRaises(BackendUnavailable):
            await store.set("record_keys", b"[]")
        self.assertEqual(backend.reads, 0)
        self.assertEqual(backend.data, {})

    async def test_probe_exception_counts_as_unavailable(self) -> None:
        store = KVStore(_ExplodingProbe())
        self.assertFalse(await store.is_available())
        with self.assertRaises(BackendUnavailable):
            await store.ensure_available()

    async def test_write_failure_is_surfaced(self) -> None:
        backend = InMemoryBackend()
        backend.reject_writes_for.add("k")
        store = KVStore(backend)
        with self.assertRaises(WriteRejected) as ctx:
            await store.set("k", b"1")
        self.assertEqual(ctx.exception.key, "k")
        self.assertNotIn("k", backend.data)

    async def test_write_timeout_reports_rejection(self) -> None:
        backend = InMemoryBackend()
        backend.write_delay = 0.5
        store = KVStore(backend, timeout=0.05)
        with self.assertRaises(WriteRejected):
            await store.set("slow", b"1")

    async def test_malformed_json_is_a_decode_error(self) -> None:
        store = KVStore(InMemoryBackend({"k": b"{oops"}))
        with self.assertRaises(DecodeError):
            await store.get_json("k")


class TestSqliteBackend(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self._tmp = Path(tempfile.mkdtemp(prefix="allergen-kv-"))

    def tearDown(self) -> None:
        shutil.rmtree(self._tmp, ignore_errors=True)

    async def test_values_persist_across_instances(self) -> None:
        path = self._tmp / "nested" / "ledger.db"
        first = SqliteBackend(path)
        self.assertTrue(await first.is_available())
        self.assertIsNone(await first.get_data("record_keys"))
        await first.set_data("record_keys", b'["a"]')
        await first.set_data("record_keys", b'["a","b"]')

        second = SqliteBackend(path)
        self.assertEqual(await second.get_data("record_keys"), b'["a","b"]')


class TestHttpLedgerBackend(unittest.IsolatedAsyncioTestCase):
    def _backend(self, handler) -> HttpLedgerBackend:
        return HttpLedgerBackend(
            "http://ledger.test/kv/",
            timeout=5,
            transport=httpx.MockTransport(handler),
        )

    async def test_probe_get_and_set(self) -> None:
        stored = {}

        def handler(request: httpx.Request) -> httpx.Response:
            path = request.url.path
            if path == "/kv/available":
                return httpx.Response(200, json={"available": True})
            key = path.rsplit("/", 1)[-1]
            if request.method == "GET":
                if key not in stored:
                    return httpx.Response(404, json={"detail": "missing"})
                return httpx.Response(200, json={"value": stored[key]})
            stored[key] = json.loads(request.content)["value"]
            return httpx.Response(200, json={"ok": True})

        backend = self._backend(handler)
        self.assertTrue(await backend.is_available())
        self.assertIsNone(await backend.get_data("record_1"))
        await backend.set_data("record_1", b'{"a":1}')
        self.assertEqual(stored["record_1"], base64.b64encode(b'{"a":1}').decode("ascii"))
        self.assertEqual(await backend.get_data("record_1"), b'{"a":1}')

    async def test_failed_probe_is_false(self) -> None:
        backend = self._backend(lambda request: httpx.Response(500, text="boom"))
        self.assertFalse(await backend.is_available())

    async def test_user_declined_write(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"error": {"message": "user rejected transaction"}})

        backend = self._backend(handler)
        with self.assertRaises(WriteRejected) as ctx:
            await backend.set_data("record_keys", b"[]")
        self.assertTrue(ctx.exception.user_declined)

    async def test_read_failure_becomes_backend_unavailable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/available"):
                return httpx.Response(200, json={"available": True})
            return httpx.Response(502, text="bad gateway")

        store = KVStore(self._backend(handler))
        with self.assertRaises(BackendUnavailable):
            await store.get("record_keys")

    async def test_malformed_gateway_value_is_a_decode_error(self) -> None:
        bodies = [
            {"value": 12},
            {"value": "not base64!"},
        ]
        for body in bodies:
            with self.subTest(body=body):
                def handler(request: httpx.Request, body=body) -> httpx.Response:
                    if request.url.path.endswith("/available"):
                        return httpx.Response(200, json={"available": True})
                    return httpx.Response(200, json=body)

                store = KVStore(self._backend(handler))
                with self.assertRaises(DecodeError) as ctx:
                    await store.get("record_1")
                self.assertEqual(ctx.exception.key, "record_1")

    async def test_non_json_gateway_body_is_a_decode_error(self) -> None:
        backend = self._backend(lambda request: httpx.Response(200, text="<html>"))
        with self.assertRaises(DecodeError):
            await backend.get_data("record_1")


class TestBuildBackend(unittest.TestCase):
    def test_unknown_kind(self) -> None:
        with self.assertRaises(ValueError):
            build_backend("redis", kv_path=Path("x.db"), ledger_url="http://x", timeout=1)

    def test_memory_kind(self) -> None:
        backend = build_backend("memory", kv_path=Path("x.db"), ledger_url="http://x", timeout=1)
        self.assertIsInstance(backend, InMemoryBackend)
        asyncio.run(backend.set_data("k", b"v"))
        self.assertEqual(backend.data["k"], b"v")


if __name__ == "__main__":
    unittest.main()
