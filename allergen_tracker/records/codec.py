# -*- coding: utf-8 -*-
"""Records: key layout and blob encoding."""

from __future__ import annotations

import json
import secrets
import string
import time
from typing import Optional

from pydantic import ValidationError

from .errors import DecodeError
from .models import Record, RecordBlob

INDEX_KEY = "record_keys"
RECORD_KEY_PREFIX = "record_"

_ID_ALPHABET = string.digits + string.ascii_lowercase
_ID_SUFFIX_LEN = 7


def record_key(record_id: str) -> str:
    return f"{RECORD_KEY_PREFIX}{record_id}"


def new_record_id(now_ms: Optional[int] = None) -> str:
    """``<epoch millis>-<7 random base36 chars>``."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_SUFFIX_LEN))
    return f"{now_ms}-{suffix}"


def encode_record(record: Record) -> bytes:
    blob = RecordBlob(
        food=record.encrypted_food,
        symptoms=record.encrypted_symptoms,
        timestamp=record.timestamp,
        owner=record.owner,
        status=record.status,
        potential_allergens=list(record.potential_allergens),
        meal_time=record.meal_time,
    )
    data = blob.model_dump(mode="json", by_alias=True, exclude_none=True)
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def decode_record(record_id: str, raw: bytes) -> Record:
    key = record_key(record_id)
    try:
        data = json.loads(raw.decode("utf-8"))
    except UnicodeDecodeError as exc:
        raise DecodeError(key, f"invalid UTF-8 ({exc})") from exc
    except json.JSONDecodeError as exc:
        raise DecodeError(key, f"invalid JSON ({exc.msg})") from exc
    except RecursionError as exc:
        raise DecodeError(key, "payload nested too deeply") from exc
    if not isinstance(data, dict):
        raise DecodeError(key, f"expected a JSON object, got {type(data).__name__}")
    try:
        blob = RecordBlob.model_validate(data)
        return Record(
            id=record_id,
            encrypted_food=blob.food,
            encrypted_symptoms=blob.symptoms,
            timestamp=blob.timestamp,
            owner=blob.owner,
            status=blob.status,
            potential_allergens=blob.potential_allergens,
            meal_time=blob.meal_time,
        )
    except ValidationError as exc:
        raise DecodeError(key, _first_error(exc)) from exc


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "invalid record"
    err = errors[0]
    loc = ".".join(str(p) for p in err.get("loc", ()))
    return f"{loc}: {err.get('msg')}" if loc else str(err.get("msg"))
