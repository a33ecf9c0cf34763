# -*- coding: utf-8 -*-
"""Session: the connected principal and FastAPI helpers to resolve it."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from fastapi import Request

ADDRESS_HEADER = "x-wallet-address"
READONLY_HEADER = "x-wallet-readonly"

_ADDRESS_RE = re.compile(r"^[A-Za-z0-9_:\-.]{1,128}$")


@dataclass(frozen=True)
class Principal:
    """A connected account. ``can_sign`` is False for read-only sessions."""

    address: str
    can_sign: bool = True


def is_owner(principal: Optional[Principal], owner: str) -> bool:
    if principal is None or not principal.address:
        return False
    return principal.address.lower() == (owner or "").lower()


def get_principal_from_request(request: Request) -> Optional[Principal]:
    address = (request.headers.get(ADDRESS_HEADER) or "").strip()
    if not address or not _ADDRESS_RE.match(address):
        return None
    readonly = (request.headers.get(READONLY_HEADER) or "").strip() in {"1", "true", "True"}
    return Principal(address=address, can_sign=not readonly)
