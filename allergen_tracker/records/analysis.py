# -*- coding: utf-8 -*-
"""Records: analysis and payload sealing collaborators.

The record store treats food/symptom payloads as opaque strings. How they are
sealed and how allergens are derived from them lives behind the two protocols
below so a real encrypted-analysis service can replace the demo versions.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import random
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Sequence, runtime_checkable

DEFAULT_CANDIDATES = ("Dairy", "Gluten", "Nuts")

_SEAL_PREFIX = "FHE-"


@dataclass(frozen=True)
class AnalysisResult:
    allergens: List[str] = field(default_factory=list)
    severe: bool = False


@runtime_checkable
class AnalysisCollaborator(Protocol):
    async def analyze(self, food: str, symptoms: str) -> AnalysisResult: ...


@runtime_checkable
class PayloadSealer(Protocol):
    def seal(self, plaintext: str) -> str: ...

    def unseal(self, sealed: str) -> str: ...


class SimulatedAnalyzer:
    """Stand-in for the encrypted-analysis service.

    Waits ``delay`` seconds, reports every candidate allergen, and marks the
    result severe with probability ``flag_probability``.
    """

    def __init__(
        self,
        *,
        delay: float = 3.0,
        flag_probability: float = 0.3,
        candidates: Sequence[str] = DEFAULT_CANDIDATES,
        rng: Optional[random.Random] = None,
    ) -> None:
        if not 0.0 <= flag_probability <= 1.0:
            raise ValueError("flag_probability must be between 0 and 1")
        self.delay = delay
        self.flag_probability = flag_probability
        self.candidates = list(candidates)
        self._rng = rng or random.Random()

    async def analyze(self, food: str, symptoms: str) -> AnalysisResult:  # noqa: ARG002
        if self.delay > 0:
            await asyncio.sleep(self.delay)
        severe = self._rng.random() < self.flag_probability
        return AnalysisResult(allergens=list(self.candidates), severe=severe)


class DemoSealer:
    """Reversible ``FHE-<base64>`` wrapping. Not encryption."""

    def seal(self, plaintext: str) -> str:
        return _SEAL_PREFIX + base64.b64encode(plaintext.encode("utf-8")).decode("ascii")

    def unseal(self, sealed: str) -> str:
        if not sealed.startswith(_SEAL_PREFIX):
            raise ValueError("payload was not sealed by DemoSealer")
        try:
            return base64.b64decode(sealed[len(_SEAL_PREFIX):], validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as exc:
            raise ValueError(f"corrupt sealed payload: {exc}") from exc
