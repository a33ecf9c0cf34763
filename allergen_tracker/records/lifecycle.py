# -*- coding: utf-8 -*-
"""Records: lifecycle state machine.

pending --analyze--> analyzed | flagged. Both outcomes are terminal.
"""

from __future__ import annotations

import logging
from typing import Dict, FrozenSet, Optional

from ..session import Principal
from .analysis import AnalysisCollaborator, PayloadSealer
from .errors import InvalidTransition, Unauthorized
from .models import Record, RecordStatus
from .repository import RecordRepository

logger = logging.getLogger(__name__)

TRANSITIONS: Dict[RecordStatus, FrozenSet[RecordStatus]] = {
    RecordStatus.pending: frozenset({RecordStatus.analyzed, RecordStatus.flagged}),
    RecordStatus.analyzed: frozenset(),
    RecordStatus.flagged: frozenset(),
}


def require_signer(principal: Optional[Principal]) -> Principal:
    if principal is None or not principal.address:
        raise Unauthorized("Connect an account before writing records")
    if not principal.can_sign:
        raise Unauthorized("The connected session cannot authorize writes")
    return principal


class RecordLifecycle:
    def __init__(
        self,
        repository: RecordRepository,
        analyzer: AnalysisCollaborator,
        *,
        sealer: Optional[PayloadSealer] = None,
    ) -> None:
        self.repository = repository
        self.analyzer = analyzer
        self.sealer = sealer

    async def submit(
        self,
        principal: Optional[Principal],
        *,
        food: str,
        symptoms: str,
        meal_time: Optional[str] = None,
        sealed: bool = False,
    ) -> Record:
        """Create a pending record owned by ``principal``.

        Plaintext payloads are sealed first unless ``sealed`` says the caller
        already did it.
        """
        signer = require_signer(principal)
        if not sealed and self.sealer is not None:
            food = self.sealer.seal(food)
            symptoms = self.sealer.seal(symptoms)
        return await self.repository.create(
            food=food,
            symptoms=symptoms,
            owner=signer.address,
            meal_time=meal_time,
        )

    async def analyze(self, record_id: str, principal: Optional[Principal]) -> Record:
        require_signer(principal)
        record = await self.repository.get(record_id)
        if not TRANSITIONS[record.status]:
            raise InvalidTransition(record_id, record.status.value)

        result = await self.analyzer.analyze(record.encrypted_food, record.encrypted_symptoms)
        target = RecordStatus.flagged if result.severe else RecordStatus.analyzed
        allergens = list(result.allergens)

        def _apply(current: Record) -> Record:
            return current.model_copy(update={"status": target, "potential_allergens": allergens})

        updated = await self.repository.update(record_id, _apply)
        logger.info("Record %s analyzed: %s (%d allergens)", record_id, target.value, len(allergens))
        return updated
