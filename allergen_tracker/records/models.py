# -*- coding: utf-8 -*-
"""Records — Pydantic models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RecordStatus(str, Enum):
    pending = "pending"
    analyzed = "analyzed"
    flagged = "flagged"


class Record(BaseModel):
    id: str = Field(..., min_length=1)
    encrypted_food: str
    encrypted_symptoms: str
    timestamp: int = Field(..., ge=0, description="Seconds since epoch")
    owner: str
    status: RecordStatus = RecordStatus.pending
    potential_allergens: List[str] = Field(default_factory=list)
    meal_time: Optional[str] = None


class RecordBlob(BaseModel):
    """Wire shape stored under ``record_<id>``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    food: str
    symptoms: str
    timestamp: int = Field(..., strict=True)
    owner: str
    status: RecordStatus = RecordStatus.pending
    potential_allergens: List[str] = Field(default_factory=list, alias="potentialAllergens")
    meal_time: Optional[str] = Field(None, alias="mealTime")


class SkippedRecord(BaseModel):
    id: str
    reason: str


@dataclass
class RecordListing:
    """Records returned by a listing, newest first, plus what had to be skipped."""

    records: List[Record] = field(default_factory=list)
    skipped: List[SkippedRecord] = field(default_factory=list)
    index_warning: Optional[str] = None

    def __iter__(self) -> Iterator[Record]:
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)

    def __getitem__(self, item: int) -> Record:
        return self.records[item]

    @property
    def warnings(self) -> List[str]:
        out = [f"{s.id}: {s.reason}" for s in self.skipped]
        if self.index_warning:
            out.insert(0, self.index_warning)
        return out


class StatusCounts(BaseModel):
    pending: int = Field(0, ge=0)
    analyzed: int = Field(0, ge=0)
    flagged: int = Field(0, ge=0)


class RecordSummary(BaseModel):
    total: int = Field(0, ge=0)
    counts: StatusCounts = Field(default_factory=StatusCounts)
    allergen_frequency: Dict[str, int] = Field(default_factory=dict)
    allergen_share: Dict[str, float] = Field(default_factory=dict)


# ---- HTTP request/response models ----


class RecordCreateRequest(BaseModel):
    food: str = Field(..., min_length=1, max_length=4000, description="Food items eaten")
    symptoms: str = Field(..., min_length=1, max_length=4000, description="Symptoms observed")
    meal_time: Optional[str] = Field(None, max_length=64, description="Free-form meal time hint")
    sealed: bool = Field(
        False, description="True when food/symptoms are already sealed client-side"
    )


class RecordResponse(BaseModel):
    record: Record


class RecordListResponse(BaseModel):
    count: int
    skipped: int
    warnings: List[str] = []
    records: List[Record]


class OperationState(str, Enum):
    pending = "pending"
    success = "success"
    error = "error"


class OperationStatus(BaseModel):
    id: str
    kind: str
    record_id: Optional[str] = None
    state: OperationState = OperationState.pending
    message: str = ""
    step: Optional[str] = None
    error: Optional[str] = None
    started_at: str
    finished_at: Optional[str] = None
