# -*- coding: utf-8 -*-
"""Records — API endpoints."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from ..session import Principal, get_principal_from_request, is_owner
from .aggregator import filter_records, summarize
from .errors import (
    BackendUnavailable,
    DecodeError,
    Forbidden,
    InvalidTransition,
    NotFound,
    OrphanedRecord,
    RecordStoreError,
    Unauthorized,
    WriteRejected,
)
from .lifecycle import require_signer
from .models import (
    OperationStatus,
    RecordCreateRequest,
    RecordListResponse,
    RecordResponse,
    RecordStatus,
    RecordSummary,
)
from .services import RecordServices, build_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/records", tags=["Records"])
operations_router = APIRouter(prefix="/api/operations", tags=["Operations"])

_STATUS_CODES = {
    BackendUnavailable: 503,
    NotFound: 404,
    DecodeError: 502,
    Unauthorized: 401,
    Forbidden: 403,
    InvalidTransition: 409,
    OrphanedRecord: 500,
}


def status_code_for(exc: RecordStoreError) -> int:
    if isinstance(exc, WriteRejected):
        return 400 if exc.user_declined else 502
    for cls, code in _STATUS_CODES.items():
        if isinstance(exc, cls):
            return code
    return 500


async def record_error_handler(request: Request, exc: RecordStoreError) -> JSONResponse:  # noqa: ARG001
    content = {"detail": exc.message, "error": type(exc).__name__, "step": exc.step}
    if isinstance(exc, OrphanedRecord):
        content["record_id"] = exc.record.id
    return JSONResponse(status_code=status_code_for(exc), content=content)


def get_services(request: Request) -> RecordServices:
    services = getattr(request.app.state, "services", None)
    if services is None:
        services = build_services()
        request.app.state.services = services
    return services


@router.get("", response_model=RecordListResponse, summary="List records, newest first")
async def list_records(
    q: Optional[str] = Query(default=None, description="Filter by id, owner, status or allergen"),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    services: RecordServices = Depends(get_services),
):
    listing = await services.repository.list()
    records = filter_records(listing, q or "")
    return RecordListResponse(
        count=len(records),
        skipped=len(listing.skipped),
        warnings=listing.warnings,
        records=records[offset : offset + limit],
    )


@router.get("/summary", response_model=RecordSummary, summary="Status counts and allergen frequency")
async def records_summary(
    distinct: bool = Query(default=False, description="Count each allergen once per record"),
    services: RecordServices = Depends(get_services),
):
    listing = await services.repository.list()
    return summarize(listing, distinct=distinct)


@router.post("", response_model=RecordResponse, status_code=201, summary="Submit a food/symptom record")
async def create_record(
    request: RecordCreateRequest,
    principal: Optional[Principal] = Depends(get_principal_from_request),
    services: RecordServices = Depends(get_services),
):
    record = await services.lifecycle.submit(
        principal,
        food=request.food,
        symptoms=request.symptoms,
        meal_time=request.meal_time,
        sealed=request.sealed,
    )
    return RecordResponse(record=record)


@router.get("/{record_id}", response_model=RecordResponse, summary="Get one record")
async def get_record(record_id: str, services: RecordServices = Depends(get_services)):
    return RecordResponse(record=await services.repository.get(record_id))


async def _run_analysis(
    services: RecordServices,
    op_id: str,
    record_id: str,
    principal: Principal,
) -> None:
    await services.operations.run(
        op_id,
        services.lifecycle.analyze(record_id, principal),
        success_message="Analysis completed",
    )


@router.post(
    "/{record_id}/analyze",
    response_model=OperationStatus,
    status_code=202,
    summary="Start analysis of a pending record",
)
async def analyze_record(
    record_id: str,
    background_tasks: BackgroundTasks,
    principal: Optional[Principal] = Depends(get_principal_from_request),
    services: RecordServices = Depends(get_services),
):
    signer = require_signer(principal)
    record = await services.repository.get(record_id)
    if not is_owner(signer, record.owner):
        raise Forbidden("Only the record owner can request analysis")
    if record.status is not RecordStatus.pending:
        raise InvalidTransition(record_id, record.status.value)

    op = services.operations.start("analyze", record_id=record_id, message="Analyzing record...")
    background_tasks.add_task(_run_analysis, services, op.id, record_id, signer)
    return op


@router.post("/{record_id}/reindex", response_model=RecordResponse, summary="Re-add an orphaned record to the index")
async def reindex_record(
    record_id: str,
    principal: Optional[Principal] = Depends(get_principal_from_request),
    services: RecordServices = Depends(get_services),
):
    signer = require_signer(principal)
    record = await services.repository.get(record_id)
    if not is_owner(signer, record.owner):
        raise Forbidden("Only the record owner can re-index it")
    added = await services.repository.reappend(record_id)
    if added:
        logger.info("Re-indexed orphaned record %s", record_id)
    return RecordResponse(record=record)


@operations_router.get("/{op_id}", response_model=OperationStatus, summary="Poll a tracked operation")
def get_operation(op_id: str, services: RecordServices = Depends(get_services)):
    op = services.operations.get(op_id)
    if op is None:
        raise HTTPException(status_code=404, detail="Operation not found")
    return op
