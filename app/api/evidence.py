import logging
from datetime import datetime
from typing import Any
from fastapi import APIRouter, Body, Depends, HTTPException, Request, Response
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import get_db
from app.models.evidence import Evidence, EvidenceStatus
from app.services import dedup
from app.services import evidence as evidence_service
from app.services.sessions import require_admin
from app.services.submission import (
    EvidenceError,
    EvidenceSubmission,
    PipelineConfig,
    SubmissionPipeline,
)

logger = logging.getLogger(__name__)
settings = get_settings()
router = APIRouter(prefix="/evidence", tags=["evidence"])

_pipeline = SubmissionPipeline(PipelineConfig.from_settings(settings))


def get_pipeline() -> SubmissionPipeline:
    return _pipeline


# ─── Response models ─────────────────────────────────────────────────────────

class EvidencePublic(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    title: str
    description: str
    name: str | None = None
    email: str | None = None
    status: EvidenceStatus
    created_at: datetime
    updated_at: datetime


class EvidenceAdmin(EvidencePublic):
    ip_address: str | None = None


class EvidencePatch(BaseModel):
    title: str | None = None
    description: str | None = None
    status: str | None = None
    name: str | None = None
    email: str | None = None


class CleanupResponse(BaseModel):
    removed: int


def _not_found() -> HTTPException:
    return HTTPException(
        status_code=404,
        detail={"error_code": "EVIDENCE_NOT_FOUND", "message": "Evidence not found."},
    )


# ─── POST /evidence ──────────────────────────────────────────────────────────

@router.post("", status_code=201, response_model=EvidencePublic)
async def submit_evidence(
    request: Request,
    body: Any = Body(None),
    db: AsyncSession = Depends(get_db),
    pipeline: SubmissionPipeline = Depends(get_pipeline),
):
    """
    Public, unauthenticated submission. Guards, in order:
    shape -> origin -> challenge -> ban -> rate -> duplicate -> insert
    """
    payload = EvidenceSubmission.from_body(body)
    try:
        evidence = await pipeline.submit(db, request, payload)
    except EvidenceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())

    return EvidencePublic.model_validate(evidence)


# ─── GET /evidence ───────────────────────────────────────────────────────────

@router.get("")
async def list_evidence(
    request: Request,
    scope: str | None = None,
    db: AsyncSession = Depends(get_db),
):
    """Public listing hides deleted rows; scope=admin lists everything with ipAddress."""
    if scope == "admin":
        await require_admin(request, db)
        rows = await evidence_service.list_evidence(db, include_deleted=True)
        return {"evidence": [EvidenceAdmin.model_validate(row) for row in rows]}

    rows = await evidence_service.list_evidence(db)
    return {"evidence": [EvidencePublic.model_validate(row) for row in rows]}


# ─── POST /evidence/cleanup ──────────────────────────────────────────────────

@router.post("/cleanup", response_model=CleanupResponse, dependencies=[Depends(require_admin)])
async def cleanup_duplicate_evidence(db: AsyncSession = Depends(get_db)):
    removed = await dedup.cleanup_duplicates(db)
    return CleanupResponse(removed=removed)


# ─── /evidence/{evidence_id} ─────────────────────────────────────────────────

@router.get("/{evidence_id}", response_model=EvidencePublic)
async def get_evidence(evidence_id: str, db: AsyncSession = Depends(get_db)):
    evidence = await evidence_service.get_evidence(db, evidence_id)
    if evidence is None or evidence.status == EvidenceStatus.deleted:
        raise _not_found()
    return EvidencePublic.model_validate(evidence)


@router.patch("/{evidence_id}", response_model=EvidenceAdmin, dependencies=[Depends(require_admin)])
async def patch_evidence(
    evidence_id: str,
    changes: EvidencePatch,
    db: AsyncSession = Depends(get_db),
):
    # name and email may be cleared explicitly; empty title, description or status count as absent
    values = {
        key: value
        for key, value in changes.model_dump(exclude_unset=True).items()
        if value or key in ("name", "email")
    }
    if not any(values.values()):
        raise HTTPException(
            status_code=400,
            detail={"error_code": "NOTHING_TO_UPDATE", "message": "Nothing to update."},
        )

    if "status" in values and values["status"] not in EvidenceStatus.__members__:
        raise HTTPException(
            status_code=400,
            detail={"error_code": "INVALID_STATUS", "message": "Unknown evidence status."},
        )

    evidence: Evidence | None = await evidence_service.patch_evidence(db, evidence_id, values)
    if evidence is None:
        raise _not_found()
    return EvidenceAdmin.model_validate(evidence)


@router.delete("/{evidence_id}", status_code=204, dependencies=[Depends(require_admin)])
async def delete_evidence(evidence_id: str, db: AsyncSession = Depends(get_db)):
    await evidence_service.soft_delete_evidence(db, evidence_id)
    return Response(status_code=204)
