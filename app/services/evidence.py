import logging
from datetime import datetime, timezone
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from app.models.evidence import Evidence, EvidenceStatus

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "description", "status", "name", "email")


# ─── Create ──────────────────────────────────────────────────────────────────

async def insert_evidence(
    db: AsyncSession,
    title: str,
    description: str,
    name: str | None,
    email: str | None,
    ip_address: str,
) -> Evidence:
    """Insert a fresh submission (status=submitted) and return it with timestamps."""
    evidence = Evidence(
        title=title,
        description=description,
        name=name or None,
        email=email or None,
        ip_address=ip_address,
        status=EvidenceStatus.submitted,
    )
    db.add(evidence)
    await db.commit()
    await db.refresh(evidence)

    logger.info(f"Evidence {evidence.id} stored from {ip_address}")
    return evidence


# ─── Read ────────────────────────────────────────────────────────────────────

async def list_evidence(db: AsyncSession, include_deleted: bool = False) -> list[Evidence]:
    stmt = select(Evidence)
    if not include_deleted:
        stmt = stmt.where(Evidence.status != EvidenceStatus.deleted)
    stmt = stmt.order_by(Evidence.updated_at.desc(), Evidence.created_at.desc())

    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_evidence(db: AsyncSession, evidence_id: str) -> Evidence | None:
    result = await db.execute(select(Evidence).where(Evidence.id == evidence_id))
    return result.scalars().first()


# ─── Moderation ──────────────────────────────────────────────────────────────

async def patch_evidence(db: AsyncSession, evidence_id: str, changes: dict) -> Evidence | None:
    """Apply admin edits; unknown keys are ignored. Returns None when the id does not exist."""
    values = {key: value for key, value in changes.items() if key in EDITABLE_FIELDS}
    if "status" in values:
        values["status"] = EvidenceStatus(values["status"])
    values["updated_at"] = datetime.now(timezone.utc)

    stmt = (
        update(Evidence)
        .where(Evidence.id == evidence_id)
        .values(**values)
        .returning(Evidence)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    evidence = result.scalars().first()
    await db.commit()
    return evidence


async def soft_delete_evidence(db: AsyncSession, evidence_id: str) -> None:
    await db.execute(
        update(Evidence)
        .where(Evidence.id == evidence_id)
        .values(status=EvidenceStatus.deleted, updated_at=datetime.now(timezone.utc))
    )
    await db.commit()
    logger.info(f"Evidence {evidence_id} marked deleted")
