import logging
from sqlalchemy import select, delete, and_, func
from sqlalchemy.ext.asyncio import AsyncSession
from app.models.evidence import Evidence, EvidenceStatus

logger = logging.getLogger(__name__)


async def is_duplicate(db: AsyncSession, title: str, description: str) -> bool:
    """Case-insensitive exact match on title and description among non-deleted records."""
    if not title or not description:
        return False

    result = await db.execute(
        select(Evidence.id)
        .where(
            and_(
                func.lower(Evidence.title) == func.lower(title),
                func.lower(Evidence.description) == func.lower(description),
                Evidence.status != EvidenceStatus.deleted,
            )
        )
        .limit(1)
    )
    return result.first() is not None


async def cleanup_duplicates(db: AsyncSession) -> int:
    """
    Batch pass over submitted evidence: group by
    (title, description, email, ip_address), case-insensitive with NULL as '',
    keep the newest row of each group and hard-delete the rest.
    Returns the number of removed rows.
    """
    ranked = (
        select(
            Evidence.id.label("id"),
            func.row_number()
            .over(
                partition_by=(
                    func.lower(Evidence.title),
                    func.lower(Evidence.description),
                    func.coalesce(func.lower(Evidence.email), ""),
                    func.coalesce(Evidence.ip_address, ""),
                ),
                order_by=Evidence.created_at.desc(),
            )
            .label("row_num"),
        )
        .where(Evidence.status == EvidenceStatus.submitted)
        .subquery()
    )

    stmt = (
        delete(Evidence)
        .where(Evidence.id.in_(select(ranked.c.id).where(ranked.c.row_num > 1)))
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    await db.commit()

    removed = result.rowcount or 0
    logger.info(f"Duplicate cleanup removed {removed} evidence rows")
    return removed
