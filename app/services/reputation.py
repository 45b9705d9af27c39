import ipaddress
import logging
from datetime import datetime, timezone, timedelta
from fastapi import Request
from sqlalchemy import DateTime, bindparam, select, delete, and_, text
from sqlalchemy.ext.asyncio import AsyncSession
from app.models.evidence import Evidence, EvidenceIpBan

logger = logging.getLogger(__name__)

_MAX_ADDRESS_LENGTH = 64
_MAX_REASON_LENGTH = 200
_MAPPED_PREFIX = "::ffff:"


# ─── Address normalization ───────────────────────────────────────────────────

def normalize_address(raw) -> str | None:
    """
    Canonical form used for every ban lookup, rate check and stored record:
    - IPv4-mapped IPv6 (dotted or hex form) becomes plain IPv4
    - IPv6 loopback becomes 127.0.0.1
    - unparseable input becomes None
    """
    if not isinstance(raw, str):
        return None

    value = raw.strip()
    if value.lower().startswith(_MAPPED_PREFIX) and "." in value:
        value = value[len(_MAPPED_PREFIX):]
    if not value:
        return None

    try:
        parsed = ipaddress.ip_address(value)
    except ValueError:
        return None

    if parsed.version == 6:
        if parsed.ipv4_mapped is not None:
            parsed = parsed.ipv4_mapped
        elif parsed.is_loopback:
            return "127.0.0.1"

    return str(parsed)[:_MAX_ADDRESS_LENGTH]


def resolve_client_address(request: Request) -> str | None:
    """X-Forwarded-For (first hop) > X-Real-IP > transport peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return normalize_address(first)

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return normalize_address(real_ip)

    if request.client and request.client.host:
        return normalize_address(request.client.host)

    return None


# ─── Gate checks ─────────────────────────────────────────────────────────────

async def is_banned(db: AsyncSession, ip_address: str | None) -> bool:
    if not ip_address:
        return False
    ban = await db.get(EvidenceIpBan, ip_address)
    return ban is not None


async def has_recent_submission(
    db: AsyncSession, ip_address: str | None, window_seconds: int = 60
) -> bool:
    """Sliding window computed from the evidence table itself, no counters to reset."""
    if not ip_address:
        return False

    window_start = datetime.now(timezone.utc) - timedelta(seconds=window_seconds)
    result = await db.execute(
        select(Evidence.id)
        .where(
            and_(
                Evidence.ip_address == ip_address,
                Evidence.created_at >= window_start,
            )
        )
        .limit(1)
    )
    return result.first() is not None


# ─── Ban management (admin) ──────────────────────────────────────────────────

async def list_bans(db: AsyncSession) -> list[EvidenceIpBan]:
    result = await db.execute(
        select(EvidenceIpBan).order_by(EvidenceIpBan.created_at.desc())
    )
    return list(result.scalars().all())


async def ban_address(db: AsyncSession, ip_address: str, reason: str | None) -> EvidenceIpBan:
    """Upsert: banning an already banned address refreshes reason and timestamp."""
    sanitized_reason = str(reason)[:_MAX_REASON_LENGTH] if reason else None
    now = datetime.now(timezone.utc)

    # Postgres and SQLite both accept ON CONFLICT ... DO UPDATE
    await db.execute(
        text(
            """
            INSERT INTO evidence_ip_bans (ip_address, reason, created_at)
            VALUES (:ip_address, :reason, :created_at)
            ON CONFLICT (ip_address)
            DO UPDATE SET reason = excluded.reason, created_at = excluded.created_at
            """
        ).bindparams(bindparam("created_at", type_=DateTime(timezone=True))),
        {"ip_address": ip_address, "reason": sanitized_reason, "created_at": now},
    )
    await db.commit()

    ban = await db.get(EvidenceIpBan, ip_address, populate_existing=True)
    logger.info(f"Banned {ip_address} (reason={sanitized_reason!r})")
    return ban


async def unban_address(db: AsyncSession, ip_address: str) -> bool:
    result = await db.execute(
        delete(EvidenceIpBan).where(EvidenceIpBan.ip_address == ip_address)
    )
    await db.commit()
    removed = (result.rowcount or 0) > 0
    if removed:
        logger.info(f"Unbanned {ip_address}")
    return removed
