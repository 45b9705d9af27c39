import logging
import random
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone, timedelta
from sqlalchemy import delete, and_
from sqlalchemy.ext.asyncio import AsyncSession
from app.models.challenge import EvidenceChallenge

logger = logging.getLogger(__name__)

_system_random = random.SystemRandom()


@dataclass(frozen=True)
class IssuedChallenge:
    id: str
    question: str


def normalize_answer(value) -> str:
    if value is None:
        return ""
    return str(value).strip().casefold()


def _compose_question(
    rng: random.Random,
    operand_min: int,
    operand_max: int,
    subtraction_probability: float,
) -> tuple[str, int]:
    a = rng.randint(operand_min, operand_max)
    b = rng.randint(operand_min, operand_max)

    # Subtraction only for distinct operands, larger first so the answer stays positive
    if a != b and rng.random() < subtraction_probability:
        high, low = max(a, b), min(a, b)
        return f"How much is {high} - {low}?", high - low
    return f"How much is {a} + {b}?", a + b


# ─── Purge ───────────────────────────────────────────────────────────────────

async def purge_expired_challenges(db: AsyncSession, ttl_seconds: int) -> int:
    """Delete challenges older than the TTL. Caller commits."""
    cutoff = datetime.now(timezone.utc) - timedelta(seconds=ttl_seconds)
    result = await db.execute(
        delete(EvidenceChallenge)
        .where(EvidenceChallenge.created_at < cutoff)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


# ─── Issue ───────────────────────────────────────────────────────────────────

async def issue_challenge(
    db: AsyncSession,
    ttl_seconds: int,
    rng: random.Random | None = None,
    operand_min: int = 2,
    operand_max: int = 9,
    subtraction_probability: float = 0.4,
) -> IssuedChallenge:
    """
    Create a math challenge:
    1. purge expired rows
    2. store id + normalized answer
    3. return id + human-readable question
    """
    question, answer = _compose_question(
        rng or _system_random, operand_min, operand_max, subtraction_probability
    )
    challenge_id = str(uuid.uuid4())

    purged = await purge_expired_challenges(db, ttl_seconds)
    db.add(EvidenceChallenge(id=challenge_id, answer=normalize_answer(answer)))
    await db.commit()

    if purged:
        logger.info(f"Purged {purged} expired challenges on issuance")
    return IssuedChallenge(id=challenge_id, question=question)


# ─── Redeem ──────────────────────────────────────────────────────────────────

async def redeem_challenge(
    db: AsyncSession,
    challenge_id: str | None,
    submitted_answer,
    ttl_seconds: int,
) -> bool:
    """
    Single-use redemption: one DELETE matching id and answer, success = a row was removed.
    Wrong answer, expired id and replay are indistinguishable to the caller.
    A mismatch also deletes the id, so every attempt consumes the challenge.
    """
    purged = await purge_expired_challenges(db, ttl_seconds)

    redeemed = False
    answer = normalize_answer(submitted_answer)
    if challenge_id and answer:
        result = await db.execute(
            delete(EvidenceChallenge).where(
                and_(
                    EvidenceChallenge.id == str(challenge_id),
                    EvidenceChallenge.answer == answer,
                )
            )
        )
        redeemed = result.rowcount == 1

    if challenge_id and not redeemed:
        # A failed attempt burns the challenge so answers cannot be enumerated
        await db.execute(
            delete(EvidenceChallenge).where(EvidenceChallenge.id == str(challenge_id))
        )

    await db.commit()

    if purged:
        logger.info(f"Purged {purged} expired challenges on redemption")
    return redeemed
