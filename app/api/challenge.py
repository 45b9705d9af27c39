import logging
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import get_db
from app.services.challenge import issue_challenge

logger = logging.getLogger(__name__)
settings = get_settings()
router = APIRouter(tags=["challenge"])


class ChallengeResponse(BaseModel):
    id: str
    question: str


# ─── GET /challenge ──────────────────────────────────────────────────────────

@router.get("/challenge", response_model=ChallengeResponse)
async def get_challenge(db: AsyncSession = Depends(get_db)):
    """Issue a single-use math question; the id and answer go back with POST /evidence."""
    try:
        challenge = await issue_challenge(
            db,
            ttl_seconds=settings.challenge_ttl_seconds,
            operand_min=settings.challenge_operand_min,
            operand_max=settings.challenge_operand_max,
            subtraction_probability=settings.challenge_subtraction_probability,
        )
    except SQLAlchemyError as e:
        logger.error(f"Failed to issue challenge: {e}")
        raise HTTPException(
            status_code=500,
            detail={"error_code": "CHALLENGE_UNAVAILABLE", "message": "Unable to create a verification question."},
        )

    return ChallengeResponse(id=challenge.id, question=challenge.question)
