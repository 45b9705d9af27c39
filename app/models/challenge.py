from datetime import datetime, timezone
from sqlalchemy import String, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column
from app.core.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EvidenceChallenge(Base):
    """
    id VARCHAR(36) PRIMARY KEY
    answer VARCHAR(16) NOT NULL   (normalized: trimmed, case-folded)
    created_at TIMESTAMP DEFAULT NOW()
    """
    __tablename__ = "evidence_challenges"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    answer: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True
    )
