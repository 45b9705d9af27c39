import enum
import uuid
from datetime import datetime
from sqlalchemy import String, Text, DateTime, Enum as SAEnum, func
from sqlalchemy.orm import Mapped, mapped_column
from app.core.database import Base
from app.models.challenge import utcnow


class EvidenceStatus(str, enum.Enum):
    submitted = "submitted"
    reviewed = "reviewed"
    deleted = "deleted"


def generate_evidence_id() -> str:
    return str(uuid.uuid4())


class Evidence(Base):
    __tablename__ = "evidence"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_evidence_id
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str | None] = mapped_column(Text, nullable=True)
    email: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Normalized client address; only exposed to admins
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    status: Mapped[EvidenceStatus] = mapped_column(
        SAEnum(EvidenceStatus), default=EvidenceStatus.submitted, nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )


class EvidenceIpBan(Base):
    __tablename__ = "evidence_ip_bans"

    ip_address: Mapped[str] = mapped_column(String(64), primary_key=True)
    reason: Mapped[str | None] = mapped_column(String(200), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
