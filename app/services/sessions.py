from datetime import datetime, timezone
from fastapi import Depends, HTTPException, Request
from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.database import get_db
from app.models.session import AdminSession

ADMIN_ROLE = "admin"


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        return None
    return parts[1]


async def authenticate_request(db: AsyncSession, request: Request) -> AdminSession | None:
    """Look up a live session for the request's Bearer token."""
    token = _bearer_token(request.headers.get("authorization"))
    if token is None:
        return None

    result = await db.execute(
        select(AdminSession).where(
            and_(
                AdminSession.token == token,
                AdminSession.expires_at > datetime.now(timezone.utc),
            )
        )
    )
    return result.scalars().first()


async def require_admin(request: Request, db: AsyncSession = Depends(get_db)) -> AdminSession:
    session = await authenticate_request(db, request)
    if session is None or session.role != ADMIN_ROLE:
        raise HTTPException(
            status_code=401,
            detail={"error_code": "UNAUTHORIZED", "message": "Unauthorized"},
        )
    return session
