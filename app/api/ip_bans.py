import logging
from datetime import datetime
from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.services import reputation
from app.services.sessions import require_admin

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/evidence/ip-bans",
    tags=["ip-bans"],
    dependencies=[Depends(require_admin)],
)


class BanOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    ip_address: str
    reason: str | None = None
    created_at: datetime


class BanRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    ip_address: str | None = None
    reason: str | None = None


def _address_required() -> HTTPException:
    return HTTPException(
        status_code=400,
        detail={"error_code": "IP_REQUIRED", "message": "A valid IP address is required."},
    )


@router.get("")
async def list_bans(db: AsyncSession = Depends(get_db)):
    bans = await reputation.list_bans(db)
    return {"bans": [BanOut.model_validate(ban) for ban in bans]}


@router.post("")
async def add_ban(req: BanRequest, db: AsyncSession = Depends(get_db)):
    ip_address = reputation.normalize_address(req.ip_address)
    if not ip_address:
        raise _address_required()

    ban = await reputation.ban_address(db, ip_address, req.reason)
    return {"ban": BanOut.model_validate(ban)}


@router.delete("", status_code=204)
async def remove_ban(
    req: BanRequest | None = Body(None),
    ip_address_param: str | None = Query(None, alias="ipAddress"),
    db: AsyncSession = Depends(get_db),
):
    """Address comes from the JSON body or the ipAddress query parameter."""
    raw = (req.ip_address if req else None) or ip_address_param
    ip_address = reputation.normalize_address(raw)
    if not ip_address:
        raise _address_required()

    await reputation.unban_address(db, ip_address)
    return Response(status_code=204)
