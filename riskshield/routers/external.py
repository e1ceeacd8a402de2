from __future__ import annotations

from fastapi import APIRouter, Depends

from riskshield.core.response import DataResponse
from riskshield.domain.user import User
from riskshield.routers.deps import get_current_user
from riskshield.schemas.external import AbnLookupOut
from riskshield.services.external import lookup_abn

router = APIRouter(prefix="/external", tags=["External"])


@router.get("/abn/{abn}", response_model=DataResponse[AbnLookupOut])
async def abn_lookup(abn: str, user: User = Depends(get_current_user)):
    return {"data": AbnLookupOut.model_validate(lookup_abn(abn))}
