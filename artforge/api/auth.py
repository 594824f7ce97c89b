# FILE: artforge/api/auth.py
from datetime import timezone

from fastapi import APIRouter, Depends

from artforge.api.deps import get_current_account
from artforge.models.account import Account
from artforge.schemas.auth import AccountResponse

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.get("/me", response_model=AccountResponse)
async def auth_me(account: Account = Depends(get_current_account)):
    return AccountResponse(
        id=account.id,
        email=account.email,
        first_name=account.first_name,
        last_name=account.last_name,
        credits=account.credits,
        total_purchased=account.total_purchased,
        total_consumed=account.total_consumed,
        created_at=account.created_at.replace(tzinfo=timezone.utc).isoformat(),
    )
