# /artforge/api/credits.py
"""Credits and billing API endpoints."""

from typing import List

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from artforge.api.deps import get_current_account, get_settings, get_stripe_client
from artforge.core.config import Settings
from artforge.core.database import get_db
from artforge.models.account import Account
from artforge.schemas.credits import (
    CheckoutRequest,
    CheckoutResponse,
    CreditBalance,
    CreditPackageItem,
    CreditTransactionItem,
    GenerationCost,
    PaymentSessionStatus,
    TransactionHistory,
    WebhookAck,
)
from artforge.services import checkout_service, ledger_service, webhook_service
from artforge.services.generation_service import GENERATION_COSTS

router = APIRouter(prefix="/api/credits", tags=["credits"])


# ─────────────────────────────────────────────
# ENDPOINTS
# ─────────────────────────────────────────────

@router.get("/balance", response_model=CreditBalance)
async def get_credit_balance(
        account: Account = Depends(get_current_account),
        db: AsyncSession = Depends(get_db),
):
    """Get current credit balance for the authenticated user."""
    fresh = await ledger_service.get_account(db, account.id)
    return CreditBalance(
        credits=fresh.credits,
        total_purchased=fresh.total_purchased,
        total_consumed=fresh.total_consumed,
    )


@router.get("/history", response_model=TransactionHistory)
async def get_credit_history(
        limit: int = Query(50, ge=1, le=200),
        offset: int = Query(0, ge=0),
        account: Account = Depends(get_current_account),
        db: AsyncSession = Depends(get_db),
):
    """Get credit transaction history (newest first)."""
    rows = await ledger_service.list_transactions(db, account.id, limit, offset)
    return TransactionHistory(
        items=[
            CreditTransactionItem(
                id=t.id,
                kind=t.kind,
                amount=t.amount,
                description=t.description,
                ref_id=t.ref_id,
                created_at=t.created_at,
            )
            for t in rows
        ],
        limit=limit,
        offset=offset,
    )


@router.get("/packages", response_model=List[CreditPackageItem])
async def get_credit_packages(db: AsyncSession = Depends(get_db)):
    """Get available credit packages."""
    return [
        CreditPackageItem(
            id=p.id,
            name=p.name,
            credits=p.credits,
            price_cents=p.price_cents,
            price_display=f"${p.price_cents / 100:.2f}",
            discount_percentage=p.discount_percentage,
            popular=bool(p.popular),
        )
        for p in await checkout_service.list_packages(db)
    ]


@router.get("/costs", response_model=List[GenerationCost])
async def get_generation_costs():
    return [
        GenerationCost(content_type=content_type, quality=quality, credits=credits)
        for (content_type, quality), credits in GENERATION_COSTS.items()
    ]


@router.post("/checkout", response_model=CheckoutResponse)
async def create_checkout(
        req: CheckoutRequest,
        account: Account = Depends(get_current_account),
        db: AsyncSession = Depends(get_db),
        stripe_client=Depends(get_stripe_client),
        settings: Settings = Depends(get_settings),
):
    """Open a Stripe checkout for a credit package. Credits arrive via the webhook."""
    session, checkout_url = await checkout_service.create_checkout(
        db,
        stripe_client,
        account,
        req.package_id,
        settings.frontend_url,
        is_test=settings.stripe_is_test,
    )
    return CheckoutResponse(session_id=session.external_session_id, checkout_url=checkout_url)


@router.get("/sessions/{session_id}", response_model=PaymentSessionStatus)
async def get_payment_session(
        session_id: str,
        account: Account = Depends(get_current_account),
        db: AsyncSession = Depends(get_db),
):
    """Polled by the payment-success page until the webhook completes the session."""
    s = await checkout_service.get_session_status(db, account.id, session_id)
    return PaymentSessionStatus(
        session_id=s.external_session_id,
        package_id=s.package_id,
        credits=s.credits,
        amount_cents=s.amount_cents,
        status=s.status,
        created_at=s.created_at,
        completed_at=s.completed_at,
    )


@router.post("/webhook/stripe", response_model=WebhookAck)
async def stripe_webhook(
        request: Request,
        db: AsyncSession = Depends(get_db),
        settings: Settings = Depends(get_settings),
):
    """Stripe webhook to finalize credit purchases."""
    payload = await request.body()
    await webhook_service.handle_webhook_event(
        db,
        payload,
        request.headers.get("stripe-signature"),
        settings.stripe_webhook_secret,
    )
    return WebhookAck()
