# FILE: artforge/services/checkout_service.py
from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime
from typing import Any, List, Tuple

import stripe
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from artforge.core.errors import PackageNotFound, PaymentProviderError, SessionNotFound
from artforge.core.logging_config import STRIPE_LOGGER_NAME
from artforge.models.account import Account
from artforge.models.credit_package import CreditPackage
from artforge.models.payment_session import PaymentSession

stripe_logger = logging.getLogger(STRIPE_LOGGER_NAME)

# ─────────────────────────────────────────────
# DEFAULT PACKAGES (seeded into an empty table)
# ─────────────────────────────────────────────

DEFAULT_PACKAGES = [
    {"id": "starter", "name": "Starter", "credits": 50, "price_cents": 999, "popular": False},
    {"id": "creator", "name": "Creator", "credits": 150, "price_cents": 2499, "popular": True},
    {"id": "professional", "name": "Professional", "credits": 500, "price_cents": 7999, "popular": False},
]


async def seed_default_packages(db: AsyncSession) -> int:
    count = (await db.execute(select(func.count(CreditPackage.id)))).scalar_one()
    if count:
        return 0
    for pkg in DEFAULT_PACKAGES:
        db.add(CreditPackage(active=True, created_at=datetime.utcnow(), **pkg))
    await db.commit()
    return len(DEFAULT_PACKAGES)


async def list_packages(db: AsyncSession) -> List[CreditPackage]:
    result = await db.execute(
        select(CreditPackage)
        .where(CreditPackage.active.is_(True))
        .order_by(CreditPackage.price_cents)
    )
    return list(result.scalars().all())


async def get_package(db: AsyncSession, package_id: str) -> CreditPackage:
    package = await db.get(CreditPackage, package_id)
    if package is None or not package.active:
        raise PackageNotFound(f"Unknown credit package: {package_id}")
    return package


def _line_item(package: CreditPackage) -> dict:
    if package.stripe_price_id:
        return {"price": package.stripe_price_id, "quantity": 1}
    return {
        "price_data": {
            "currency": "usd",
            "product_data": {"name": f"{package.name} - {package.credits} credits"},
            "unit_amount": package.price_cents,
        },
        "quantity": 1,
    }


async def create_checkout(
    db: AsyncSession,
    stripe_client: Any,
    account: Account,
    package_id: str,
    frontend_url: str,
    is_test: bool = False,
) -> Tuple[PaymentSession, str]:
    """Open a Stripe Checkout Session and record it as pending."""
    package = await get_package(db, package_id)

    params = {
        "mode": "payment",
        "payment_method_types": ["card"],
        "customer_email": account.email,
        "line_items": [_line_item(package)],
        "success_url": f"{frontend_url}/payment-success?session_id={{CHECKOUT_SESSION_ID}}",
        "cancel_url": f"{frontend_url}/credits",
        "metadata": {
            "account_id": account.id,
            "package_id": package.id,
            "credits": str(package.credits),
        },
    }
    try:
        session = await asyncio.to_thread(stripe_client.checkout.sessions.create, params=params)
    except stripe.StripeError as exc:
        stripe_logger.error(f"Stripe session creation failed for account {account.id}", exc_info=exc)
        raise PaymentProviderError("Stripe session creation failed")

    payment_session = PaymentSession(
        id=str(uuid.uuid4()),
        account_id=account.id,
        external_session_id=session.id,
        package_id=package.id,
        credits=package.credits,
        amount_cents=package.price_cents,
        is_test=is_test,
        status="pending",
        created_at=datetime.utcnow(),
    )
    db.add(payment_session)
    await db.commit()
    stripe_logger.info(
        f"Checkout {session.id} opened for account {account.id}: {package.credits} credits, {package.price_cents} cents"
    )
    return payment_session, session.url


async def get_session_status(db: AsyncSession, account_id: str, external_session_id: str) -> PaymentSession:
    session = (
        await db.execute(
            select(PaymentSession)
            .where(PaymentSession.external_session_id == external_session_id)
            .execution_options(populate_existing=True)
        )
    ).scalar_one_or_none()
    if session is None or session.account_id != account_id:
        raise SessionNotFound(external_session_id)
    return session
