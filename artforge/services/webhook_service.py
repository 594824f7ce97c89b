# FILE: artforge/services/webhook_service.py
"""
Stripe webhook reconciliation.

The only path by which a PaymentSession becomes completed and purchase
credits are granted. Stripe delivers at least once, so every side effect is
keyed on the checkout session id:

1. verify the Stripe-Signature header against the raw body
2. ignore every event other than checkout.session.completed
3. claim the session with a conditional UPDATE (status != completed) and
   commit the claim
4. only the delivery that won the claim grants the credits

A crash between 3 and 4 leaves a completed session without its purchase
transaction. reconcile_unfunded_sessions() repairs those.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import stripe
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from artforge.core.errors import AppError, InvalidPayload, InvalidSignature, PersistenceError, SessionNotFound
from artforge.core.logging_config import STRIPE_LOGGER_NAME
from artforge.models.credit_transaction import CreditTransaction
from artforge.models.payment_session import PaymentSession
from artforge.services import ledger_service
from artforge.services.ledger_service import TransactionKind

stripe_logger = logging.getLogger(STRIPE_LOGGER_NAME)

CHECKOUT_COMPLETED = "checkout.session.completed"
SIGNATURE_TOLERANCE_SECONDS = 300
RECONCILE_GRACE = timedelta(minutes=10)


@dataclass(frozen=True)
class WebhookOutcome:
    event_type: str
    handled: bool
    credited: bool
    session_id: Optional[str] = None


def verify_event(
    raw_body: bytes,
    signature_header: Optional[str],
    secret: str,
    tolerance: int = SIGNATURE_TOLERANCE_SECONDS,
) -> Dict[str, Any]:
    if not secret:
        raise InvalidSignature("Stripe webhook not configured")
    if not signature_header:
        raise InvalidSignature("Missing Stripe-Signature header")
    try:
        payload = raw_body.decode("utf-8")
    except UnicodeDecodeError:
        raise InvalidPayload("Webhook body is not valid UTF-8")

    try:
        stripe.WebhookSignature.verify_header(payload, signature_header, secret, tolerance)
    except stripe.SignatureVerificationError as exc:
        stripe_logger.warning(f"Rejected webhook with invalid signature: {exc}")
        raise InvalidSignature("Invalid webhook signature")

    try:
        event = json.loads(payload)
    except ValueError:
        raise InvalidPayload("Webhook body is not valid JSON")
    if not isinstance(event, dict) or not isinstance(event.get("type"), str):
        raise InvalidPayload("Webhook body is not a Stripe event")
    return event


async def _claim_session(db: AsyncSession, external_session_id: str) -> bool:
    """Flip pending -> completed. True only for the caller that did the flip."""
    try:
        result = await db.execute(
            update(PaymentSession)
            .where(
                PaymentSession.external_session_id == external_session_id,
                PaymentSession.status != "completed",
            )
            .values(status="completed", completed_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        stripe_logger.error(f"Failed to mark payment session {external_session_id} completed: {exc}")
        raise PersistenceError("Failed to update payment session") from exc
    return result.rowcount == 1


async def handle_webhook_event(
    db: AsyncSession,
    raw_body: bytes,
    signature_header: Optional[str],
    secret: str,
) -> WebhookOutcome:
    event = verify_event(raw_body, signature_header, secret)
    event_type = event["type"]
    stripe_logger.info(f"Webhook event: {event_type} ({event.get('id')})")

    if event_type != CHECKOUT_COMPLETED:
        return WebhookOutcome(event_type=event_type, handled=False, credited=False)

    data = event.get("data") or {}
    checkout = data.get("object") if isinstance(data, dict) else None
    if not isinstance(checkout, dict):
        raise InvalidPayload("checkout.session.completed without a session object")
    external_session_id = checkout.get("id")
    if not external_session_id or not isinstance(external_session_id, str):
        raise InvalidPayload("checkout.session.completed without a session id")

    session = (
        await db.execute(
            select(PaymentSession)
            .where(PaymentSession.external_session_id == external_session_id)
            .execution_options(populate_existing=True)
        )
    ).scalar_one_or_none()
    if session is None:
        stripe_logger.error(f"Payment session not found: {external_session_id}")
        raise SessionNotFound(external_session_id)

    if session.status == "completed":
        stripe_logger.info(f"Duplicate delivery for {external_session_id}, already completed")
        return WebhookOutcome(event_type, handled=True, credited=False, session_id=external_session_id)

    if not await _claim_session(db, external_session_id):
        stripe_logger.info(f"Concurrent delivery for {external_session_id} lost the claim")
        return WebhookOutcome(event_type, handled=True, credited=False, session_id=external_session_id)

    try:
        await ledger_service.apply_transaction(
            db,
            session.account_id,
            session.credits,
            TransactionKind.PURCHASE,
            f"Purchased {session.credits} credits",
            ref_id=session.id,
        )
    except Exception:
        stripe_logger.critical(
            f"Session {external_session_id} completed but {session.credits} credits were not granted "
            f"to account {session.account_id}; reconciliation required"
        )
        raise

    stripe_logger.info(f"Successfully added {session.credits} credits to account {session.account_id}")
    return WebhookOutcome(event_type, handled=True, credited=True, session_id=external_session_id)


async def find_unfunded_sessions(db: AsyncSession, grace: timedelta = RECONCILE_GRACE) -> List[PaymentSession]:
    """Completed sessions older than `grace` with no purchase transaction."""
    funded = (
        select(CreditTransaction.ref_id)
        .where(
            CreditTransaction.kind == TransactionKind.PURCHASE.value,
            CreditTransaction.ref_id.is_not(None),
        )
    )
    result = await db.execute(
        select(PaymentSession)
        .where(
            PaymentSession.status == "completed",
            PaymentSession.completed_at <= datetime.utcnow() - grace,
            PaymentSession.id.not_in(funded),
        )
        .order_by(PaymentSession.completed_at)
    )
    return list(result.scalars().all())


async def reconcile_unfunded_sessions(db: AsyncSession, grace: timedelta = RECONCILE_GRACE) -> List[str]:
    """Grant the credits of sessions that were claimed but never credited."""
    repaired: List[str] = []
    # Plain values: a failed ledger write rolls back and expires the loaded rows
    pending = [
        (s.id, s.external_session_id, s.account_id, s.credits)
        for s in await find_unfunded_sessions(db, grace)
    ]
    for session_id, external_session_id, account_id, credits in pending:
        try:
            await ledger_service.apply_transaction(
                db,
                account_id,
                credits,
                TransactionKind.PURCHASE,
                f"Purchased {credits} credits (reconciled)",
                ref_id=session_id,
            )
        except AppError as exc:
            # Left for the next run; later sessions are still repaired
            stripe_logger.error(f"Could not reconcile session {external_session_id}: {exc.message}")
            continue
        stripe_logger.warning(
            f"Reconciled session {external_session_id}: granted {credits} credits to account {account_id}"
        )
        repaired.append(external_session_id)
    return repaired
