# FILE: artforge/services/ledger_service.py
"""
Credit ledger: the only writer of Account balances.

Every balance change is one database transaction that moves the counters with
a single UPDATE expression and appends one CreditTransaction row.
"""
from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from artforge.core.errors import AccountNotFound, InvalidTransaction, PersistenceError
from artforge.models.account import Account
from artforge.models.credit_transaction import CreditTransaction

logger = logging.getLogger("artforge.ledger")


class TransactionKind(str, Enum):
    PURCHASE = "purchase"
    USAGE = "usage"
    REFUND = "refund"


def _counter_deltas(amount: int, kind: TransactionKind) -> tuple[int, int]:
    """Return (purchased_delta, consumed_delta) for a signed amount."""
    if amount == 0:
        raise InvalidTransaction("Transaction amount must be non-zero")
    if kind is TransactionKind.USAGE:
        if amount > 0:
            raise InvalidTransaction("Usage transactions must be negative")
        return 0, -amount
    if amount < 0:
        raise InvalidTransaction(f"{kind.value.capitalize()} transactions must be positive")
    # Refunds re-grant credits; total_consumed never decreases.
    return amount, 0


async def apply_transaction(
    db: AsyncSession,
    account_id: str,
    amount: int,
    kind: TransactionKind | str,
    description: str,
    ref_id: Optional[str] = None,
) -> CreditTransaction:
    """
    Atomically move the balance by `amount` and append the ledger row.

    Does not check for sufficient funds: usage is debited after the paid
    action already succeeded, and callers check the balance up front.
    """
    try:
        kind = TransactionKind(kind)
    except ValueError:
        raise InvalidTransaction(f"Unknown transaction kind: {kind}")
    purchased_delta, consumed_delta = _counter_deltas(amount, kind)

    try:
        result = await db.execute(
            update(Account)
            .where(Account.id == account_id)
            .values(
                credits=Account.credits + amount,
                total_purchased=Account.total_purchased + purchased_delta,
                total_consumed=Account.total_consumed + consumed_delta,
                updated_at=datetime.utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await db.rollback()
            raise AccountNotFound(account_id)

        entry = CreditTransaction(
            account_id=account_id,
            kind=kind.value,
            amount=amount,
            description=(description or "")[:255],
            ref_id=ref_id,
            created_at=datetime.utcnow(),
        )
        db.add(entry)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error(f"Ledger write failed for account {account_id} ({kind.value} {amount}): {exc}")
        raise PersistenceError("Failed to update credit balance") from exc

    logger.info(f"Applied {kind.value} {amount:+d} to account {account_id} (ref={ref_id})")
    return entry


async def get_account(db: AsyncSession, account_id: str) -> Account:
    # populate_existing: balances are changed by UPDATE statements, not the ORM
    account = (
        await db.execute(
            select(Account)
            .where(Account.id == account_id)
            .execution_options(populate_existing=True)
        )
    ).scalar_one_or_none()
    if account is None:
        raise AccountNotFound(account_id)
    return account


async def get_balance(db: AsyncSession, account_id: str) -> int:
    return (await get_account(db, account_id)).credits


async def ensure_account(
    db: AsyncSession,
    account_id: str,
    email: str,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
) -> Account:
    """Provision the profile row for an identity on first sight."""
    account = await db.get(Account, account_id)
    if account is not None:
        return account

    account = Account(
        id=account_id,
        email=email,
        first_name=first_name,
        last_name=last_name,
        credits=0,
        total_purchased=0,
        total_consumed=0,
        created_at=datetime.utcnow(),
        updated_at=datetime.utcnow(),
    )
    db.add(account)
    try:
        await db.commit()
    except SQLAlchemyError:
        # Two first requests raced on the insert; the other one won
        await db.rollback()
        account = await db.get(Account, account_id)
        if account is None:
            raise
    else:
        logger.info(f"Provisioned account {account_id}")
    return account


async def list_transactions(
    db: AsyncSession,
    account_id: str,
    limit: int = 50,
    offset: int = 0,
) -> List[CreditTransaction]:
    result = await db.execute(
        select(CreditTransaction)
        .where(CreditTransaction.account_id == account_id)
        .order_by(CreditTransaction.created_at.desc(), CreditTransaction.id.desc())
        .offset(offset)
        .limit(limit)
    )
    return list(result.scalars().all())
