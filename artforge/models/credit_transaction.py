# /artforge/models/credit_transaction.py
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, ForeignKey, DateTime, Index

from artforge.core.database import Base


class CreditTransaction(Base):
    """Credit transactions ledger - append-only, one row per balance change."""
    __tablename__ = "credit_transactions"
    __table_args__ = (
        Index("ix_credit_transactions_kind_ref", "kind", "ref_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[str] = mapped_column(String(36), ForeignKey("accounts.id", ondelete="CASCADE"), index=True)

    # Kind: purchase, usage, refund
    kind: Mapped[str] = mapped_column(String(20))

    # Positive for purchase/refund, negative for usage
    amount: Mapped[int] = mapped_column(Integer)

    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Reference ID (payment session id, generation id)
    ref_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
