# /artforge/models/payment_session.py
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, ForeignKey, DateTime, Boolean

from artforge.core.database import Base


class PaymentSession(Base):
    """Checkout sessions; completed only by the Stripe webhook."""
    __tablename__ = "payment_sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    account_id: Mapped[str] = mapped_column(String(36), ForeignKey("accounts.id", ondelete="CASCADE"), index=True)

    # Stripe checkout session id
    external_session_id: Mapped[str] = mapped_column(String(190), unique=True, index=True)

    package_id: Mapped[str] = mapped_column(String(36), ForeignKey("credit_packages.id"))
    credits: Mapped[int] = mapped_column(Integer)
    amount_cents: Mapped[int] = mapped_column(Integer)
    is_test: Mapped[bool] = mapped_column(Boolean, default=False)

    # Status: pending, completed
    status: Mapped[str] = mapped_column(String(20), default="pending")

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
