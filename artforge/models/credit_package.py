# /artforge/models/credit_package.py
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, DateTime, Boolean

from artforge.core.database import Base


class CreditPackage(Base):
    """Credit packages offered at checkout."""
    __tablename__ = "credit_packages"

    # Package slug: starter, creator, professional
    id: Mapped[str] = mapped_column(String(36), primary_key=True)

    name: Mapped[str] = mapped_column(String(100))
    credits: Mapped[int] = mapped_column(Integer)
    price_cents: Mapped[int] = mapped_column(Integer)
    discount_percentage: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Optional pre-created Stripe price; otherwise price_data is sent inline
    stripe_price_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    active: Mapped[bool] = mapped_column(Boolean, default=True)
    popular: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
