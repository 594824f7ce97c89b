# /artforge/models/generation.py
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, ForeignKey, Integer, DateTime
from sqlalchemy.dialects.mysql import LONGTEXT

from artforge.core.database import Base

LongText = Text().with_variant(LONGTEXT(), "mysql")


class Generation(Base):
    __tablename__ = "generations"
    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    account_id: Mapped[str] = mapped_column(String(36), ForeignKey("accounts.id", ondelete="CASCADE"), index=True)

    prompt: Mapped[str] = mapped_column(Text)
    effective_prompt: Mapped[str] = mapped_column(Text)

    # image | video
    content_type: Mapped[str] = mapped_column(String(10), default="image")
    # standard | hd
    quality: Mapped[str] = mapped_column(String(10), default="standard")
    size: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    style: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)

    cost: Mapped[int] = mapped_column(Integer)

    # pending | completed | failed
    status: Mapped[str] = mapped_column(String(20), default="pending")

    # data: URL with the base64 content returned by the provider
    result_payload: Mapped[Optional[str]] = mapped_column(LongText, nullable=True)
    media_type: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
