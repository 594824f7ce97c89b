# FILE: artforge/services/generation_service.py
"""
One content-generation attempt: validate, check balance, call the provider,
persist the completed row, debit the ledger.

States: pending -> completed | failed. Only completed rows reach the
database; a retry by the user is a new attempt with a new id.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from artforge.core.errors import (
    AppError,
    GenerationProviderError,
    InsufficientCredits,
    PersistenceError,
    UnsupportedOption,
)
from artforge.models.generation import Generation
from artforge.services import ledger_service
from artforge.services.image_provider import (
    GenerationFailure,
    GenerationProvider,
    GenerationResult,
    ProviderRequest,
)
from artforge.services.ledger_service import TransactionKind
from artforge.services.prompt_service import build_effective_prompt, validate_prompt

logger = logging.getLogger("artforge.generation")

CONTENT_TYPES = ("image", "video")
QUALITIES = ("standard", "hd")
IMAGE_SIZES = ("1024x1024", "1792x1024", "1024x1792")
DEFAULT_SIZE = "1024x1024"

GENERATION_COSTS: Dict[Tuple[str, str], int] = {
    ("image", "standard"): 3,
    ("image", "hd"): 8,
    ("video", "standard"): 15,
    ("video", "hd"): 25,
}


@dataclass(frozen=True)
class GenerationParams:
    """
    Options for one generation.

    quality defaults to "standard" and content_type to "image". size applies
    to images only and defaults to 1024x1024; it is ignored for videos.
    category and style are optional prompt modifiers.
    """
    prompt: str
    quality: str = "standard"
    content_type: str = "image"
    size: Optional[str] = None
    category: Optional[str] = None
    style: Optional[str] = None

    @property
    def effective_size(self) -> Optional[str]:
        if self.content_type != "image":
            return None
        return self.size or DEFAULT_SIZE


@dataclass
class GenerationOutcome:
    record: Generation
    payload: str
    credits_used: int
    debited: bool


def compute_cost(content_type: str, quality: str) -> int:
    try:
        return GENERATION_COSTS[(content_type, quality)]
    except KeyError:
        raise UnsupportedOption(f"Unsupported generation option: {content_type}/{quality}")


async def _call_with_retry(
    provider: GenerationProvider,
    request: ProviderRequest,
    retry_delay: float,
) -> GenerationResult:
    result = await provider.generate(request)
    if isinstance(result, GenerationFailure) and result.retryable:
        logger.info(f"Retrying {request.content_type} generation after {result.kind.value} in {retry_delay}s")
        await asyncio.sleep(retry_delay)
        result = await provider.generate(request)
    return result


async def submit(
    db: AsyncSession,
    provider: GenerationProvider,
    account_id: str,
    params: GenerationParams,
    retry_delay: float = 2.0,
) -> GenerationOutcome:
    prompt = validate_prompt(params.prompt)
    cost = compute_cost(params.content_type, params.quality)

    available = await ledger_service.get_balance(db, account_id)
    if available < cost:
        raise InsufficientCredits(required=cost, available=available)

    record = Generation(
        id=str(uuid.uuid4()),
        account_id=account_id,
        prompt=prompt,
        effective_prompt=build_effective_prompt(prompt, params.category, params.style),
        content_type=params.content_type,
        quality=params.quality,
        size=params.effective_size,
        category=params.category,
        style=params.style,
        cost=cost,
        status="pending",
    )
    logger.info(f"Generating {record.content_type} for account {account_id}: {prompt[:100]}")

    result = await _call_with_retry(
        provider,
        ProviderRequest(
            prompt=record.effective_prompt,
            quality=record.quality,
            content_type=record.content_type,
            size=record.size,
        ),
        retry_delay,
    )
    if isinstance(result, GenerationFailure):
        record.status = "failed"
        raise GenerationProviderError(result.kind, result.message)

    record.status = "completed"
    record.result_payload = result.data_url
    record.media_type = result.media_type
    record.created_at = datetime.utcnow()
    try:
        db.add(record)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        record.status = "failed"
        logger.error(f"Failed to save generation {record.id} for account {account_id}: {exc}")
        raise PersistenceError("Failed to save generated content") from exc

    # Content is already produced: a failed debit is logged, not surfaced.
    debited = True
    try:
        await ledger_service.apply_transaction(
            db,
            account_id,
            -cost,
            TransactionKind.USAGE,
            f"{record.content_type.capitalize()} generation: {prompt[:50]}...",
            ref_id=record.id,
        )
    except AppError as exc:
        debited = False
        logger.error(f"Credit deduction failed for generation {record.id} ({cost} credits): {exc.message}")

    return GenerationOutcome(record=record, payload=result.data_url, credits_used=cost, debited=debited)


async def list_generations(
    db: AsyncSession,
    account_id: str,
    content_type: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[Generation]:
    stmt = select(Generation).where(
        Generation.account_id == account_id,
        Generation.status == "completed",
    )
    if content_type:
        stmt = stmt.where(Generation.content_type == content_type)
    stmt = stmt.order_by(Generation.created_at.desc()).offset(offset).limit(limit)
    return list((await db.execute(stmt)).scalars().all())


async def get_generation(db: AsyncSession, account_id: str, generation_id: str) -> Optional[Generation]:
    return (
        await db.execute(
            select(Generation).where(
                Generation.id == generation_id,
                Generation.account_id == account_id,
            )
        )
    ).scalar_one_or_none()
