# =========================================================
# FILE: artforge/api/generate.py
# =========================================================

from datetime import timezone
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from openai import AsyncOpenAI
from sqlalchemy.ext.asyncio import AsyncSession

from artforge.api.deps import get_current_account, get_generation_provider, get_openai, get_settings
from artforge.core.config import Settings
from artforge.core.database import get_db
from artforge.models.account import Account
from artforge.models.generation import Generation
from artforge.schemas.generate import (
    EnhancePromptRequest,
    EnhancePromptResponse,
    GenerateRequest,
    GenerateResponse,
    GenerationItem,
    GenerationList,
)
from artforge.services import generation_service
from artforge.services.generation_service import GenerationParams
from artforge.services.image_provider import GenerationProvider
from artforge.services.prompt_service import enhance_prompt

router = APIRouter(prefix="/api", tags=["generate"])


def _to_item(g: Generation, include_payload: bool = True) -> GenerationItem:
    return GenerationItem(
        id=g.id,
        prompt=g.prompt,
        content_type=g.content_type,
        quality=g.quality,
        size=g.size,
        category=g.category,
        style=g.style,
        cost=g.cost,
        status=g.status,
        result_url=g.result_payload if include_payload else None,
        created_at=g.created_at.replace(tzinfo=timezone.utc).isoformat(),
    )


@router.post("/generate", response_model=GenerateResponse)
async def generate(
        req: GenerateRequest,
        account: Account = Depends(get_current_account),
        db: AsyncSession = Depends(get_db),
        provider: GenerationProvider = Depends(get_generation_provider),
        settings: Settings = Depends(get_settings),
):
    outcome = await generation_service.submit(
        db,
        provider,
        account.id,
        GenerationParams(
            prompt=req.prompt,
            quality=req.quality,
            content_type=req.content_type,
            size=req.size,
            category=req.category,
            style=req.style,
        ),
        retry_delay=settings.generation_retry_delay_seconds,
    )
    return GenerateResponse(
        generation=_to_item(outcome.record, include_payload=False),
        content_url=outcome.payload,
        credits_used=outcome.credits_used,
    )


@router.get("/generations", response_model=GenerationList)
async def generations(
        content_type: Optional[Literal["image", "video"]] = None,
        limit: int = Query(50, ge=1, le=200),
        offset: int = Query(0, ge=0),
        account: Account = Depends(get_current_account),
        db: AsyncSession = Depends(get_db),
):
    rows = await generation_service.list_generations(db, account.id, content_type, limit, offset)
    return GenerationList(items=[_to_item(g) for g in rows], limit=limit, offset=offset)


@router.get("/generations/{gid}", response_model=GenerationItem)
async def generation(
        gid: str,
        account: Account = Depends(get_current_account),
        db: AsyncSession = Depends(get_db),
):
    g = await generation_service.get_generation(db, account.id, gid)
    if not g:
        raise HTTPException(status_code=404, detail="Generation not found")
    return _to_item(g)


@router.post("/enhance-prompt", response_model=EnhancePromptResponse)
async def enhance(
        req: EnhancePromptRequest,
        account: Account = Depends(get_current_account),
        client: AsyncOpenAI = Depends(get_openai),
        settings: Settings = Depends(get_settings),
):
    enhanced = await enhance_prompt(client, req.prompt, settings.openai_prompt_model)
    return EnhancePromptResponse(enhanced_prompt=enhanced)
