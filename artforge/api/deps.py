# FILE: artforge/api/deps.py

import logging
from typing import Any

import jwt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from openai import AsyncOpenAI
from sqlalchemy.ext.asyncio import AsyncSession

from artforge.core.config import Settings
from artforge.core.database import get_db
from artforge.models.account import Account
from artforge.services import ledger_service
from artforge.services.auth_service import decode_identity
from artforge.services.image_provider import GenerationProvider

logger = logging.getLogger("artforge.deps")

security = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_current_account(
        credentials: HTTPAuthorizationCredentials = Depends(security),
        db: AsyncSession = Depends(get_db),
        settings: Settings = Depends(get_settings),
) -> Account:
    if not credentials or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        identity = decode_identity(credentials.credentials, settings.jwt_secret, settings.jwt_algorithm)
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")

    return await ledger_service.ensure_account(
        db,
        identity.account_id,
        identity.email,
        first_name=identity.first_name,
        last_name=identity.last_name,
    )


def _openai_unavailable() -> HTTPException:
    logger.error("OPENAI_API_KEY not configured (.env).")
    return HTTPException(status_code=503, detail="Service temporarily unavailable")


def get_openai(request: Request) -> AsyncOpenAI:
    client = request.app.state.openai_client
    if client is None:
        raise _openai_unavailable()
    return client


def get_generation_provider(request: Request) -> GenerationProvider:
    provider = request.app.state.generation_provider
    if provider is None:
        raise _openai_unavailable()
    return provider


def get_stripe_client(request: Request) -> Any:
    client = request.app.state.stripe_client
    if client is None:
        raise HTTPException(status_code=500, detail="Stripe is not configured")
    return client
