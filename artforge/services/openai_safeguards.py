# FILE: artforge/services/openai_safeguards.py
from __future__ import annotations

import asyncio
from typing import Any

import httpx
import openai

from artforge.core.errors import ProviderErrorKind

# Provider calls live in image_provider.py / prompt_service.py.
# This file only does: map exceptions to a stable kind + user-facing text.

USER_MESSAGES = {
    ProviderErrorKind.POLICY_VIOLATION: "Content policy violation. Please modify your prompt and try again.",
    ProviderErrorKind.RATE_LIMITED: "Rate limit exceeded. Please wait a moment and try again.",
    ProviderErrorKind.TIMEOUT: "Request timed out. Please try again.",
    ProviderErrorKind.TRANSPORT: "Service temporarily unavailable. Please try again later.",
    ProviderErrorKind.UNKNOWN: "Generation failed unexpectedly.",
}

RETRYABLE_KINDS = frozenset({
    ProviderErrorKind.RATE_LIMITED,
    ProviderErrorKind.TIMEOUT,
    ProviderErrorKind.TRANSPORT,
})


def _safe_str(x: Any) -> str:
    try:
        return str(x)
    except Exception:
        return "<unprintable>"


def _looks_like_policy(msg: str) -> bool:
    m = msg.lower()
    return (
            "content_policy" in m
            or "content policy" in m
            or "safety system" in m
            or "moderation" in m
            or "disallowed" in m
    )


def _looks_like_rate_limit(msg: str) -> bool:
    m = msg.lower()
    return "rate limit" in m or "too many requests" in m or "quota" in m


def _looks_like_timeout(msg: str) -> bool:
    m = msg.lower()
    return "timeout" in m or "timed out" in m


def classify_provider_exception(err: BaseException) -> ProviderErrorKind:
    """
    Map whatever SDK/HTTP exception to a stable kind.
    Typed SDK errors first, message heuristics as the fallback.
    """
    if isinstance(err, (openai.APITimeoutError, httpx.TimeoutException, asyncio.TimeoutError)):
        return ProviderErrorKind.TIMEOUT
    if isinstance(err, openai.RateLimitError):
        return ProviderErrorKind.RATE_LIMITED
    if isinstance(err, openai.APIConnectionError) or isinstance(err, httpx.TransportError):
        return ProviderErrorKind.TRANSPORT
    if isinstance(err, openai.APIStatusError):
        if err.status_code == 429:
            return ProviderErrorKind.RATE_LIMITED
        if err.status_code >= 500:
            return ProviderErrorKind.TRANSPORT
        if err.status_code == 400 and _looks_like_policy(_safe_str(err)):
            return ProviderErrorKind.POLICY_VIOLATION

    msg = _safe_str(err)
    if _looks_like_policy(msg):
        return ProviderErrorKind.POLICY_VIOLATION
    if _looks_like_rate_limit(msg):
        return ProviderErrorKind.RATE_LIMITED
    if _looks_like_timeout(msg):
        return ProviderErrorKind.TIMEOUT
    return ProviderErrorKind.UNKNOWN


def user_message(kind: ProviderErrorKind, fallback: str = "") -> str:
    if kind is ProviderErrorKind.UNKNOWN and fallback:
        return fallback[:300]
    return USER_MESSAGES[kind]


def is_retryable(kind: ProviderErrorKind) -> bool:
    return kind in RETRYABLE_KINDS
