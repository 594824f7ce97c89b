# FILE: artforge/services/prompt_service.py
from __future__ import annotations

import logging
from typing import Optional

from openai import AsyncOpenAI

from artforge.core.errors import GenerationProviderError, InvalidPrompt, ProviderErrorKind
from artforge.services.openai_safeguards import classify_provider_exception, user_message

logger = logging.getLogger("artforge.prompts")

MIN_PROMPT_LENGTH = 3

CATEGORIES = ("fantasy", "sci-fi", "nature", "portrait", "abstract", "architecture")
STYLES = ("photorealistic", "digital art", "oil painting", "watercolor", "cyberpunk", "minimalist")

ENHANCER_SYSTEM_PROMPT = (
    "You are an expert prompt engineer for AI image generation. Enhance the given prompt "
    "to make it more detailed, creative, and likely to produce stunning visual results. "
    "Add artistic details, lighting, composition, style, and technical specifications that "
    "would improve the image quality. Keep the core concept but make it more vivid and "
    "descriptive. Return only the enhanced prompt, nothing else."
)


def validate_prompt(prompt: Optional[str]) -> str:
    text = (prompt or "").strip()
    if len(text) < MIN_PROMPT_LENGTH:
        raise InvalidPrompt(
            f"Please provide a more detailed prompt (at least {MIN_PROMPT_LENGTH} characters)"
        )
    return text


def build_effective_prompt(prompt: str, category: Optional[str] = None, style: Optional[str] = None) -> str:
    parts = [prompt.strip()]
    if category:
        parts.append(f"{category} theme")
    if style:
        parts.append(f"{style} style")
    return ", ".join(parts)


async def enhance_prompt(client: AsyncOpenAI, prompt: str, model: str) -> str:
    text = validate_prompt(prompt)
    logger.info(f"Enhancing prompt: {text[:100]}")
    try:
        response = await client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": ENHANCER_SYSTEM_PROMPT},
                {"role": "user", "content": text},
            ],
            max_tokens=200,
            temperature=0.7,
        )
    except Exception as exc:
        kind = classify_provider_exception(exc)
        logger.error(f"Prompt enhancement failed ({kind.value}): {exc}")
        raise GenerationProviderError(kind, user_message(kind, fallback="Failed to enhance prompt"))

    content = (response.choices[0].message.content or "").strip() if response.choices else ""
    if not content:
        raise GenerationProviderError(ProviderErrorKind.UNKNOWN, "Failed to enhance prompt")
    return content
