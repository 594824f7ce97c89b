# FILE: artforge/services/image_provider.py
"""
Boundary to the content generation API.

Provider responses and SDK exceptions are decoded here, once, into
GenerationSuccess / GenerationFailure. Nothing past this module sees raw
OpenAI objects.
"""
from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Union

from openai import AsyncOpenAI

from artforge.core.errors import ProviderErrorKind
from artforge.services.openai_safeguards import (
    classify_provider_exception,
    is_retryable,
    user_message,
)

logger = logging.getLogger("artforge.provider")

# Sora seconds/size per quality tier
VIDEO_SETTINGS = {
    "standard": {"seconds": "4", "size": "720x1280"},
    "hd": {"seconds": "8", "size": "1024x1792"},
}


@dataclass(frozen=True)
class ProviderRequest:
    prompt: str
    quality: str
    content_type: str
    size: Optional[str] = None


@dataclass(frozen=True)
class GenerationSuccess:
    payload_b64: str
    media_type: str

    @property
    def data_url(self) -> str:
        return f"data:{self.media_type};base64,{self.payload_b64}"


@dataclass(frozen=True)
class GenerationFailure:
    kind: ProviderErrorKind
    message: str

    @property
    def retryable(self) -> bool:
        return is_retryable(self.kind)


GenerationResult = Union[GenerationSuccess, GenerationFailure]


class GenerationProvider(Protocol):
    async def generate(self, request: ProviderRequest) -> GenerationResult:
        ...


def failure_from_exception(exc: BaseException) -> GenerationFailure:
    kind = classify_provider_exception(exc)
    return GenerationFailure(kind=kind, message=user_message(kind, fallback=str(exc)))


class OpenAIGenerationProvider:
    """DALL-E for images, Sora for videos."""

    def __init__(self, client: AsyncOpenAI, image_model: str = "dall-e-3", video_model: str = "sora-2"):
        self.client = client
        self.image_model = image_model
        self.video_model = video_model

    async def generate(self, request: ProviderRequest) -> GenerationResult:
        try:
            if request.content_type == "video":
                return await self._generate_video(request)
            return await self._generate_image(request)
        except Exception as exc:
            failure = failure_from_exception(exc)
            logger.warning(f"{request.content_type} generation failed ({failure.kind.value}): {exc}")
            return failure

    async def _generate_image(self, request: ProviderRequest) -> GenerationResult:
        response = await self.client.images.generate(
            model=self.image_model,
            prompt=request.prompt,
            n=1,
            size=request.size or "1024x1024",
            quality=request.quality,
            response_format="b64_json",
        )
        data = response.data or []
        if not data or not data[0].b64_json:
            return GenerationFailure(ProviderErrorKind.UNKNOWN, "No image returned by the generation service")
        return GenerationSuccess(payload_b64=data[0].b64_json, media_type="image/png")

    async def _generate_video(self, request: ProviderRequest) -> GenerationResult:
        settings = VIDEO_SETTINGS.get(request.quality, VIDEO_SETTINGS["standard"])
        video = await self.client.videos.create_and_poll(
            model=self.video_model,
            prompt=request.prompt,
            seconds=settings["seconds"],
            size=settings["size"],
        )
        if video.status != "completed":
            error = getattr(video, "error", None)
            message = getattr(error, "message", None) or f"Video job ended with status {video.status}"
            kind = classify_provider_exception(RuntimeError(message))
            return GenerationFailure(kind=kind, message=user_message(kind, fallback=message))

        content = await self.client.videos.download_content(video.id, variant="video")
        raw = await content.aread()
        return GenerationSuccess(payload_b64=base64.b64encode(raw).decode("ascii"), media_type="video/mp4")
