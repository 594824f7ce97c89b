from types import SimpleNamespace

import httpx
import openai
import pytest

from artforge.core.errors import GenerationProviderError, ProviderErrorKind
from artforge.services.image_provider import (
    GenerationFailure,
    GenerationSuccess,
    OpenAIGenerationProvider,
    ProviderRequest,
)
from artforge.services.openai_safeguards import classify_provider_exception, is_retryable
from artforge.services.prompt_service import build_effective_prompt, enhance_prompt

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/images/generations")


def _status_error(cls, status, message):
    return cls(message, response=httpx.Response(status, request=REQUEST), body=None)


@pytest.mark.parametrize(
    "exc,kind",
    [
        (openai.APITimeoutError(request=REQUEST), ProviderErrorKind.TIMEOUT),
        (openai.APIConnectionError(request=REQUEST), ProviderErrorKind.TRANSPORT),
        (_status_error(openai.RateLimitError, 429, "Too many requests"), ProviderErrorKind.RATE_LIMITED),
        (_status_error(openai.InternalServerError, 500, "Server error"), ProviderErrorKind.TRANSPORT),
        (
            _status_error(
                openai.BadRequestError, 400,
                "Your request was rejected as a result of our safety system.",
            ),
            ProviderErrorKind.POLICY_VIOLATION,
        ),
        (httpx.ReadTimeout("read timed out"), ProviderErrorKind.TIMEOUT),
        (RuntimeError("content_policy_violation"), ProviderErrorKind.POLICY_VIOLATION),
        (RuntimeError("something odd"), ProviderErrorKind.UNKNOWN),
    ],
)
def test_classify_provider_exception(exc, kind):
    assert classify_provider_exception(exc) is kind


def test_only_transient_kinds_are_retryable():
    assert is_retryable(ProviderErrorKind.RATE_LIMITED)
    assert is_retryable(ProviderErrorKind.TIMEOUT)
    assert is_retryable(ProviderErrorKind.TRANSPORT)
    assert not is_retryable(ProviderErrorKind.POLICY_VIOLATION)
    assert not is_retryable(ProviderErrorKind.UNKNOWN)


class FakeImages:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.kwargs = None

    async def generate(self, **kwargs):
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        return self.response


async def test_image_success_decodes_payload():
    images = FakeImages(response=SimpleNamespace(data=[SimpleNamespace(b64_json="aGVsbG8=")]))
    provider = OpenAIGenerationProvider(SimpleNamespace(images=images))

    result = await provider.generate(ProviderRequest(prompt="a cat", quality="hd", content_type="image", size="1792x1024"))

    assert isinstance(result, GenerationSuccess)
    assert result.data_url == "data:image/png;base64,aGVsbG8="
    assert images.kwargs["size"] == "1792x1024"
    assert images.kwargs["quality"] == "hd"
    assert images.kwargs["model"] == "dall-e-3"


async def test_image_exception_becomes_failure():
    images = FakeImages(error=_status_error(openai.RateLimitError, 429, "Too many requests"))
    provider = OpenAIGenerationProvider(SimpleNamespace(images=images))

    result = await provider.generate(ProviderRequest(prompt="a cat", quality="standard", content_type="image"))

    assert isinstance(result, GenerationFailure)
    assert result.kind is ProviderErrorKind.RATE_LIMITED
    assert result.retryable
    assert result.message == "Rate limit exceeded. Please wait a moment and try again."


async def test_empty_image_response_is_failure():
    provider = OpenAIGenerationProvider(SimpleNamespace(images=FakeImages(response=SimpleNamespace(data=[]))))

    result = await provider.generate(ProviderRequest(prompt="a cat", quality="standard", content_type="image"))

    assert isinstance(result, GenerationFailure)
    assert result.kind is ProviderErrorKind.UNKNOWN


class FakeVideos:
    def __init__(self, status="completed"):
        self.status = status

    async def create_and_poll(self, **kwargs):
        self.kwargs = kwargs
        return SimpleNamespace(id="video_123", status=self.status, error=None)

    async def download_content(self, video_id, variant="video"):
        async def aread():
            return b"mp4-bytes"
        return SimpleNamespace(aread=aread)


async def test_video_success_encodes_bytes():
    videos = FakeVideos()
    provider = OpenAIGenerationProvider(SimpleNamespace(videos=videos))

    result = await provider.generate(ProviderRequest(prompt="waves", quality="hd", content_type="video"))

    assert isinstance(result, GenerationSuccess)
    assert result.media_type == "video/mp4"
    assert result.payload_b64 == "bXA0LWJ5dGVz"
    assert videos.kwargs["seconds"] == "8"


async def test_failed_video_job_is_failure():
    provider = OpenAIGenerationProvider(SimpleNamespace(videos=FakeVideos(status="failed")))

    result = await provider.generate(ProviderRequest(prompt="waves", quality="standard", content_type="video"))

    assert isinstance(result, GenerationFailure)


def test_effective_prompt():
    assert build_effective_prompt("a castle") == "a castle"
    assert build_effective_prompt("a castle", style="cyberpunk") == "a castle, cyberpunk style"


class FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error

    async def create(self, **kwargs):
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _chat_client(**kwargs):
    return SimpleNamespace(chat=SimpleNamespace(completions=FakeCompletions(**kwargs)))


async def test_enhance_prompt_returns_model_text():
    client = _chat_client(content="  A majestic castle at golden hour  ")

    assert await enhance_prompt(client, "a castle", "gpt-4o-mini") == "A majestic castle at golden hour"


async def test_enhance_prompt_maps_provider_errors():
    client = _chat_client(error=openai.APITimeoutError(request=REQUEST))

    with pytest.raises(GenerationProviderError) as exc_info:
        await enhance_prompt(client, "a castle", "gpt-4o-mini")

    assert exc_info.value.status_code == 504
