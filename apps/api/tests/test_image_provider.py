from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import pytest
from openai import APIStatusError, APITimeoutError

from config import settings
from services.errors import GenerationFailed
from services.image_provider import extract_image_url, generate_colored_image, get_image_client


LINE_ART = "data:image/png;base64,AAAA"
PROVIDER_URL = "https://openrouter.ai/api/v1/chat/completions"


def _client_returning(result=None, error=None):
    create = AsyncMock(return_value=result, side_effect=error)
    client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
    return client, create


def _completion(message):
    return {"id": "gen-1", "choices": [{"index": 0, "message": message}]}


def test_extract_image_url_reads_images_field():
    payload = _completion(
        {
            "role": "assistant",
            "content": "Here is your colored drawing.",
            "images": [{"type": "image_url", "image_url": {"url": "data:image/png;base64,Q09MT1I="}}],
        }
    )
    assert extract_image_url(payload) == "data:image/png;base64,Q09MT1I="


def test_extract_image_url_reads_inline_data_uri():
    payload = _completion({"role": "assistant", "content": "Result: data:image/webp;base64,UklGRg== done"})
    assert extract_image_url(payload) == "data:image/webp;base64,UklGRg=="


def test_extract_image_url_accepts_base64_payload():
    payload = _completion({"role": "assistant", "content": None, "images": [{"b64_json": "Q09MT1I="}]})
    assert extract_image_url(payload) == "data:image/png;base64,Q09MT1I="


def test_extract_image_url_returns_none_for_text_only_answers():
    assert extract_image_url(_completion({"role": "assistant", "content": "I cannot draw."})) is None
    assert extract_image_url({"choices": []}) is None
    assert extract_image_url({}) is None


def test_get_image_client_requires_api_key(monkeypatch):
    monkeypatch.setattr(settings, "IMAGE_PROVIDER_API_KEY", "")
    assert get_image_client() is None


@pytest.mark.asyncio
async def test_generate_colored_image_sends_prompt_and_image():
    payload = _completion({"role": "assistant", "images": [{"image_url": {"url": "https://cdn.example/out.png"}}]})
    client, create = _client_returning(result=payload)

    image_url = await generate_colored_image(LINE_ART, "Color it softly", client=client)

    assert image_url == "https://cdn.example/out.png"
    kwargs = create.call_args.kwargs
    assert kwargs["model"] == settings.IMAGE_PROVIDER_MODEL
    content = kwargs["messages"][0]["content"]
    assert content[0] == {"type": "text", "text": "Color it softly"}
    assert content[1] == {"type": "image_url", "image_url": {"url": LINE_ART}}


@pytest.mark.asyncio
async def test_generate_colored_image_fails_without_image():
    client, _ = _client_returning(result=_completion({"role": "assistant", "content": "Sorry"}))
    with pytest.raises(GenerationFailed, match="no image"):
        await generate_colored_image(LINE_ART, "prompt", client=client)


@pytest.mark.asyncio
async def test_generate_colored_image_surfaces_provider_error_text():
    request = httpx.Request("POST", PROVIDER_URL)
    response = httpx.Response(429, request=request)
    error = APIStatusError(
        "Error code: 429",
        response=response,
        body={"error": {"message": "Rate limit exceeded: free-models-per-day"}},
    )
    client, _ = _client_returning(error=error)

    with pytest.raises(GenerationFailed) as exc_info:
        await generate_colored_image(LINE_ART, "prompt", client=client)
    assert "free-models-per-day" in exc_info.value.message


@pytest.mark.asyncio
async def test_generate_colored_image_treats_timeout_as_failure():
    client, _ = _client_returning(error=APITimeoutError(request=httpx.Request("POST", PROVIDER_URL)))
    with pytest.raises(GenerationFailed, match="timed out"):
        await generate_colored_image(LINE_ART, "prompt", client=client)


@pytest.mark.asyncio
async def test_generate_colored_image_without_configured_provider(monkeypatch):
    monkeypatch.setattr(settings, "IMAGE_PROVIDER_API_KEY", "")
    with pytest.raises(GenerationFailed, match="not configured"):
        await generate_colored_image(LINE_ART, "prompt")
