"""Client for the external image-generation provider (OpenAI-compatible API)."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

from openai import APIConnectionError, APIError, APIStatusError, APITimeoutError, AsyncOpenAI

from config import settings
from services.errors import GenerationFailed

logger = logging.getLogger(__name__)

DATA_URI_PATTERN = re.compile(r"data:image/[a-zA-Z0-9.+-]+;base64,[A-Za-z0-9+/=]+")


def get_image_client() -> Optional[AsyncOpenAI]:
    """Build the provider client, or None when no usable API key is configured."""
    api_key = (settings.IMAGE_PROVIDER_API_KEY or "").strip()
    if not api_key or "your_" in api_key:
        return None
    return AsyncOpenAI(
        api_key=api_key,
        base_url=settings.IMAGE_PROVIDER_BASE_URL,
        timeout=float(settings.IMAGE_PROVIDER_TIMEOUT_SECONDS),
        max_retries=0,
        default_headers={
            "HTTP-Referer": settings.IMAGE_PROVIDER_REFERER,
            "X-Title": settings.IMAGE_PROVIDER_TITLE,
        },
    )


def build_messages(image_data: str, prompt: str) -> List[Dict[str, Any]]:
    return [
        {
            "role": "user",
            "content": [
                {"type": "text", "text": prompt},
                {"type": "image_url", "image_url": {"url": image_data}},
            ],
        }
    ]


def _as_dict(response: Any) -> Dict[str, Any]:
    if hasattr(response, "model_dump"):
        return response.model_dump()
    if isinstance(response, dict):
        return response
    return {}


def _image_from_entry(entry: Any) -> Optional[str]:
    if isinstance(entry, str):
        return entry if entry.startswith(("data:image/", "http://", "https://")) else None
    if not isinstance(entry, dict):
        return None
    image_url = entry.get("image_url")
    if isinstance(image_url, dict) and image_url.get("url"):
        return str(image_url["url"])
    if isinstance(image_url, str) and image_url:
        return image_url
    if entry.get("url"):
        return str(entry["url"])
    if entry.get("b64_json"):
        return f"data:image/png;base64,{entry['b64_json']}"
    return None


def extract_image_url(response: Any) -> Optional[str]:
    """
    Pull the generated image out of a chat-completions payload.

    Image-capable models return the picture in ``message.images``; some return
    it inline in the message content as a data URI. Anything else is treated
    as a missing result.
    """
    payload = _as_dict(response)
    choices = payload.get("choices") or []
    if not choices or not isinstance(choices[0], dict):
        return None
    message = choices[0].get("message") or {}
    if not isinstance(message, dict):
        return None

    for entry in message.get("images") or []:
        found = _image_from_entry(entry)
        if found:
            return found

    content = message.get("content")
    if isinstance(content, list):
        for part in content:
            found = _image_from_entry(part)
            if found:
                return found
    elif isinstance(content, str):
        match = DATA_URI_PATTERN.search(content)
        if match:
            return match.group(0)
    return None


def _status_error_text(exc: APIStatusError) -> str:
    body = exc.body
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])[:1000]
        if isinstance(error, str) and error:
            return error[:1000]
    return str(exc.message or "").strip()[:1000]


async def generate_colored_image(
    image_data: str,
    prompt: str,
    client: Optional[AsyncOpenAI] = None,
) -> str:
    """Submit one coloring request and return the generated image reference."""
    client = client or get_image_client()
    if client is None:
        raise GenerationFailed("Image provider is not configured")

    try:
        response = await client.chat.completions.create(
            model=settings.IMAGE_PROVIDER_MODEL,
            messages=build_messages(image_data, prompt),
            max_completion_tokens=int(settings.IMAGE_PROVIDER_MAX_TOKENS),
            temperature=float(settings.IMAGE_PROVIDER_TEMPERATURE),
            extra_body={"modalities": ["image", "text"]},
        )
    except APITimeoutError as exc:
        logger.warning("Image provider timed out after %ss", settings.IMAGE_PROVIDER_TIMEOUT_SECONDS)
        raise GenerationFailed("Image provider timed out") from exc
    except APIStatusError as exc:
        error_text = _status_error_text(exc)
        logger.warning("Image provider error status=%s: %s", exc.status_code, error_text)
        raise GenerationFailed(f"Image provider failed: {error_text}") from exc
    except APIConnectionError as exc:
        logger.warning("Image provider unreachable: %s", exc)
        raise GenerationFailed(f"Image provider unreachable: {exc}") from exc
    except APIError as exc:
        logger.warning("Image provider returned an unusable response: %s", exc)
        raise GenerationFailed(f"Image provider failed: {exc}") from exc

    image_url = extract_image_url(response)
    if not image_url:
        logger.warning("Image provider response contained no image")
        raise GenerationFailed("Image provider returned no image")
    return image_url
