"""
Purpose:
- Thin adapter over the OpenAI async client for the three remote capabilities:
    analyze()           : structured observations about an image (free text)
    generate_captions() : JSON-mode caption generation from a text prompt
    describe()          : detailed free-form description
- Classifies failures: 429 -> RemoteThrottled (retryable), anything else from
  the SDK -> NetworkOrServiceError.

Notes:
- Images are sent inline as data URIs; raw base64 gets its MIME prefix from the
  leading bytes.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

import openai
from openai import AsyncOpenAI

from .errors import NetworkOrServiceError, RemoteThrottled
from .prompts import ANALYSIS_PROMPT, CAPTION_SYSTEM_MESSAGE, DESCRIBE_PROMPT

logger = logging.getLogger(__name__)

# base64 signatures of common image headers
_MIME_SIGNATURES = (
    ("/9j/", "jpeg"),
    ("iVBOR", "png"),
    ("R0lG", "gif"),
    ("UklGR", "webp"),
)

def to_data_uri(image: str) -> str:
    """Return a data: URI for a base64 image, sniffing the MIME type when absent."""
    image = (image or "").strip()
    if image.startswith("data:"):
        return image
    mime = next((m for sig, m in _MIME_SIGNATURES if image.startswith(sig)), "jpeg")
    return f"data:image/{mime};base64,{image}"

class CaptionService(Protocol):
    async def analyze(self, image: str) -> str: ...
    async def generate_captions(self, prompt: str) -> str: ...
    async def describe(self, image: str) -> str: ...

@dataclass
class OpenAIConfig:
    api_key: Optional[str]
    base_url: Optional[str]
    timeout: float
    analysis_model: str
    analysis_max_tokens: int
    caption_model: str
    caption_max_tokens: int
    caption_temperature: float
    describe_model: str
    describe_max_tokens: int

class OpenAICaptionService:
    def __init__(self, cfg: OpenAIConfig, client: Optional[AsyncOpenAI] = None):
        self.cfg = cfg
        # built on first use so the app can start without OPENAI_API_KEY
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.cfg.api_key,
                base_url=self.cfg.base_url,
                timeout=self.cfg.timeout,
                max_retries=0,  # backoff is RetryPolicy's job
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()

    async def _chat(self, **params: Any) -> str:
        try:
            resp = await self._get_client().chat.completions.create(**params)
        except openai.RateLimitError as e:
            raise RemoteThrottled(str(e)) from e
        except openai.OpenAIError as e:
            logger.error("OpenAI request failed (%s): %r", params.get("model"), e)
            raise NetworkOrServiceError(str(e) or None) from e

        if not resp.choices:
            raise NetworkOrServiceError("No response from OpenAI")
        return (resp.choices[0].message.content or "").strip()

    @staticmethod
    def _image_message(text: str, image: str, detail: Optional[str] = None) -> List[Dict[str, Any]]:
        image_url: Dict[str, Any] = {"url": to_data_uri(image)}
        if detail:
            image_url["detail"] = detail
        return [{
            "role": "user",
            "content": [
                {"type": "text", "text": text},
                {"type": "image_url", "image_url": image_url},
            ],
        }]

    async def analyze(self, image: str) -> str:
        return await self._chat(
            model=self.cfg.analysis_model,
            messages=self._image_message(ANALYSIS_PROMPT, image, detail="low"),
            max_tokens=self.cfg.analysis_max_tokens,
        )

    async def generate_captions(self, prompt: str) -> str:
        return await self._chat(
            model=self.cfg.caption_model,
            messages=[
                {"role": "system", "content": CAPTION_SYSTEM_MESSAGE},
                {"role": "user", "content": prompt},
            ],
            temperature=self.cfg.caption_temperature,
            max_tokens=self.cfg.caption_max_tokens,
            response_format={"type": "json_object"},
        )

    async def describe(self, image: str) -> str:
        return await self._chat(
            model=self.cfg.describe_model,
            messages=self._image_message(DESCRIBE_PROMPT, image),
            max_tokens=self.cfg.describe_max_tokens,
        )
