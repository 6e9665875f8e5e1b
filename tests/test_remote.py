"""Tests for the OpenAI adapter: request shape, data URIs and error classification."""

from types import SimpleNamespace

import httpx
import openai
import pytest

from photocaption.captions.errors import NetworkOrServiceError, RemoteThrottled
from photocaption.captions.prompts import ANALYSIS_PROMPT, CAPTION_SYSTEM_MESSAGE
from photocaption.captions.remote import OpenAICaptionService, OpenAIConfig, to_data_uri

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class FakeCompletions:
    def __init__(self, response=None, error=None):
        self.response = response if response is not None else _completion("  hello  ")
        self.error = error
        self.calls = []

    async def create(self, **params):
        self.calls.append(params)
        if self.error is not None:
            raise self.error
        return self.response


class FakeClient:
    def __init__(self, completions: FakeCompletions):
        self.chat = SimpleNamespace(completions=completions)
        self.closed = False

    async def close(self):
        self.closed = True


def _service(completions: FakeCompletions):
    cfg = OpenAIConfig(
        api_key="sk-test",
        base_url=None,
        timeout=5.0,
        analysis_model="vision-mini",
        analysis_max_tokens=300,
        caption_model="writer",
        caption_max_tokens=1000,
        caption_temperature=0.9,
        describe_model="vision-big",
        describe_max_tokens=500,
    )
    client = FakeClient(completions)
    return OpenAICaptionService(cfg, client=client), client


@pytest.mark.parametrize("raw, mime", [
    ("/9j/4AAQSkZJRg", "jpeg"),
    ("iVBORw0KGgo", "png"),
    ("R0lGODlhAQAB", "gif"),
    ("UklGRiQAAABXRUJQ", "webp"),
    ("Qk0eAAAAAAAAAB4", "jpeg"),
])
def test_to_data_uri_sniffs_mime(raw, mime) -> None:
    assert to_data_uri(raw) == f"data:image/{mime};base64,{raw}"


def test_to_data_uri_keeps_existing_uri() -> None:
    uri = "data:image/png;base64,iVBORw0KGgo"
    assert to_data_uri(uri) == uri


@pytest.mark.asyncio
async def test_analyze_request_shape() -> None:
    completions = FakeCompletions()
    service, _ = _service(completions)

    assert await service.analyze("iVBORw0KGgo") == "hello"

    params = completions.calls[0]
    assert params["model"] == "vision-mini"
    assert params["max_tokens"] == 300
    content = params["messages"][0]["content"]
    assert content[0] == {"type": "text", "text": ANALYSIS_PROMPT}
    assert content[1]["image_url"] == {"url": "data:image/png;base64,iVBORw0KGgo", "detail": "low"}


@pytest.mark.asyncio
async def test_generate_captions_uses_json_mode() -> None:
    completions = FakeCompletions(response=_completion('{"mainCaption": "x"}'))
    service, _ = _service(completions)

    assert await service.generate_captions("prompt") == '{"mainCaption": "x"}'

    params = completions.calls[0]
    assert params["model"] == "writer"
    assert params["response_format"] == {"type": "json_object"}
    assert params["temperature"] == 0.9
    assert params["messages"] == [
        {"role": "system", "content": CAPTION_SYSTEM_MESSAGE},
        {"role": "user", "content": "prompt"},
    ]


@pytest.mark.asyncio
async def test_describe_sends_full_detail_image() -> None:
    completions = FakeCompletions()
    service, _ = _service(completions)
    await service.describe("/9j/abc")

    params = completions.calls[0]
    assert params["model"] == "vision-big"
    assert params["messages"][0]["content"][1]["image_url"] == {"url": "data:image/jpeg;base64,/9j/abc"}


@pytest.mark.asyncio
async def test_429_is_remote_throttled() -> None:
    error = openai.RateLimitError(
        "Rate limit exceeded",
        response=httpx.Response(429, request=_REQUEST),
        body=None,
    )
    service, _ = _service(FakeCompletions(error=error))

    with pytest.raises(RemoteThrottled) as exc:
        await service.analyze("abc")
    assert exc.value.__cause__ is error


@pytest.mark.parametrize("error", [
    openai.InternalServerError("upstream", response=httpx.Response(500, request=_REQUEST), body=None),
    openai.APIConnectionError(request=_REQUEST),
    openai.AuthenticationError("bad key", response=httpx.Response(401, request=_REQUEST), body=None),
])
@pytest.mark.asyncio
async def test_other_sdk_errors_are_service_errors(error) -> None:
    service, _ = _service(FakeCompletions(error=error))

    with pytest.raises(NetworkOrServiceError):
        await service.generate_captions("prompt")


@pytest.mark.asyncio
async def test_empty_choices_is_service_error() -> None:
    service, _ = _service(FakeCompletions(response=SimpleNamespace(choices=[])))

    with pytest.raises(NetworkOrServiceError, match="No response"):
        await service.analyze("abc")


@pytest.mark.asyncio
async def test_close_closes_client() -> None:
    service, client = _service(FakeCompletions())
    await service.close()
    assert client.closed
