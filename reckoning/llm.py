"""AI provider client: HTTP connection to a text-completion backend.

The editorial engine talks to any object matching the protocol:

    async def execute(self, request: AIRequest) -> AIResponse: ...

Failures are raised as AIError carrying a code (TIMEOUT, EXECUTION_ERROR,
PARSE_ERROR, UNAVAILABLE) and a retryable flag. The engine never retries;
it reports the error to the DM and lets them decide.

Implementations:

    HttpProvider  KoboldCpp or OpenAI-compatible completion endpoints
    MockProvider  canned content, no network (USE_MOCK_AI=true)

Tests use StubProvider from tests/stubs.py instead.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Literal, NamedTuple, Protocol

import httpx
from pydantic import BaseModel

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Request / response / error
# ---------------------------------------------------------------------------

class OutputSchema(BaseModel):
    name: str
    json_schema: dict[str, Any]


class AIRequest(BaseModel):
    prompt: str
    output_schema: OutputSchema | None = None
    stage: str = "narration"


class AIResponse(BaseModel):
    content: str
    duration_ms: int


AIErrorCode = Literal["TIMEOUT", "EXECUTION_ERROR", "PARSE_ERROR", "UNAVAILABLE"]


class AIError(RuntimeError):
    """Raised by providers for every connection, protocol and timeout failure."""

    def __init__(self, code: AIErrorCode, message: str, retryable: bool) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.retryable = retryable


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------

class AIProvider(Protocol):
    name: str

    async def execute(self, request: AIRequest) -> AIResponse: ...


# ---------------------------------------------------------------------------
# HttpProvider
# ---------------------------------------------------------------------------

ProviderFormat = Literal["koboldcpp", "openai"]


class _WireFormat(NamedTuple):
    path: str
    results_key: str
    label: str
    sends_model: bool


_FORMATS: dict[str, _WireFormat] = {
    "koboldcpp": _WireFormat("/api/v1/generate", "results", "KoboldCpp", sends_model=False),
    "openai": _WireFormat("/v1/completions", "choices", "OpenAI-compatible", sends_model=True),
}


def _with_schema(request: AIRequest) -> str:
    """Text-completion backends get the output schema as an instruction."""
    if request.output_schema is None:
        return request.prompt
    schema = request.output_schema
    return (
        f"{request.prompt}\n\nRespond only with JSON matching the {schema.name} schema:\n"
        f"{json.dumps(schema.json_schema)}"
    )


class HttpProvider:
    """Provider backed by a text-completion HTTP API.

    Both wire formats POST {"prompt": ...} (plus "model" for openai) and read
    the completion from the first entry of a list:

        koboldcpp  /api/v1/generate  ->  {"results": [{"text": ...}]}
        openai     /v1/completions   ->  {"choices": [{"text": ...}]}

    Transport failures become AIError: UNAVAILABLE when the backend cannot be
    reached, TIMEOUT, EXECUTION_ERROR for HTTP errors (retryable for 5xx) and
    PARSE_ERROR for bodies that are not the expected shape.
    """

    name = "http"

    def __init__(
        self,
        provider_url: str,
        api_key: str = "",
        provider_format: ProviderFormat = "koboldcpp",
        model: str = "",
        timeout: float = 120.0,
    ) -> None:
        self.base_url = provider_url.rstrip("/")
        self.wire = _FORMATS[provider_format]
        self.model = model
        self.timeout = timeout
        self._auth = {"Authorization": f"Bearer {api_key}"} if api_key else {}

    def _payload(self, request: AIRequest) -> dict[str, Any]:
        payload: dict[str, Any] = {"prompt": _with_schema(request)}
        if self.wire.sends_model and self.model:
            payload["model"] = self.model
        return payload

    def _completion_text(self, data: Any) -> str:
        entries = data.get(self.wire.results_key) if isinstance(data, dict) else None
        first = entries[0] if entries else None
        if not isinstance(first, dict) or "text" not in first:
            raise AIError(
                "PARSE_ERROR", f"Unexpected response format from {self.wire.label} backend", retryable=False
            )
        return first["text"]

    async def execute(self, request: AIRequest) -> AIResponse:
        url = self.base_url + self.wire.path
        payload = self._payload(request)
        logger.debug("ai call stage=%s url=%s prompt_len=%d", request.stage, url, len(payload["prompt"]))
        started = time.monotonic()

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(url, json=payload, headers={"Content-Type": "application/json", **self._auth})
                resp.raise_for_status()
                data = resp.json()
        except httpx.ConnectError as e:
            raise AIError("UNAVAILABLE", f"Cannot connect to AI backend at {self.base_url}", retryable=True) from e
        except httpx.TimeoutException as e:
            raise AIError("TIMEOUT", f"AI backend timed out after {self.timeout}s", retryable=True) from e
        except httpx.HTTPStatusError as e:
            code = e.response.status_code
            raise AIError("EXECUTION_ERROR", f"AI backend returned HTTP {code}", retryable=code >= 500) from e
        except ValueError as e:
            raise AIError("PARSE_ERROR", "AI backend returned invalid JSON", retryable=False) from e

        text = self._completion_text(data)
        elapsed = int((time.monotonic() - started) * 1000)
        logger.debug("ai response stage=%s len=%d ms=%d", request.stage, len(text), elapsed)
        return AIResponse(content=text, duration_ms=elapsed)


# ---------------------------------------------------------------------------
# MockProvider
# ---------------------------------------------------------------------------

class MockProvider:
    """Returns deterministic content instantly. No network calls.

    When a game_content schema is requested the reply is JSON shaped the way
    the content pipeline expects; otherwise it is plain prose.
    """

    name = "mock"

    async def execute(self, request: AIRequest) -> AIResponse:
        logger.debug("MockProvider stage=%s prompt_len=%d", request.stage, len(request.prompt))
        if request.output_schema is not None and request.output_schema.name == "game_content":
            content = json.dumps({
                "event_type": "narration",
                "content": (
                    "The ancient stone walls of the tavern seem to breathe with stories untold. "
                    "A warm fire crackles in the hearth as the adventurer surveys their surroundings."
                ),
                "speaker": None,
                "suggested_actions": [
                    "Approach the bartender",
                    "Look around the room",
                    "Check your equipment",
                ],
            })
        else:
            content = "The world around you pulses with adventure. What will you do next?"
        return AIResponse(content=content, duration_ms=50)


def provider_from_config(ai_config: dict[str, Any], use_mock: bool = False) -> AIProvider:
    """Build the provider selected by settings (or the mock, when forced)."""
    if use_mock or not ai_config.get("provider_url"):
        return MockProvider()
    return HttpProvider(
        provider_url=ai_config["provider_url"],
        api_key=ai_config.get("api_key", ""),
        provider_format=ai_config.get("provider_format", "koboldcpp"),
        model=ai_config.get("model", ""),
        timeout=float(ai_config.get("timeout", 120.0)),
    )
