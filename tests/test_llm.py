"""Tests for reckoning.llm: HttpProvider, MockProvider and provider selection."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from reckoning.engine import GAME_CONTENT_SCHEMA
from reckoning.llm import AIError, AIRequest, HttpProvider, MockProvider, provider_from_config


def _request(prompt: str = "prompt", schema=None) -> AIRequest:
    return AIRequest(prompt=prompt, output_schema=schema)


def _mock_response(body: dict, status: int = 200) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = body
    resp.raise_for_status = MagicMock(
        side_effect=None if status < 400 else httpx.HTTPStatusError(
            "", request=MagicMock(), response=resp
        )
    )
    return resp


# ---------------------------------------------------------------------------
# MockProvider
# ---------------------------------------------------------------------------

class TestMockProvider:
    async def test_game_content_is_json(self) -> None:
        response = await MockProvider().execute(_request(schema=GAME_CONTENT_SCHEMA))
        data = json.loads(response.content)
        assert data["event_type"] == "narration"
        assert data["content"]
        assert len(data["suggested_actions"]) == 3

    async def test_plain_prose_without_schema(self) -> None:
        response = await MockProvider().execute(_request())
        assert "adventure" in response.content

    async def test_deterministic(self) -> None:
        provider = MockProvider()
        first = await provider.execute(_request(schema=GAME_CONTENT_SCHEMA))
        second = await provider.execute(_request(schema=GAME_CONTENT_SCHEMA))
        assert first.content == second.content


# ---------------------------------------------------------------------------
# HttpProvider: KoboldCpp format
# ---------------------------------------------------------------------------

class TestHttpProviderKoboldCpp:
    @pytest.fixture
    def provider(self) -> HttpProvider:
        return HttpProvider(provider_url="http://localhost:5001", api_key="")

    async def test_happy_path(self, provider: HttpProvider) -> None:
        body = {"results": [{"text": "The tavern is dark and smoky."}]}
        mock_post = AsyncMock(return_value=_mock_response(body))
        with patch("httpx.AsyncClient.post", mock_post):
            response = await provider.execute(_request("Describe the tavern."))
        assert response.content == "The tavern is dark and smoky."
        assert response.duration_ms >= 0

    async def test_posts_to_correct_url(self, provider: HttpProvider) -> None:
        mock_post = AsyncMock(return_value=_mock_response({"results": [{"text": "ok"}]}))
        with patch("httpx.AsyncClient.post", mock_post):
            await provider.execute(_request())
        assert mock_post.call_args[0][0] == "http://localhost:5001/api/v1/generate"

    async def test_sends_prompt_in_body(self, provider: HttpProvider) -> None:
        mock_post = AsyncMock(return_value=_mock_response({"results": [{"text": "ok"}]}))
        with patch("httpx.AsyncClient.post", mock_post):
            await provider.execute(_request("my prompt"))
        assert mock_post.call_args.kwargs["json"] == {"prompt": "my prompt"}

    async def test_schema_appended_to_prompt(self, provider: HttpProvider) -> None:
        mock_post = AsyncMock(return_value=_mock_response({"results": [{"text": "ok"}]}))
        with patch("httpx.AsyncClient.post", mock_post):
            await provider.execute(_request("Go on.", schema=GAME_CONTENT_SCHEMA))
        sent = mock_post.call_args.kwargs["json"]["prompt"]
        assert sent.startswith("Go on.")
        assert "game_content" in sent
        assert '"suggested_actions"' in sent

    async def test_bearer_token_sent_when_api_key_set(self) -> None:
        provider = HttpProvider(provider_url="http://localhost:5001", api_key="secret")
        mock_post = AsyncMock(return_value=_mock_response({"results": [{"text": "ok"}]}))
        with patch("httpx.AsyncClient.post", mock_post):
            await provider.execute(_request())
        assert mock_post.call_args.kwargs["headers"].get("Authorization") == "Bearer secret"

    async def test_no_auth_header_when_no_api_key(self, provider: HttpProvider) -> None:
        mock_post = AsyncMock(return_value=_mock_response({"results": [{"text": "ok"}]}))
        with patch("httpx.AsyncClient.post", mock_post):
            await provider.execute(_request())
        assert "Authorization" not in mock_post.call_args.kwargs["headers"]

    async def test_trailing_slash_stripped_from_url(self) -> None:
        provider = HttpProvider(provider_url="http://localhost:5001/")
        mock_post = AsyncMock(return_value=_mock_response({"results": [{"text": "ok"}]}))
        with patch("httpx.AsyncClient.post", mock_post):
            await provider.execute(_request())
        assert mock_post.call_args[0][0] == "http://localhost:5001/api/v1/generate"

    async def test_connect_error_is_unavailable(self, provider: HttpProvider) -> None:
        mock_post = AsyncMock(side_effect=httpx.ConnectError("refused"))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(AIError, match="Cannot connect") as exc:
                await provider.execute(_request())
        assert exc.value.code == "UNAVAILABLE"
        assert exc.value.retryable is True

    async def test_timeout_is_retryable(self, provider: HttpProvider) -> None:
        mock_post = AsyncMock(side_effect=httpx.TimeoutException("timeout"))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(AIError, match="timed out") as exc:
                await provider.execute(_request())
        assert exc.value.code == "TIMEOUT"
        assert exc.value.retryable is True

    async def test_server_error_is_retryable(self, provider: HttpProvider) -> None:
        mock_post = AsyncMock(return_value=_mock_response({}, status=503))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(AIError, match="HTTP 503") as exc:
                await provider.execute(_request())
        assert exc.value.code == "EXECUTION_ERROR"
        assert exc.value.retryable is True

    async def test_client_error_is_not_retryable(self, provider: HttpProvider) -> None:
        mock_post = AsyncMock(return_value=_mock_response({}, status=401))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(AIError, match="HTTP 401") as exc:
                await provider.execute(_request())
        assert exc.value.retryable is False

    async def test_malformed_response_is_parse_error(self, provider: HttpProvider) -> None:
        mock_post = AsyncMock(return_value=_mock_response({"unexpected": "format"}))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(AIError, match="Unexpected response format") as exc:
                await provider.execute(_request())
        assert exc.value.code == "PARSE_ERROR"

    async def test_invalid_json_is_parse_error(self, provider: HttpProvider) -> None:
        resp = _mock_response({})
        resp.json.side_effect = ValueError("not json")
        with patch("httpx.AsyncClient.post", AsyncMock(return_value=resp)):
            with pytest.raises(AIError, match="invalid JSON"):
                await provider.execute(_request())


# ---------------------------------------------------------------------------
# HttpProvider: OpenAI format
# ---------------------------------------------------------------------------

class TestHttpProviderOpenAI:
    @pytest.fixture
    def provider(self) -> HttpProvider:
        return HttpProvider(
            provider_url="http://localhost:8080",
            provider_format="openai",
            model="mistral-7b",
        )

    async def test_posts_to_correct_url(self, provider: HttpProvider) -> None:
        mock_post = AsyncMock(return_value=_mock_response({"choices": [{"text": "ok"}]}))
        with patch("httpx.AsyncClient.post", mock_post):
            await provider.execute(_request())
        assert mock_post.call_args[0][0] == "http://localhost:8080/v1/completions"

    async def test_sends_model_in_body(self, provider: HttpProvider) -> None:
        mock_post = AsyncMock(return_value=_mock_response({"choices": [{"text": "ok"}]}))
        with patch("httpx.AsyncClient.post", mock_post):
            await provider.execute(_request())
        assert mock_post.call_args.kwargs["json"]["model"] == "mistral-7b"

    async def test_happy_path(self, provider: HttpProvider) -> None:
        mock_post = AsyncMock(return_value=_mock_response({"choices": [{"text": "A stormy night."}]}))
        with patch("httpx.AsyncClient.post", mock_post):
            response = await provider.execute(_request())
        assert response.content == "A stormy night."

    async def test_malformed_response_is_parse_error(self, provider: HttpProvider) -> None:
        body = {"results": [{"text": "kobold format accidentally"}]}
        mock_post = AsyncMock(return_value=_mock_response(body))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(AIError, match="Unexpected response format"):
                await provider.execute(_request())


# ---------------------------------------------------------------------------
# provider_from_config
# ---------------------------------------------------------------------------

class TestProviderFromConfig:
    def test_mock_when_no_url(self) -> None:
        assert isinstance(provider_from_config({"provider_url": ""}), MockProvider)

    def test_mock_when_forced(self) -> None:
        assert isinstance(provider_from_config({"provider_url": "http://x"}, use_mock=True), MockProvider)

    def test_http_when_configured(self) -> None:
        provider = provider_from_config({
            "provider_url": "http://localhost:8080",
            "provider_format": "openai",
            "model": "m",
            "timeout": 30,
        })
        assert isinstance(provider, HttpProvider)
        assert provider.name == "http"
