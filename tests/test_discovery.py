import httpx
import pytest

import arena.discovery as discovery
from arena.discovery import (
    CUSTOM_MODEL,
    connect_agent,
    disconnect_agent,
    fetch_models,
    filter_models,
    group_by_vendor,
)
from arena.errors import ConfigurationError, ProviderError
from arena.schemas import AgentConfig, ConnectionStatus, ModelInfo, Provider


OPENROUTER_MODELS = {
    "data": [
        {
            "id": "openai/gpt-4o",
            "name": "OpenAI: GPT-4o",
            "context_length": 128000,
            "pricing": {"prompt": "0.000005", "completion": "0.000015"},
        },
        {"id": "anthropic/claude-3-haiku", "name": "Anthropic: Claude 3 Haiku", "pricing": {"prompt": "0"}},
    ]
}


def openrouter_handler(auth_status=200):
    def handler(request):
        assert request.headers["Authorization"] == "Bearer or-key"
        if request.url.path.endswith("/auth/key"):
            return httpx.Response(auth_status, json={"data": {"label": "test"}})
        return httpx.Response(200, json=OPENROUTER_MODELS)

    return handler


@pytest.mark.asyncio
async def test_openrouter_models_sorted_with_pricing(mock_http):
    mock_http(discovery, openrouter_handler())

    models = await fetch_models(Provider.OPENROUTER, "or-key")

    assert [m.id for m in models] == ["anthropic/claude-3-haiku", "openai/gpt-4o"]
    gpt = models[1]
    assert gpt.prompt_price == pytest.approx(0.000005)
    assert gpt.completion_price == pytest.approx(0.000015)
    assert gpt.context_length == 128000
    assert models[0].completion_price is None


@pytest.mark.asyncio
async def test_openrouter_rejects_invalid_key(mock_http):
    mock_http(discovery, openrouter_handler(auth_status=401))

    with pytest.raises(ConfigurationError, match="Invalid or expired OpenRouter API key"):
        await fetch_models("openrouter", "or-key")


@pytest.mark.asyncio
async def test_gemini_models_use_query_key(mock_http):
    def handler(request):
        assert request.url.params["key"] == "gk"
        assert "Authorization" not in request.headers
        return httpx.Response(
            200,
            json={
                "models": [
                    {"name": "models/gemini-1.5-pro", "displayName": "Gemini 1.5 Pro", "inputTokenLimit": 2000000},
                    {"name": "models/gemini-1.5-flash", "displayName": "Gemini 1.5 Flash"},
                ]
            },
        )

    mock_http(discovery, handler)
    models = await fetch_models(Provider.GEMINI, "gk")

    assert [m.id for m in models] == ["gemini-1.5-flash", "gemini-1.5-pro"]
    assert models[1].context_length == 2000000
    assert not models[1].has_pricing


@pytest.mark.asyncio
async def test_provider_error_message_is_surfaced(mock_http):
    mock_http(discovery, lambda request: httpx.Response(401, json={"error": {"message": "Incorrect API key provided"}}))

    with pytest.raises(ProviderError, match="Incorrect API key provided"):
        await fetch_models(Provider.OPENAI, "sk")


@pytest.mark.asyncio
async def test_fetch_requires_key():
    with pytest.raises(ConfigurationError):
        await fetch_models(Provider.GROQ, " ")


@pytest.mark.asyncio
async def test_connect_agent_selects_first_model(mock_http):
    mock_http(discovery, openrouter_handler())
    agent = AgentConfig(id="A", name="Alice", api_key="or-key")

    connected = await connect_agent(agent)

    assert connected.status == ConnectionStatus.CONNECTED
    assert connected.model == "anthropic/claude-3-haiku"
    assert len(connected.models) == 2
    assert connected.connection_error is None
    assert agent.status == ConnectionStatus.DISCONNECTED


@pytest.mark.asyncio
async def test_connect_openrouter_with_empty_list_uses_custom_model(mock_http):
    def handler(request):
        return httpx.Response(200, json={"data": []})

    mock_http(discovery, handler)
    connected = await connect_agent(AgentConfig(id="A", name="Alice", api_key="or-key"))

    assert connected.is_connected
    assert connected.model == CUSTOM_MODEL


@pytest.mark.asyncio
async def test_connect_agent_without_key():
    agent = await connect_agent(AgentConfig(id="B", name="Bob", provider=Provider.GROQ))
    assert agent.status == ConnectionStatus.DISCONNECTED
    assert agent.connection_error == "Missing API key"


@pytest.mark.asyncio
async def test_connect_agent_with_no_models(mock_http):
    mock_http(discovery, lambda request: httpx.Response(200, json={"data": []}))
    agent = await connect_agent(AgentConfig(id="B", name="Bob", provider=Provider.GROQ, api_key="gsk"))

    assert not agent.is_connected
    assert agent.connection_error == "No models found for this API key"


@pytest.mark.asyncio
async def test_connect_agent_network_failure(mock_http):
    def handler(request):
        raise httpx.ConnectError("name resolution failed", request=request)

    mock_http(discovery, handler)
    agent = await connect_agent(AgentConfig(id="A", name="Alice", provider=Provider.OPENAI, api_key="sk"))

    assert not agent.is_connected
    assert "Could not reach openai" in agent.connection_error


def test_disconnect_clears_models():
    agent = AgentConfig(
        id="A",
        name="Alice",
        status=ConnectionStatus.CONNECTED,
        model="m",
        models=[ModelInfo(id="m", name="M")],
    )
    agent = disconnect_agent(agent)
    assert agent.status == ConnectionStatus.DISCONNECTED
    assert agent.models == []
    assert agent.model == ""


def test_filter_and_group_models():
    models = [
        ModelInfo(id="openai/gpt-4o", name="GPT-4o"),
        ModelInfo(id="openai/gpt-4o-mini", name="GPT-4o mini"),
        ModelInfo(id="meta-llama/llama-3-70b", name="Llama 3 70B"),
        ModelInfo(id="standalone", name="Standalone"),
    ]

    assert [m.id for m in filter_models(models, "MINI")] == ["openai/gpt-4o-mini"]
    assert [m.id for m in filter_models(models, "llama")] == ["meta-llama/llama-3-70b"]
    assert filter_models(models, "  ") == models

    groups = group_by_vendor(models)
    assert list(groups) == ["meta-llama", "openai", "other"]
    assert len(groups["openai"]) == 2
