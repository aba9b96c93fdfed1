from unittest.mock import AsyncMock

import pytest

from arena import router
from arena.errors import ConfigurationError
from arena.schemas import ChatResponse, Message, OutputLimit, Provider


@pytest.fixture
def history():
    return [Message.create("A", "hi")]


@pytest.mark.asyncio
@pytest.mark.parametrize("key", ["", "   "])
async def test_missing_key_fails_before_dispatch(monkeypatch, history, key):
    send = AsyncMock()
    monkeypatch.setattr(router.ADAPTERS[Provider.OPENAI], "send", send)

    with pytest.raises(ConfigurationError, match="Missing API key"):
        await router.route_message(Provider.OPENAI, key, "gpt-4o", "", history, "B", 3000)
    send.assert_not_awaited()


@pytest.mark.asyncio
async def test_unknown_provider(history):
    with pytest.raises(ConfigurationError, match="Unsupported provider"):
        await router.route_message("mistral", "sk", "m", "", history, "B", 3000)


@pytest.mark.asyncio
async def test_dispatches_by_provider_tag(monkeypatch, history):
    groq = AsyncMock(return_value=ChatResponse("from groq"))
    gemini = AsyncMock(return_value=ChatResponse("from gemini"))
    monkeypatch.setattr(router.ADAPTERS[Provider.GROQ], "send", groq)
    monkeypatch.setattr(router.ADAPTERS[Provider.GEMINI], "send", gemini)

    resp = await router.route_message("groq", "sk", "llama3", "sys", history, "B", 6000)

    assert resp.content == "from groq"
    groq.assert_awaited_once_with("sk", "llama3", "sys", history, "B", 6000, max_tokens=None)
    gemini.assert_not_awaited()


@pytest.mark.asyncio
async def test_output_limit_only_applies_when_enabled(monkeypatch, history):
    send = AsyncMock(return_value=ChatResponse("ok"))
    monkeypatch.setattr(router.ADAPTERS[Provider.OPENROUTER], "send", send)

    await router.route_message(Provider.OPENROUTER, "sk", "m", "", history, "A", 3000, OutputLimit(True, 256))
    assert send.await_args.kwargs["max_tokens"] == 256

    await router.route_message(Provider.OPENROUTER, "sk", "m", "", history, "A", 3000, OutputLimit(False, 256))
    assert send.await_args.kwargs["max_tokens"] is None


def test_openai_compatible_base_urls():
    assert router.ADAPTERS[Provider.OPENROUTER].base_url == "https://openrouter.ai/api/v1"
    assert router.ADAPTERS[Provider.OPENROUTER].attribution is True
    assert router.ADAPTERS[Provider.OPENAI].base_url == "https://api.openai.com/v1"
    assert router.ADAPTERS[Provider.GROQ].base_url == "https://api.groq.com/openai/v1"


def test_every_provider_has_an_adapter():
    assert set(router.ADAPTERS) == set(Provider)
    for provider, adapter in router.ADAPTERS.items():
        assert adapter.provider == provider
