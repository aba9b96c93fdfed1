import httpx
import pytest

from arena.schemas import AgentConfig, ConnectionStatus, ModelInfo, Provider


def make_agent(agent_id, name=None, model="test-model", provider=Provider.OPENROUTER, **kwargs):
    """A connected agent with a priced model."""
    kwargs.setdefault(
        "models",
        [ModelInfo(id=model, name="Test Model", prompt_price=0.001, completion_price=0.002)],
    )
    return AgentConfig(
        id=agent_id,
        name=name or f"Agent {agent_id}",
        provider=provider,
        api_key="sk-test",
        model=model,
        system_prompt=f"You are agent {agent_id}.",
        status=ConnectionStatus.CONNECTED,
        **kwargs,
    )


@pytest.fixture
def agents():
    return make_agent("A", "Alice"), make_agent("B", "Bob")


@pytest.fixture
def mock_http(monkeypatch):
    """Route arena's outbound httpx traffic to a handler: mock_http(module, handler)."""

    def install(module, handler):
        monkeypatch.setattr(module, "http_client", lambda: httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    return install
