"""Model discovery for agent setup.

Lists the models a credential can use on each provider. This feeds the
agent configuration (model picker, price table) and is never called from the
turn loop.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, List, Union

import httpx
from loguru import logger

from .adapters import GEMINI_BASE_URL, error_from_response
from .errors import ArenaError, ConfigurationError, NetworkError, ProviderError
from .llm import http_client
from .router import resolve_provider
from .schemas import AgentConfig, ConnectionStatus, ModelInfo, Provider


OPENROUTER_AUTH_URL = "https://openrouter.ai/api/v1/auth/key"
MODEL_LIST_URLS: Dict[Provider, str] = {
    Provider.OPENROUTER: "https://openrouter.ai/api/v1/models",
    Provider.OPENAI: "https://api.openai.com/v1/models",
    Provider.GROQ: "https://api.groq.com/openai/v1/models",
    Provider.GEMINI: f"{GEMINI_BASE_URL}/models",
}
CUSTOM_MODEL = "custom"


async def _get(client: httpx.AsyncClient, provider: Provider, url: str, **kwargs) -> httpx.Response:
    try:
        return await client.get(url, **kwargs)
    except httpx.HTTPError as exc:
        raise NetworkError(provider.value, f"Could not reach {provider.value}: {exc}") from exc


async def fetch_models(provider: Union[Provider, str], api_key: str) -> List[ModelInfo]:
    prov = resolve_provider(provider)
    if not api_key or not api_key.strip():
        raise ConfigurationError("An API key is required to list models")

    url = MODEL_LIST_URLS[prov]
    async with http_client() as client:
        if prov == Provider.GEMINI:
            resp = await _get(client, prov, url, params={"key": api_key})
        else:
            headers = {"Authorization": f"Bearer {api_key}"}
            if prov == Provider.OPENROUTER:
                # The model list is public; validate the key separately
                auth = await _get(client, prov, OPENROUTER_AUTH_URL, headers=headers)
                if auth.is_error:
                    raise ConfigurationError("Invalid or expired OpenRouter API key")
            resp = await _get(client, prov, url, headers=headers)

    if resp.is_error:
        raise error_from_response(prov.value, resp, f"Error {resp.status_code}: {resp.reason_phrase}")
    try:
        data = resp.json()
    except ValueError as exc:
        raise ProviderError(prov.value, resp.status_code, "Model list was not valid JSON") from exc

    if prov == Provider.GEMINI:
        raw = data.get("models") if isinstance(data, dict) else None
        models = [ModelInfo.from_gemini_payload(m) for m in raw or [] if isinstance(m, dict)]
    else:
        raw = data.get("data", data) if isinstance(data, dict) else data
        models = [ModelInfo.from_openai_payload(m) for m in raw or [] if isinstance(m, dict)]

    models.sort(key=lambda m: m.name.lower())
    logger.info(f"discovery | provider={prov.value} models={len(models)}")
    return models


async def connect_agent(agent: AgentConfig) -> AgentConfig:
    """Validate the agent's credential by listing its models.

    Returns an updated copy; failures are reported through `connection_error`
    instead of raising.
    """
    if not agent.api_key or not agent.api_key.strip():
        return replace(agent, connection_error="Missing API key")

    try:
        models = await fetch_models(agent.provider, agent.api_key)
        if not models and agent.provider != Provider.OPENROUTER:
            raise ConfigurationError("No models found for this API key")
    except ArenaError as e:
        logger.warning(f"discovery_failed | agent={agent.id} provider={agent.provider.value} | {e}")
        return replace(
            agent,
            status=ConnectionStatus.DISCONNECTED,
            connection_error=str(e) or "Connection error",
        )

    default_model = models[0].id if models else CUSTOM_MODEL
    return replace(
        agent,
        status=ConnectionStatus.CONNECTED,
        connection_error=None,
        models=models,
        model=default_model,
    )


def disconnect_agent(agent: AgentConfig) -> AgentConfig:
    return replace(agent, status=ConnectionStatus.DISCONNECTED, models=[], model="", connection_error=None)


def filter_models(models: List[ModelInfo], query: str) -> List[ModelInfo]:
    q = (query or "").strip().lower()
    if not q:
        return list(models)
    return [m for m in models if q in m.name.lower() or q in m.id.lower()]


def group_by_vendor(models: List[ModelInfo]) -> Dict[str, List[ModelInfo]]:
    """Group OpenRouter `vendor/model` ids by vendor, sorted by vendor name."""
    groups: Dict[str, List[ModelInfo]] = {}
    for m in models:
        vendor = m.id.split("/", 1)[0] if "/" in m.id else "other"
        groups.setdefault(vendor, []).append(m)
    return {k: groups[k] for k in sorted(groups)}
