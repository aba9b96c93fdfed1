from __future__ import annotations

from typing import Dict, Optional, Sequence, Union

from loguru import logger

from .adapters import GeminiAdapter, OpenAICompatibleAdapter
from .errors import ConfigurationError
from .schemas import ChatResponse, Message, OutputLimit, Provider


ADAPTERS: Dict[Provider, Union[OpenAICompatibleAdapter, GeminiAdapter]] = {
    Provider.OPENROUTER: OpenAICompatibleAdapter(
        Provider.OPENROUTER, "https://openrouter.ai/api/v1", attribution=True
    ),
    Provider.OPENAI: OpenAICompatibleAdapter(Provider.OPENAI, "https://api.openai.com/v1"),
    Provider.GROQ: OpenAICompatibleAdapter(Provider.GROQ, "https://api.groq.com/openai/v1"),
    Provider.GEMINI: GeminiAdapter(),
}


def resolve_provider(provider: Union[Provider, str]) -> Provider:
    try:
        return Provider(provider)
    except ValueError as exc:
        raise ConfigurationError(f"Unsupported provider: {provider}") from exc


async def route_message(
    provider: Union[Provider, str],
    api_key: str,
    model: str,
    system_prompt: str,
    history: Sequence[Message],
    speaker_id: str,
    context_limit: int,
    output_limit: Optional[OutputLimit] = None,
) -> ChatResponse:
    """Send one turn to the adapter registered for `provider`."""
    if not api_key or not api_key.strip():
        raise ConfigurationError("Missing API key")
    adapter = ADAPTERS[resolve_provider(provider)]

    max_tokens = output_limit.value if output_limit else None
    logger.debug(f"route | provider={adapter.provider.value} model={model} context_limit={context_limit} max_tokens={max_tokens}")
    return await adapter.send(
        api_key,
        model,
        system_prompt,
        history,
        speaker_id,
        context_limit,
        max_tokens=max_tokens,
    )
