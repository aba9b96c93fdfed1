"""Per-provider request/response translation.

OpenRouter, OpenAI and Groq speak the OpenAI chat-completions dialect and go
through a LangChain ChatOpenAI client. Gemini has its own schema (separate
system instruction, `model`/`user` roles, usage metadata) and is called over
plain HTTP.
"""

from __future__ import annotations

import time
from typing import Any, Dict, List, Optional, Sequence

import httpx
import openai
from langchain_core.messages import BaseMessage
from loguru import logger

from .errors import NetworkError, ProviderError
from .llm import TEMPERATURE, get_chat_client, http_client
from .schemas import ChatResponse, Message, Provider, TokenUsage
from .tokens import conversation_turns, estimate_tokens, prune_history, truncate_system_prompt


NO_RESPONSE = "(no response)"
GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
GEMINI_TRUNCATION_MARKER = "... [truncated]"


def error_from_response(provider: str, response: httpx.Response, fallback: str) -> ProviderError:
    """Prefer the provider's `error.message`, else a generic status message."""
    message = None
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict):
            message = err.get("message")
        elif isinstance(err, str):
            message = err
    return ProviderError(provider, response.status_code, message or fallback)


def _status_error_message(exc: openai.APIStatusError) -> str:
    body = exc.body
    if isinstance(body, dict):
        if isinstance(body.get("message"), str) and body["message"]:
            return body["message"]
        err = body.get("error")
        if isinstance(err, dict) and err.get("message"):
            return err["message"]
    return f"Error {exc.status_code}"


def _content_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = [p.get("text", "") if isinstance(p, dict) else str(p) for p in content]
        return "".join(parts)
    return ""


class OpenAICompatibleAdapter:
    def __init__(self, provider: Provider, base_url: str, attribution: bool = False) -> None:
        self.provider = provider
        self.base_url = base_url
        self.attribution = attribution

    def build_messages(
        self,
        system_prompt: str,
        history: Sequence[Message],
        speaker_id: str,
        context_limit: int,
    ) -> List[BaseMessage]:
        return prune_history(system_prompt, history, speaker_id, context_limit)

    async def send(
        self,
        api_key: str,
        model: str,
        system_prompt: str,
        history: Sequence[Message],
        speaker_id: str,
        context_limit: int,
        max_tokens: Optional[int] = None,
    ) -> ChatResponse:
        messages = self.build_messages(system_prompt, history, speaker_id, context_limit)
        client = get_chat_client(self.base_url, api_key, model, max_tokens, self.attribution)
        name = self.provider.value

        t0 = time.perf_counter()
        try:
            result = await client.ainvoke(messages)
        except openai.APIStatusError as exc:
            raise ProviderError(name, exc.status_code, _status_error_message(exc)) from exc
        except openai.APIConnectionError as exc:
            raise NetworkError(name, f"Could not reach {name}: {exc}") from exc
        dt = time.perf_counter() - t0
        logger.info(f"llm_call | provider={name} model={model} speaker={speaker_id} msgs={len(messages)} dt={dt:.2f}s")

        text = _content_text(result.content)
        usage = TokenUsage.from_openai((result.response_metadata or {}).get("token_usage"))
        return ChatResponse(content=text or NO_RESPONSE, usage=usage)


def build_gemini_payload(
    system_prompt: str,
    history: Sequence[Message],
    speaker_id: str,
    context_limit: int,
    max_tokens: Optional[int] = None,
) -> Dict[str, Any]:
    """Gemini request body, pruned inline against the whole budget."""
    prompt, used = truncate_system_prompt(system_prompt, context_limit, marker=GEMINI_TRUNCATION_MARKER)

    kept: List[Message] = []
    for msg in reversed(conversation_turns(history)):
        cost = estimate_tokens(msg.text)
        if used + cost > context_limit:
            break
        kept.append(msg)
        used += cost
    kept.reverse()

    payload: Dict[str, Any] = {
        "contents": [
            {"role": "model" if m.sender == speaker_id else "user", "parts": [{"text": m.text}]}
            for m in kept
        ],
        "generationConfig": {"temperature": TEMPERATURE},
    }
    if max_tokens:
        payload["generationConfig"]["maxOutputTokens"] = max_tokens
    if prompt:
        payload["systemInstruction"] = {"parts": [{"text": prompt}]}
    return payload


def _gemini_text(data: Dict[str, Any]) -> str:
    try:
        return data["candidates"][0]["content"]["parts"][0].get("text") or ""
    except (KeyError, IndexError, TypeError):
        return ""


class GeminiAdapter:
    provider = Provider.GEMINI

    def __init__(self, base_url: str = GEMINI_BASE_URL) -> None:
        self.base_url = base_url.rstrip("/")

    def endpoint(self, model: str) -> str:
        model_id = model if model.startswith("models/") else f"models/{model}"
        return f"{self.base_url}/{model_id}:generateContent"

    async def send(
        self,
        api_key: str,
        model: str,
        system_prompt: str,
        history: Sequence[Message],
        speaker_id: str,
        context_limit: int,
        max_tokens: Optional[int] = None,
    ) -> ChatResponse:
        payload = build_gemini_payload(system_prompt, history, speaker_id, context_limit, max_tokens)
        name = self.provider.value

        t0 = time.perf_counter()
        async with http_client() as client:
            try:
                resp = await client.post(self.endpoint(model), params={"key": api_key}, json=payload)
            except httpx.HTTPError as exc:
                raise NetworkError(name, f"Could not reach {name}: {exc}") from exc
        dt = time.perf_counter() - t0

        if resp.is_error:
            raise error_from_response(name, resp, f"Gemini Error {resp.status_code}")
        try:
            data = resp.json()
        except ValueError as exc:
            raise ProviderError(name, resp.status_code, "Gemini returned a non-JSON response") from exc
        logger.info(f"llm_call | provider={name} model={model} speaker={speaker_id} msgs={len(payload['contents'])} dt={dt:.2f}s")

        text = _gemini_text(data)
        return ChatResponse(content=text or NO_RESPONSE, usage=TokenUsage.from_gemini(data.get("usageMetadata")))
