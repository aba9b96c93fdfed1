from __future__ import annotations

import os
import sys
from functools import lru_cache
from pathlib import Path
from typing import Optional

import httpx
from dotenv import load_dotenv
from langchain_openai import ChatOpenAI
from loguru import logger


# Load env from the project root first, then the working directory
_here = Path(__file__).resolve().parents[1]
for _env_path in (_here / ".env", Path.cwd() / ".env"):
    if _env_path.is_file():
        load_dotenv(dotenv_path=str(_env_path), override=False)
        break


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"config | invalid {name}={raw!r}; using {default}")
        return default


TURN_DELAY_SECONDS = _env_float("ARENA_TURN_DELAY", 1.0)
HTTP_TIMEOUT_SECONDS = _env_float("ARENA_HTTP_TIMEOUT", 60.0)
APP_TITLE = os.getenv("ARENA_APP_TITLE", "Agent Arena")
APP_URL = os.getenv("ARENA_APP_URL", "http://localhost:8501")
HISTORY_PATH = Path(os.getenv("ARENA_HISTORY_PATH", "chat_history.json"))
LOG_LEVEL = os.getenv("ARENA_LOG_LEVEL", "INFO").upper()

TEMPERATURE = 0.7


def configure_logging(level: Optional[str] = None) -> None:
    logger.remove()
    logger.add(
        sys.stdout,
        level=(level or LOG_LEVEL).upper(),
        colorize=True,
        format="{time:HH:mm:ss} | {level} | {message}",
    )


def default_api_key(agent_id: str) -> str:
    return os.getenv(f"AGENT_{agent_id.upper()}_API_KEY", "")


class CompatibleChatOpenAI(ChatOpenAI):
    """ChatOpenAI that sends the output cap as `max_tokens`.

    langchain-openai renames the cap to `max_completion_tokens` for every
    model; OpenRouter and Groq only honour `max_tokens`.
    """

    def _get_request_payload(self, input_, *, stop=None, **kwargs) -> dict:
        payload = super()._get_request_payload(input_, stop=stop, **kwargs)
        cap = payload.pop("max_completion_tokens", None)
        if cap is not None:
            payload["max_tokens"] = cap
        return payload


def build_chat_client(
    base_url: str,
    api_key: str,
    model: str,
    max_tokens: Optional[int] = None,
    attribution: bool = False,
    **extra,
) -> CompatibleChatOpenAI:
    """Build a chat client for an OpenAI-compatible endpoint.

    `attribution` adds the HTTP-Referer / X-Title headers OpenRouter uses to
    credit the calling app. Retries are disabled: a failed turn ends the run.
    """
    logger.debug(f"Initializing chat client base_url={base_url} model={model} max_tokens={max_tokens}")
    kwargs = {
        "model": model,
        "temperature": TEMPERATURE,
        "api_key": api_key,
        "base_url": base_url,
        "max_retries": 0,
        "timeout": HTTP_TIMEOUT_SECONDS,
    }
    if max_tokens:
        kwargs["max_tokens"] = max_tokens
    if attribution:
        kwargs["default_headers"] = {"HTTP-Referer": APP_URL, "X-Title": APP_TITLE}
    kwargs.update(extra)
    return CompatibleChatOpenAI(**kwargs)


@lru_cache(maxsize=16)
def get_chat_client(
    base_url: str,
    api_key: str,
    model: str,
    max_tokens: Optional[int] = None,
    attribution: bool = False,
) -> CompatibleChatOpenAI:
    return build_chat_client(base_url, api_key, model, max_tokens, attribution)


def http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS)
