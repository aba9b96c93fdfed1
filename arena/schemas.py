from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


AGENT_IDS = ("A", "B")
SYSTEM_SENDER = "System"


class Provider(str, Enum):
    OPENROUTER = "openrouter"
    OPENAI = "openai"
    GROQ = "groq"
    GEMINI = "gemini"


class ConnectionStatus(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


def now_ms() -> int:
    return int(time.time() * 1000)


def new_id() -> str:
    return uuid.uuid4().hex


def _parse_price(value: Any) -> Optional[float]:
    # OpenRouter publishes per-token prices as decimal strings
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass
class ModelInfo:
    id: str
    name: str
    description: Optional[str] = None
    context_length: Optional[int] = None
    prompt_price: Optional[float] = None
    completion_price: Optional[float] = None

    @property
    def has_pricing(self) -> bool:
        return self.prompt_price is not None or self.completion_price is not None

    @classmethod
    def from_openai_payload(cls, obj: Dict[str, Any]) -> "ModelInfo":
        """Build from an OpenAI-style `/models` entry (OpenRouter adds name and pricing)."""
        pricing = obj.get("pricing") or {}
        return cls(
            id=obj.get("id", ""),
            name=obj.get("name") or obj.get("id", ""),
            description=obj.get("description"),
            context_length=obj.get("context_length"),
            prompt_price=_parse_price(pricing.get("prompt")),
            completion_price=_parse_price(pricing.get("completion")),
        )

    @classmethod
    def from_gemini_payload(cls, obj: Dict[str, Any]) -> "ModelInfo":
        raw = obj.get("name", "")
        model_id = raw[len("models/"):] if raw.startswith("models/") else raw
        return cls(
            id=model_id,
            name=obj.get("displayName") or raw,
            description=obj.get("description"),
            context_length=obj.get("inputTokenLimit"),
        )


@dataclass
class AgentConfig:
    id: str
    name: str
    provider: Provider = Provider.OPENROUTER
    api_key: str = ""
    model: str = ""
    system_prompt: str = ""
    status: ConnectionStatus = ConnectionStatus.DISCONNECTED
    connection_error: Optional[str] = None
    models: List[ModelInfo] = field(default_factory=list)

    @property
    def is_connected(self) -> bool:
        return self.status == ConnectionStatus.CONNECTED

    @property
    def is_ready(self) -> bool:
        return self.is_connected and bool(self.model)

    def find_model(self, model_id: Optional[str] = None) -> Optional[ModelInfo]:
        target = model_id if model_id is not None else self.model
        for m in self.models:
            if m.id == target:
                return m
        return None


@dataclass(frozen=True)
class Message:
    id: str
    sender: str
    text: str
    timestamp: int
    is_error: bool = False

    @classmethod
    def create(cls, sender: str, text: str, is_error: bool = False) -> "Message":
        return cls(id=new_id(), sender=sender, text=text, timestamp=now_ms(), is_error=is_error)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "sender": self.sender,
            "text": self.text,
            "timestamp": self.timestamp,
        }
        if self.is_error:
            data["isError"] = True
        return data

    @classmethod
    def from_dict(cls, obj: Dict[str, Any]) -> "Message":
        return cls(
            id=str(obj.get("id", "")),
            sender=obj.get("sender", SYSTEM_SENDER),
            text=obj.get("text", ""),
            timestamp=int(obj.get("timestamp", 0)),
            is_error=bool(obj.get("isError", False)),
        )


@dataclass
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    @classmethod
    def from_openai(cls, usage: Optional[Dict[str, Any]]) -> Optional["TokenUsage"]:
        if not usage:
            return None
        return cls(
            prompt_tokens=int(usage.get("prompt_tokens") or 0),
            completion_tokens=int(usage.get("completion_tokens") or 0),
            total_tokens=int(usage.get("total_tokens") or 0),
        )

    @classmethod
    def from_gemini(cls, meta: Optional[Dict[str, Any]]) -> Optional["TokenUsage"]:
        if not meta:
            return None
        return cls(
            prompt_tokens=int(meta.get("promptTokenCount") or 0),
            completion_tokens=int(meta.get("candidatesTokenCount") or 0),
            total_tokens=int(meta.get("totalTokenCount") or 0),
        )


@dataclass
class ChatResponse:
    content: str
    usage: Optional[TokenUsage] = None


@dataclass
class OutputLimit:
    enabled: bool = False
    limit: int = 1000

    @property
    def value(self) -> Optional[int]:
        return self.limit if self.enabled else None


@dataclass
class SavedChat:
    id: str
    scenario_name: str
    date: int
    messages: List[Message]
    agent_a_name: str
    agent_b_name: str
    cost_total: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "scenarioName": self.scenario_name,
            "date": self.date,
            "messages": [m.to_dict() for m in self.messages],
            "agentAName": self.agent_a_name,
            "agentBName": self.agent_b_name,
            "costTotal": self.cost_total,
        }

    @classmethod
    def from_dict(cls, obj: Dict[str, Any]) -> "SavedChat":
        return cls(
            id=str(obj.get("id", "")),
            scenario_name=obj.get("scenarioName", "Custom"),
            date=int(obj.get("date", 0)),
            messages=[Message.from_dict(m) for m in obj.get("messages", [])],
            agent_a_name=obj.get("agentAName", "A"),
            agent_b_name=obj.get("agentBName", "B"),
            cost_total=float(obj.get("costTotal", 0.0)),
        )
