"""
Two-agent LLM conversation arena.

Modules:
- manager: ConversationManager turn engine (state machine + scheduling)
- router / adapters: provider dispatch and OpenAI-compatible / Gemini wire formats
- tokens: heuristic token estimation and context pruning
- pricing: per-turn cost from discovered model prices
- discovery: model listing and agent connection
- history: saved-chat persistence
- scenarios / transcript: preset catalog and Markdown export
- stream_runner: synchronous driver for UIs
"""

from .errors import ArenaError, ConfigurationError, NetworkError, ProviderError
from .manager import ConversationManager
from .schemas import (
    AgentConfig,
    ChatResponse,
    ConnectionStatus,
    Message,
    ModelInfo,
    OutputLimit,
    Provider,
    SavedChat,
    TokenUsage,
)
from .states import SimulationState, SimulationStatus

__all__ = [
    "ArenaError",
    "ConfigurationError",
    "NetworkError",
    "ProviderError",
    "ConversationManager",
    "AgentConfig",
    "ChatResponse",
    "ConnectionStatus",
    "Message",
    "ModelInfo",
    "OutputLimit",
    "Provider",
    "SavedChat",
    "TokenUsage",
    "SimulationState",
    "SimulationStatus",
]
