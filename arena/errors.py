from __future__ import annotations

from typing import Optional


class ArenaError(Exception):
    """Base class for failures surfaced to the conversation engine."""


class ConfigurationError(ArenaError):
    """Missing credential, unknown provider or an agent that cannot take a turn."""


class ProviderError(ArenaError):
    def __init__(self, provider: str, status_code: Optional[int], message: str) -> None:
        self.provider = provider
        self.status_code = status_code
        self.message = message
        super().__init__(message)


class NetworkError(ArenaError):
    def __init__(self, provider: str, message: str) -> None:
        self.provider = provider
        self.message = message
        super().__init__(message)
