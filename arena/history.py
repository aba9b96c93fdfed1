"""Saved-chat persistence.

The engine hands a SavedChat snapshot to a HistoryStore on reset and never
reads from it during a run. JsonHistoryStore keeps every chat in a single
JSON array file, the same blob shape a browser client would keep under one
local-storage key.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List

from loguru import logger

from .schemas import SavedChat


class HistoryStore(ABC):
    @abstractmethod
    def save(self, chat: SavedChat) -> None:
        ...

    @abstractmethod
    def load_all(self) -> List[SavedChat]:
        ...

    @abstractmethod
    def clear(self) -> None:
        ...

    @abstractmethod
    def delete(self, chat_id: str) -> bool:
        ...

    def export_json(self) -> str:
        return json.dumps([c.to_dict() for c in self.load_all()], ensure_ascii=False, indent=2)

    def storage_size(self) -> str:
        # UTF-16 sizing, matching how browsers account local storage
        return f"{len(self.export_json()) * 2 / 1024:.2f} KB"


class InMemoryHistoryStore(HistoryStore):
    def __init__(self) -> None:
        self._chats: List[SavedChat] = []

    def save(self, chat: SavedChat) -> None:
        self._chats.append(chat)

    def load_all(self) -> List[SavedChat]:
        return list(self._chats)

    def clear(self) -> None:
        self._chats = []

    def delete(self, chat_id: str) -> bool:
        before = len(self._chats)
        self._chats = [c for c in self._chats if c.id != chat_id]
        return len(self._chats) != before


class JsonHistoryStore(HistoryStore):
    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def _read(self) -> List[dict]:
        if not self.path.is_file():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error(f"history_load_failed | path={self.path} | {e}")
            return []
        if not isinstance(data, list):
            logger.error(f"history_load_failed | path={self.path} | expected a JSON array")
            return []
        return data

    def _write(self, items: List[dict]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(items, ensure_ascii=False, indent=2), encoding="utf-8")

    def save(self, chat: SavedChat) -> None:
        items = self._read()
        items.append(chat.to_dict())
        self._write(items)
        logger.info(f"history_saved | id={chat.id} scenario={chat.scenario_name} messages={len(chat.messages)}")

    def load_all(self) -> List[SavedChat]:
        return [SavedChat.from_dict(obj) for obj in self._read() if isinstance(obj, dict)]

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
        logger.info(f"history_cleared | path={self.path}")

    def delete(self, chat_id: str) -> bool:
        items = self._read()
        remaining = [obj for obj in items if str(obj.get("id")) != chat_id]
        if len(remaining) == len(items):
            return False
        self._write(remaining)
        return True
