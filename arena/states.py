from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class SimulationStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass
class SimulationState:
    status: SimulationStatus = SimulationStatus.IDLE
    current_turn: Optional[str] = None
    iteration_count: int = 0
    max_iterations: int = 10
    logs: List[str] = field(default_factory=list)
    use_max_tokens: bool = False
    max_tokens: int = 1000
    manual_mode: bool = False
    waiting_for_manual: bool = False
    error: Optional[str] = None

    @property
    def can_step(self) -> bool:
        return self.status == SimulationStatus.RUNNING and not self.waiting_for_manual
