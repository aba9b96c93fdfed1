from __future__ import annotations

import asyncio
import random
from typing import Any, Awaitable, Callable, Dict, List, Optional

from loguru import logger

from .errors import ArenaError
from .history import HistoryStore
from .llm import TURN_DELAY_SECONDS
from .pricing import calculate_turn_cost
from .router import route_message
from .schemas import (
    AGENT_IDS,
    SYSTEM_SENDER,
    AgentConfig,
    ChatResponse,
    Message,
    OutputLimit,
    SavedChat,
    new_id,
    now_ms,
)
from .states import SimulationState, SimulationStatus
from .tokens import context_budget


Router = Callable[..., Awaitable[ChatResponse]]


class ConversationManager:
    """Turn engine for a two-agent conversation.

    The manager owns the SimulationState and the live transcript; every
    mutation goes through the command methods below or through `step()`.
    With a running asyncio loop, commands schedule a driver task that waits
    `turn_delay` seconds between turns. Without one, callers invoke `step()`
    themselves.

    start/pause/stop/reset bump an epoch counter. A step remembers the epoch
    it started under and drops the provider's answer if the epoch moved while
    the call was in flight.
    """

    def __init__(
        self,
        agent_a: AgentConfig,
        agent_b: AgentConfig,
        history_store: Optional[HistoryStore] = None,
        *,
        initial_topic: str = "",
        scenario_name: str = "Custom",
        max_iterations: int = 10,
        turn_delay: Optional[float] = None,
        router: Router = route_message,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.agents: Dict[str, AgentConfig] = {"A": agent_a, "B": agent_b}
        self.history_store = history_store
        self.initial_topic = initial_topic
        self.scenario_name = scenario_name
        self.state = SimulationState(max_iterations=max_iterations)
        self.messages: List[Message] = []
        self.costs: Dict[str, float] = {"A": 0.0, "B": 0.0}
        self.turn_delay = TURN_DELAY_SECONDS if turn_delay is None else turn_delay
        self.router = router
        self._rng = rng or random.Random()
        self._epoch = 0
        self._task: Optional[asyncio.Task] = None
        self._task_epoch = -1
        self._viewing_saved = False

    @property
    def agent_a(self) -> AgentConfig:
        return self.agents["A"]

    @property
    def agent_b(self) -> AgentConfig:
        return self.agents["B"]

    @property
    def total_cost(self) -> float:
        return self.costs["A"] + self.costs["B"]

    @property
    def epoch(self) -> int:
        return self._epoch

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def start(self) -> bool:
        """Start a new conversation from idle, or resume a paused one.

        Returns False when nothing happened, e.g. an agent still lacks a
        connection or a model.
        """
        st = self.state
        if st.status == SimulationStatus.PAUSED:
            self._epoch += 1
            st.status = SimulationStatus.RUNNING
            self._log("Simulation resumed.")
            self._schedule()
            return True
        if st.status != SimulationStatus.IDLE:
            logger.warning(f"chat_start_ignored | status={st.status.value}")
            return False

        not_ready = [a.id for a in self.agents.values() if not a.is_ready]
        if not_ready:
            logger.warning(
                f"chat_start_blocked | agents={','.join(not_ready)} | "
                "load API keys, connect both agents and select a model"
            )
            return False

        self._epoch += 1
        self._viewing_saved = False
        starter = self._rng.choice(AGENT_IDS)
        self.costs = {"A": 0.0, "B": 0.0}
        self.messages = [Message.create(SYSTEM_SENDER, self.initial_topic)]
        st.status = SimulationStatus.RUNNING
        st.iteration_count = 0
        st.current_turn = starter
        st.error = None
        st.waiting_for_manual = False
        st.logs = []
        logger.info(
            f"chat_start | a={self.agent_a.name} ({self.agent_a.provider.value}/{self.agent_a.model}) | "
            f"b={self.agent_b.name} ({self.agent_b.provider.value}/{self.agent_b.model}) | "
            f"starter={starter} max_iterations={st.max_iterations}"
        )
        self._log(f"Simulation started. {self.agents[starter].name} goes first.")
        self._schedule()
        return True

    def pause(self) -> bool:
        if self.state.status != SimulationStatus.RUNNING:
            return False
        self._epoch += 1
        self.state.status = SimulationStatus.PAUSED
        self._log("Simulation paused.")
        return True

    def stop(self) -> bool:
        if self.state.status == SimulationStatus.IDLE:
            return False
        self._epoch += 1
        self.state.status = SimulationStatus.COMPLETED
        self._log("Simulation stopped by the user.")
        return True

    def reset(self) -> Optional[SavedChat]:
        """Archive the transcript (if it has more than the seed) and return to idle."""
        self._epoch += 1
        self._cancel_task()

        saved = None
        if len(self.messages) > 1 and not self._viewing_saved:
            saved = self.snapshot()
            if self.history_store is not None:
                self.history_store.save(saved)

        self.messages = []
        self.costs = {"A": 0.0, "B": 0.0}
        self._viewing_saved = False
        st = self.state
        st.status = SimulationStatus.IDLE
        st.iteration_count = 0
        st.current_turn = None
        st.waiting_for_manual = False
        st.error = None
        st.logs = []
        logger.info(f"chat_reset | archived={saved.id if saved else None}")
        return saved

    def advance_manually(self) -> bool:
        if not self.state.waiting_for_manual:
            return False
        self.state.waiting_for_manual = False
        self._schedule()
        return True

    def toggle_manual_mode(self, enabled: bool) -> None:
        st = self.state
        st.manual_mode = enabled
        if not enabled and st.waiting_for_manual:
            st.waiting_for_manual = False
            self._schedule()

    def configure(
        self,
        max_iterations: Optional[int] = None,
        use_max_tokens: Optional[bool] = None,
        max_tokens: Optional[int] = None,
    ) -> None:
        st = self.state
        if max_iterations is not None:
            if max_iterations < 1:
                raise ValueError("max_iterations must be at least 1")
            st.max_iterations = max_iterations
        if use_max_tokens is not None:
            st.use_max_tokens = use_max_tokens
        if max_tokens is not None:
            if max_tokens < 1:
                raise ValueError("max_tokens must be at least 1")
            st.max_tokens = max_tokens

    def load_chat(self, chat: SavedChat) -> bool:
        """Show a saved transcript. Agents and costs are left untouched."""
        if self.state.status == SimulationStatus.RUNNING:
            logger.warning("chat_load_blocked | pause the simulation before loading history")
            return False
        self._epoch += 1
        self._cancel_task()
        self.messages = list(chat.messages)
        self._viewing_saved = True
        self.state.status = SimulationStatus.IDLE
        self.state.error = None
        self.state.current_turn = None
        self.state.waiting_for_manual = False
        self.state.logs = [f"History loaded: {chat.scenario_name}"]
        return True

    # ------------------------------------------------------------------
    # Turn execution
    # ------------------------------------------------------------------

    async def step(self) -> None:
        st = self.state
        if not st.can_step:
            return

        if st.iteration_count >= st.max_iterations:
            st.status = SimulationStatus.COMPLETED
            self._log("Max iterations reached.")
            logger.info(
                f"chat_end | iterations={st.iteration_count} "
                f"cost_a={self.costs['A']:.6f} cost_b={self.costs['B']:.6f}"
            )
            return

        speaker = self.agents[st.current_turn or AGENT_IDS[0]]
        other_id = self._other(speaker.id)
        if not speaker.is_ready:
            st.status = SimulationStatus.ERROR
            st.error = f"Agent {speaker.id} ({speaker.name}) is not connected or has no model selected."
            self._log(st.error)
            return

        epoch = self._epoch
        try:
            response = await self.router(
                speaker.provider,
                speaker.api_key,
                speaker.model,
                speaker.system_prompt,
                list(self.messages),
                speaker.id,
                context_budget(st.max_iterations),
                OutputLimit(enabled=st.use_max_tokens, limit=st.max_tokens),
            )
        except ArenaError as exc:
            self._fail_turn(epoch, speaker, str(exc))
            return
        except Exception as exc:
            logger.exception(f"chat_turn_crashed | spk={speaker.id}")
            self._fail_turn(epoch, speaker, str(exc) or exc.__class__.__name__)
            return

        if epoch != self._epoch:
            logger.info(f"chat_stale_response | spk={speaker.id} epoch={epoch} current={self._epoch}")
            return

        if response.usage is not None:
            self.costs[speaker.id] += calculate_turn_cost(
                speaker, response.usage.prompt_tokens, response.usage.completion_tokens
            )
        self.messages.append(Message.create(speaker.id, response.content))
        st.iteration_count += 1
        st.current_turn = other_id
        st.waiting_for_manual = st.manual_mode
        self._log(f"{speaker.name} finished their turn.")
        self._log_turn(speaker.id, response.content)

    async def run(self) -> Dict[str, Any]:
        """Start (or resume) and wait until the engine stops scheduling turns."""
        if self.state.status in (SimulationStatus.IDLE, SimulationStatus.PAUSED):
            self.start()
        await self.wait()
        return self.summary()

    async def wait(self) -> None:
        while self._task is not None and not self._task.done():
            await asyncio.wait({self._task})

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def snapshot(self) -> SavedChat:
        return SavedChat(
            id=new_id(),
            scenario_name=self.scenario_name,
            date=now_ms(),
            messages=list(self.messages),
            agent_a_name=self.agent_a.name,
            agent_b_name=self.agent_b.name,
            cost_total=self.total_cost,
        )

    def summary(self) -> Dict[str, Any]:
        st = self.state
        return {
            "status": st.status.value,
            "iterations": st.iteration_count,
            "max_iterations": st.max_iterations,
            "error": st.error,
            "waiting_for_manual": st.waiting_for_manual,
            "costs": dict(self.costs, total=self.total_cost),
            "logs": list(st.logs),
            "conversation": [m.to_dict() for m in self.messages],
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _other(agent_id: str) -> str:
        return "B" if agent_id == "A" else "A"

    def _fail_turn(self, epoch: int, speaker: AgentConfig, text: str) -> None:
        if epoch != self._epoch:
            logger.info(f"chat_stale_failure | spk={speaker.id} | {text}")
            return
        st = self.state
        self.messages.append(Message.create(speaker.id, f"Error: {text}", is_error=True))
        st.status = SimulationStatus.ERROR
        st.error = text
        self._log(f"Error on {speaker.name}'s turn: {text}")
        logger.error(f"chat_turn_failed | spk={speaker.id} provider={speaker.provider.value} | {text}")

    def _schedule(self) -> None:
        if not self.state.can_step:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        if self._task is not None and not self._task.done():
            if self._task_epoch == self._epoch:
                return
            self._task.cancel()
        self._task_epoch = self._epoch
        self._task = loop.create_task(self._drive(self._epoch))

    def _cancel_task(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def _drive(self, epoch: int) -> None:
        while self._epoch == epoch and self.state.can_step:
            await asyncio.sleep(self.turn_delay)
            if self._epoch != epoch or not self.state.can_step:
                return
            await self.step()

    def _log(self, line: str) -> None:
        self.state.logs.append(line)
        logger.debug(f"chat_log | {line}")

    def _log_turn(self, speaker_id: str, text: str) -> None:
        raw = text or ""
        snippet = raw if len(raw) <= 400 else raw[:400] + "..."
        one_line = " ".join(snippet.split())
        st = self.state
        logger.info(
            f"chat_turn | spk={speaker_id} t={st.iteration_count}/{st.max_iterations} "
            f"cost={self.costs[speaker_id]:.6f} | msg='{one_line}'"
        )
