from __future__ import annotations

import asyncio
import threading
import time
from typing import Any, Callable, Coroutine, Dict, Generator, Optional, TypeVar

from loguru import logger

from .manager import ConversationManager
from .states import SimulationStatus


T = TypeVar("T")

_loop: Optional[asyncio.AbstractEventLoop] = None
_loop_lock = threading.Lock()


def _background_loop() -> asyncio.AbstractEventLoop:
    global _loop
    with _loop_lock:
        if _loop is None or _loop.is_closed():
            _loop = asyncio.new_event_loop()
            threading.Thread(target=_loop.run_forever, name="arena-loop", daemon=True).start()
            logger.debug("stream_runner | started background event loop")
        return _loop


def run_sync(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine from synchronous code and return its result.

    Every caller, on any thread (one per Streamlit session), submits to the
    same loop running in a daemon thread. Cached chat clients keep connection
    pools bound to the loop that first used them, so that loop never closes.
    """
    return asyncio.run_coroutine_threadsafe(coro, _background_loop()).result()


def run_chat_stream(
    manager: ConversationManager,
    sleep: Callable[[float], None] = time.sleep,
) -> Generator[Dict[str, Any], None, None]:
    """Synchronous streaming runner for UI. Yields events as the chat progresses.

    Starts the manager when it is idle (or paused) and drives `step()` until it
    stops scheduling turns.

    Yields dicts of shape:
      - {type: 'start', data: {starter, max_iterations}}
      - {type: 'turn', data: message dict}
      - {type: 'waiting', data: summary}   manual mode, waiting for advance
      - {type: 'end', data: summary}
    """
    st = manager.state
    if st.status in (SimulationStatus.IDLE, SimulationStatus.PAUSED):
        resumed = st.status == SimulationStatus.PAUSED
        if not manager.start():
            yield {"type": "end", "data": manager.summary()}
            return
        if not resumed:
            yield {"type": "start", "data": {"starter": st.current_turn, "max_iterations": st.max_iterations}}

    logger.info(f"ui_chat_stream | status={st.status.value} t={st.iteration_count}/{st.max_iterations}")
    while st.can_step:
        sleep(manager.turn_delay)
        seen = len(manager.messages)
        run_sync(manager.step())
        for msg in manager.messages[seen:]:
            yield {"type": "turn", "data": msg.to_dict()}

    kind = "waiting" if st.waiting_for_manual and st.status == SimulationStatus.RUNNING else "end"
    yield {"type": kind, "data": manager.summary()}
