"""Token estimation and context pruning.

Token counts here are a heuristic (about four characters per token), not the
output of any provider's tokenizer. Providers may still reject a request as
too long even after pruning; that drift is accepted.
"""

from __future__ import annotations

import math
from typing import List, Sequence, Tuple

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from .schemas import SYSTEM_SENDER, Message


CHARS_PER_TOKEN = 4
RESPONSE_RESERVE_TOKENS = 500
BASE_CONTEXT_TOKENS = 3000
TRUNCATION_MARKER = "... [truncated to fit context]"


def estimate_tokens(text: str | None) -> int:
    return math.ceil(len(text or "") / CHARS_PER_TOKEN)


def context_budget(max_iterations: int) -> int:
    """Longer conversations get proportionally more context headroom."""
    return max(BASE_CONTEXT_TOKENS, max_iterations * BASE_CONTEXT_TOKENS)


def truncate_system_prompt(
    system_prompt: str,
    context_limit: int,
    marker: str = TRUNCATION_MARKER,
) -> Tuple[str, int]:
    """Return the prompt that fits `context_limit` and its estimated cost."""
    tokens = estimate_tokens(system_prompt)
    if tokens <= context_limit:
        return system_prompt, tokens
    prompt = system_prompt[: max(0, context_limit) * CHARS_PER_TOKEN] + marker
    return prompt, estimate_tokens(prompt)


def conversation_turns(history: Sequence[Message]) -> List[Message]:
    return [m for m in history if m.sender != SYSTEM_SENDER]


def map_role(message: Message, speaker_id: str) -> BaseMessage:
    # The speaker sees its own turns as assistant output, the opponent's as user input
    if message.sender == speaker_id:
        return AIMessage(content=message.text)
    return HumanMessage(content=message.text)


def prune_history(
    system_prompt: str,
    history: Sequence[Message],
    speaker_id: str,
    context_limit: int,
) -> List[BaseMessage]:
    prompt, system_tokens = truncate_system_prompt(system_prompt, context_limit)
    mapped = [map_role(m, speaker_id) for m in conversation_turns(history)]

    available = context_limit - system_tokens - RESPONSE_RESERVE_TOKENS
    kept: List[BaseMessage] = []
    used = 0
    for msg in reversed(mapped):
        cost = estimate_tokens(msg.content)
        if used + cost > available:
            break
        kept.append(msg)
        used += cost
    kept.reverse()

    return [SystemMessage(content=prompt), *kept]
