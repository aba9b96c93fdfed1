"""Token estimation, context budget and history pruning."""

from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from arena.schemas import SYSTEM_SENDER, Message
from arena.tokens import (
    RESPONSE_RESERVE_TOKENS,
    TRUNCATION_MARKER,
    context_budget,
    estimate_tokens,
    prune_history,
)


def transcript(count, size=400):
    msgs = [Message.create(SYSTEM_SENDER, "Opening topic")]
    for i in range(count):
        sender = "A" if i % 2 == 0 else "B"
        msgs.append(Message.create(sender, f"{i:03d}" + "x" * (size - 3)))
    return msgs


def test_estimate_tokens_rounds_up():
    assert estimate_tokens("") == 0
    assert estimate_tokens(None) == 0
    assert estimate_tokens("abcd") == 1
    assert estimate_tokens("abcde") == 2


def test_context_budget_scales_with_iterations():
    assert context_budget(1) == 3000
    assert context_budget(0) == 3000
    assert context_budget(5) == 15000


def test_prune_keeps_newest_suffix_within_budget():
    history = transcript(10)  # 100 tokens per turn
    result = prune_history("", history, "A", context_limit=1000)

    assert isinstance(result[0], SystemMessage)
    kept = result[1:]
    assert len(kept) == 5
    assert [m.content for m in kept] == [m.text for m in history[-5:]]
    used = sum(estimate_tokens(m.content) for m in result)
    assert used <= 1000 - RESPONSE_RESERVE_TOKENS


def test_prune_never_exceeds_budget_for_mixed_sizes():
    history = [Message.create("A" if i % 2 else "B", "y" * (37 * i + 5)) for i in range(30)]
    for limit in (600, 900, 1500, 4000):
        result = prune_history("Be brief.", history, "B", context_limit=limit)
        total = sum(estimate_tokens(m.content) for m in result)
        assert total <= limit - RESPONSE_RESERVE_TOKENS
        kept = [m.content for m in result[1:]]
        assert kept == [m.text for m in history[len(history) - len(kept):]]


def test_role_mapping_is_symmetric():
    history = transcript(4, size=20)
    view_a = prune_history("", history, "A", context_limit=3000)[1:]
    view_b = prune_history("", history, "B", context_limit=3000)[1:]

    senders = [m.sender for m in history[1:]]
    for sender, a_msg, b_msg in zip(senders, view_a, view_b):
        if sender == "A":
            assert isinstance(a_msg, AIMessage) and isinstance(b_msg, HumanMessage)
        else:
            assert isinstance(a_msg, HumanMessage) and isinstance(b_msg, AIMessage)


def test_system_messages_are_not_sent_as_turns():
    history = [Message.create(SYSTEM_SENDER, "topic"), Message.create("A", "hi")]
    result = prune_history("prompt", history, "B", context_limit=3000)
    assert [type(m) for m in result] == [SystemMessage, HumanMessage]
    assert result[1].content == "hi"


def test_oversized_system_prompt_is_truncated_and_history_dropped():
    prompt = "p" * 8000
    result = prune_history(prompt, transcript(2, size=40), "A", context_limit=1000)

    assert len(result) == 1
    assert result[0].content == "p" * 4000 + TRUNCATION_MARKER
