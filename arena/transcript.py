from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from .schemas import SYSTEM_SENDER, AgentConfig, Message


def sender_name(message: Message, agent_a: AgentConfig, agent_b: AgentConfig) -> str:
    if message.sender == SYSTEM_SENDER:
        return "SYSTEM"
    return agent_a.name if message.sender == "A" else agent_b.name


def export_markdown(
    messages: Sequence[Message],
    agent_a: AgentConfig,
    agent_b: AgentConfig,
    scenario_name: str,
    cost_a: float = 0.0,
    cost_b: float = 0.0,
    exported_at: Optional[datetime] = None,
) -> str:
    """Render a transcript as a standalone Markdown document."""
    when = exported_at or datetime.now()
    lines = [
        "# Agent Arena - Chat Transcript",
        "",
        f"**Date:** {when.strftime('%Y-%m-%d %H:%M:%S')}",
        f"**Scenario:** {scenario_name}",
        "",
        "---",
        f"**Agent A:** {agent_a.name} ({agent_a.provider.value}/{agent_a.model})",
        f"**Agent B:** {agent_b.name} ({agent_b.provider.value}/{agent_b.model})",
        f"**Costs (estimated):** A: ${cost_a:.6f} | B: ${cost_b:.6f}",
        "---",
        "",
    ]
    for msg in messages:
        stamp = datetime.fromtimestamp(msg.timestamp / 1000).strftime("%H:%M:%S")
        lines.append(f"### {sender_name(msg, agent_a, agent_b)} ({stamp})")
        lines.append(msg.text)
        lines.append("")
    return "\n".join(lines)
