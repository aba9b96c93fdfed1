from __future__ import annotations

import argparse
import asyncio
import json
from dataclasses import replace
from pathlib import Path

from loguru import logger

from arena.discovery import connect_agent
from arena.history import JsonHistoryStore
from arena.llm import HISTORY_PATH, configure_logging
from arena.manager import ConversationManager
from arena.scenarios import SCENARIOS, apply_scenario, default_agents, get_scenario
from arena.schemas import Provider
from arena.states import SimulationStatus
from arena.transcript import export_markdown


def parse_args() -> argparse.Namespace:
    providers = [p.value for p in Provider]
    p = argparse.ArgumentParser(description="Run a two-agent LLM conversation from the command line")
    p.add_argument("--scenario", type=str, default=SCENARIOS[0].id, choices=[s.id for s in SCENARIOS], help="Scenario preset")
    p.add_argument("--topic", type=str, help="Override the scenario's opening topic")
    p.add_argument("--max-iterations", type=int, default=10, help="Turns before the conversation completes")
    p.add_argument("--max-tokens", type=int, help="Cap each reply at this many output tokens")
    p.add_argument("--manual", action="store_true", help="Wait for Enter before every turn")
    p.add_argument("--export", type=str, help="Write the transcript as Markdown to this path")
    p.add_argument("--history", type=str, default=str(HISTORY_PATH), help="Saved-chat JSON file")
    p.add_argument("--log-level", type=str, help="Log level (default from ARENA_LOG_LEVEL)")
    # Agent A
    p.add_argument("--a-provider", type=str, choices=providers, default=Provider.OPENROUTER.value)
    p.add_argument("--a-model", type=str, help="Model id for agent A (default: first listed)")
    p.add_argument("--a-key", type=str, help="API key for agent A (default: AGENT_A_API_KEY)")
    # Agent B
    p.add_argument("--b-provider", type=str, choices=providers, default=Provider.OPENROUTER.value)
    p.add_argument("--b-model", type=str, help="Model id for agent B (default: first listed)")
    p.add_argument("--b-key", type=str, help="API key for agent B (default: AGENT_B_API_KEY)")
    return p.parse_args()


async def prepare_agent(agent, provider: str, key: str | None, model: str | None):
    agent = replace(agent, provider=Provider(provider), api_key=key or agent.api_key)
    agent = await connect_agent(agent)
    if not agent.is_connected:
        raise SystemExit(f"Agent {agent.id} could not connect: {agent.connection_error}")
    if model:
        agent = replace(agent, model=model)
    logger.info(f"agent_ready | id={agent.id} provider={agent.provider.value} model={agent.model}")
    return agent


async def main() -> None:
    args = parse_args()
    configure_logging(args.log_level)

    scenario = get_scenario(args.scenario)
    agent_a, agent_b = default_agents()
    agent_a = await prepare_agent(apply_scenario(scenario, agent_a), args.a_provider, args.a_key, args.a_model)
    agent_b = await prepare_agent(apply_scenario(scenario, agent_b), args.b_provider, args.b_key, args.b_model)

    manager = ConversationManager(
        agent_a,
        agent_b,
        JsonHistoryStore(args.history),
        initial_topic=args.topic or scenario.initial_topic,
        scenario_name=scenario.name,
        max_iterations=args.max_iterations,
    )
    if args.max_tokens:
        manager.configure(use_max_tokens=True, max_tokens=args.max_tokens)
    manager.toggle_manual_mode(args.manual)

    result = await manager.run()
    while manager.state.status == SimulationStatus.RUNNING and manager.state.waiting_for_manual:
        last = manager.messages[-1]
        print(f"\n[{last.sender}] {last.text}\n")
        await asyncio.to_thread(input, "Press Enter for the next turn...")
        manager.advance_manually()
        await manager.wait()
        result = manager.summary()

    if args.export:
        md = export_markdown(
            manager.messages,
            agent_a,
            agent_b,
            scenario.name,
            manager.costs["A"],
            manager.costs["B"],
        )
        Path(args.export).write_text(md, encoding="utf-8")
        logger.info(f"Wrote transcript to {args.export}")

    print(json.dumps(result, ensure_ascii=False, indent=2))
    manager.reset()


if __name__ == "__main__":
    asyncio.run(main())
