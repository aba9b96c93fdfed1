from __future__ import annotations

from dataclasses import replace
from datetime import datetime

import streamlit as st
from loguru import logger

from arena.discovery import connect_agent, disconnect_agent, filter_models, group_by_vendor
from arena.history import JsonHistoryStore
from arena.llm import HISTORY_PATH, configure_logging
from arena.manager import ConversationManager
from arena.scenarios import SCENARIOS, apply_scenario, default_agents, get_scenario
from arena.schemas import SYSTEM_SENDER, AgentConfig, ConnectionStatus, Provider
from arena.states import SimulationStatus
from arena.stream_runner import run_chat_stream, run_sync
from arena.transcript import export_markdown


AVATARS = {"A": "🟦", "B": "🟪", SYSTEM_SENDER: "📜"}
PROVIDER_LABELS = {
    Provider.OPENROUTER: "OpenRouter",
    Provider.OPENAI: "OpenAI",
    Provider.GROQ: "Groq",
    Provider.GEMINI: "Gemini AI",
}


def get_manager() -> ConversationManager:
    if "manager" not in st.session_state:
        configure_logging()
        agent_a, agent_b = default_agents()
        first = SCENARIOS[0]
        st.session_state["manager"] = ConversationManager(
            agent_a,
            agent_b,
            JsonHistoryStore(HISTORY_PATH),
            initial_topic=first.initial_topic,
            scenario_name=first.name,
        )
    return st.session_state["manager"]


def on_scenario_change() -> None:
    manager = get_manager()
    scenario = get_scenario(st.session_state["scenario_id"])
    manager.scenario_name = scenario.name
    manager.initial_topic = scenario.initial_topic
    st.session_state["topic"] = scenario.initial_topic
    for agent_id in ("A", "B"):
        manager.agents[agent_id] = apply_scenario(scenario, manager.agents[agent_id])
        st.session_state[f"{agent_id}_prompt"] = manager.agents[agent_id].system_prompt
        st.session_state[f"{agent_id}_name"] = manager.agents[agent_id].name


def init_key(key: str, value) -> None:
    if key not in st.session_state:
        st.session_state[key] = value


def toggle_connection(agent_id: str) -> None:
    manager = get_manager()
    agent = manager.agents[agent_id]
    if agent.is_connected:
        manager.agents[agent_id] = disconnect_agent(agent)
        return
    # Callbacks run before the widgets are re-read, so take their values directly
    agent = replace(
        agent,
        provider=st.session_state[f"{agent_id}_provider"],
        api_key=st.session_state[f"{agent_id}_key"],
        status=ConnectionStatus.CONNECTING,
    )
    manager.agents[agent_id] = run_sync(connect_agent(agent))


def agent_panel(manager: ConversationManager, agent_id: str, locked: bool) -> None:
    agent: AgentConfig = manager.agents[agent_id]
    cost = manager.costs[agent_id]
    title = f"Agent {agent_id} · {agent.name}" + (f" · ${cost:.6f}" if cost > 0 else "")
    init_key(f"{agent_id}_provider", agent.provider)
    init_key(f"{agent_id}_key", agent.api_key)
    init_key(f"{agent_id}_name", agent.name)
    init_key(f"{agent_id}_prompt", agent.system_prompt)
    with st.sidebar.expander(title, expanded=not agent.is_connected):
        provider = st.selectbox(
            "Provider",
            list(Provider),
            format_func=lambda p: PROVIDER_LABELS[p],
            key=f"{agent_id}_provider",
            disabled=locked or agent.is_connected,
        )
        api_key = st.text_input(
            "API key", type="password", key=f"{agent_id}_key", disabled=locked or agent.is_connected,
        )
        name = st.text_input("Name", key=f"{agent_id}_name", disabled=locked)
        prompt = st.text_area("System prompt", key=f"{agent_id}_prompt", height=120, disabled=locked)
        agent = replace(agent, provider=provider, api_key=api_key, name=name, system_prompt=prompt)

        if agent.is_connected:
            query = st.text_input("Search models", key=f"{agent_id}_search")
            models = filter_models(agent.models, query)
            if agent.provider == Provider.OPENROUTER:
                groups = group_by_vendor(models)
                models = [m for vendor in groups for m in groups[vendor]]
            ids = [m.id for m in models]
            if agent.model and agent.model not in ids:
                ids.insert(0, agent.model)
            if ids:
                model = st.selectbox(
                    "Model", ids, index=ids.index(agent.model) if agent.model in ids else 0,
                    key=f"{agent_id}_model", disabled=locked,
                )
                agent = replace(agent, model=model)
            if agent.provider == Provider.OPENROUTER:
                custom = st.text_input("Custom model id", key=f"{agent_id}_custom", disabled=locked)
                if custom.strip():
                    agent = replace(agent, model=custom.strip())
        manager.agents[agent_id] = agent

        label = "Disconnect" if agent.is_connected else "Connect"
        st.button(label, key=f"{agent_id}_connect", on_click=toggle_connection, args=(agent_id,), disabled=locked)
        if agent.connection_error:
            st.error(agent.connection_error)
        elif agent.is_connected:
            st.success(f"Connected · {len(agent.models)} models")


def render_message(manager: ConversationManager, msg: dict) -> None:
    sender = msg["sender"]
    name = sender_name_from_dict(manager, sender)
    stamp = datetime.fromtimestamp(msg["timestamp"] / 1000).strftime("%H:%M:%S")
    role = "user" if sender != "B" else "assistant"
    with st.chat_message(role, avatar=AVATARS.get(sender, "🤖")):
        body = msg["text"]
        if msg.get("isError"):
            st.error(body)
        else:
            st.markdown(body)
        st.caption(f"{name} · {stamp}")


def sender_name_from_dict(manager: ConversationManager, sender: str) -> str:
    if sender == SYSTEM_SENDER:
        return "Topic"
    return manager.agents[sender].name


def history_panel(manager: ConversationManager) -> None:
    store = manager.history_store
    chats = store.load_all() if store else []
    with st.sidebar.expander(f"History ({len(chats)}) · {store.storage_size() if store else '0 KB'}"):
        for chat in reversed(chats):
            when = datetime.fromtimestamp(chat.date / 1000).strftime("%Y-%m-%d %H:%M")
            st.write(f"**{chat.scenario_name}** · {chat.agent_a_name} vs {chat.agent_b_name} · {when}")
            c1, c2 = st.columns(2)
            if c1.button("Load", key=f"load_{chat.id}"):
                if not manager.load_chat(chat):
                    st.warning("Pause the simulation before loading a saved chat.")
            if c2.button("Delete", key=f"del_{chat.id}"):
                store.delete(chat.id)
                st.rerun()
        if chats and store is not None:
            st.download_button("Download backup", store.export_json(), file_name="arena_history_backup.json")
            if st.button("Clear history"):
                store.clear()
                st.rerun()


st.set_page_config(page_title="Agent Arena", page_icon="⚔️", layout="wide")
manager = get_manager()
state = manager.state
locked = state.status != SimulationStatus.IDLE

st.sidebar.title("Agent Arena – Controls")
st.sidebar.selectbox(
    "Scenario",
    [s.id for s in SCENARIOS],
    format_func=lambda sid: get_scenario(sid).name,
    key="scenario_id",
    on_change=on_scenario_change,
    disabled=locked,
)
init_key("topic", manager.initial_topic)
topic = st.sidebar.text_area("Opening topic", key="topic", disabled=locked)
manager.initial_topic = topic

agent_panel(manager, "A", locked)
agent_panel(manager, "B", locked)

max_iterations = st.sidebar.slider("Max iterations", min_value=1, max_value=50, value=state.max_iterations)
use_max_tokens = st.sidebar.checkbox("Limit reply length", value=state.use_max_tokens)
max_tokens = st.sidebar.number_input("Max output tokens", min_value=16, max_value=8192, value=state.max_tokens, step=16)
manager.configure(max_iterations=max_iterations, use_max_tokens=use_max_tokens, max_tokens=int(max_tokens))
manual = st.sidebar.toggle("Manual mode (step each turn)", value=state.manual_mode)
if manual != state.manual_mode:
    manager.toggle_manual_mode(manual)

history_panel(manager)

st.title("Live Agent ↔ Agent Conversation")
cols = st.columns(6)
start_label = "Resume" if state.status == SimulationStatus.PAUSED else "Start"
start_btn = cols[0].button(start_label, type="primary", disabled=state.status not in (SimulationStatus.IDLE, SimulationStatus.PAUSED))
pause_btn = cols[1].button("Pause", disabled=state.status != SimulationStatus.RUNNING)
stop_btn = cols[2].button("Stop", disabled=state.status == SimulationStatus.IDLE)
reset_btn = cols[3].button("Reset")
next_btn = cols[4].button("Next turn", disabled=not state.waiting_for_manual)
cols[5].metric("Cost", f"${manager.total_cost:.6f}")

if pause_btn:
    manager.pause()
if stop_btn:
    manager.stop()
if reset_btn:
    saved = manager.reset()
    if saved:
        st.toast(f"Saved '{saved.scenario_name}' to history")
if next_btn:
    manager.advance_manually()

chat_area = st.container()
status_text = st.empty()

with chat_area:
    for m in manager.messages:
        render_message(manager, m.to_dict())

should_drive = start_btn or (state.status == SimulationStatus.RUNNING and state.can_step and (next_btn or not manual))
if start_btn and state.status == SimulationStatus.IDLE and not (manager.agent_a.is_ready and manager.agent_b.is_ready):
    st.warning("Missing credentials! Load both API keys, connect both agents and pick a model before starting.")
    should_drive = False

if should_drive:
    with chat_area:
        for event in run_chat_stream(manager):
            if event["type"] == "start":
                render_message(manager, manager.messages[0].to_dict())
            elif event["type"] == "turn":
                render_message(manager, event["data"])
                status_text.info(f"{state.iteration_count} / {state.max_iterations} turns")
            elif event["type"] in ("waiting", "end"):
                logger.debug(f"ui_stream_{event['type']} | status={state.status.value}")

if state.status == SimulationStatus.ERROR:
    status_text.error(state.error or "The conversation stopped with an error.")
elif state.status == SimulationStatus.COMPLETED:
    status_text.success(f"Conversation completed after {state.iteration_count} turns.")
elif state.waiting_for_manual:
    status_text.info("Waiting for 'Next turn'.")
elif state.status == SimulationStatus.PAUSED:
    status_text.warning("Paused.")

if manager.messages:
    md = export_markdown(
        manager.messages, manager.agent_a, manager.agent_b, manager.scenario_name,
        manager.costs["A"], manager.costs["B"],
    )
    st.download_button("Export transcript (.md)", md, file_name=f"arena-{int(datetime.now().timestamp())}.md")

with st.expander("Logs"):
    for line in state.logs:
        st.text(line)
