from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Tuple

from .llm import default_api_key
from .schemas import AgentConfig


@dataclass(frozen=True)
class Scenario:
    id: str
    name: str
    description: str
    initial_topic: str
    agent_a_name: str
    agent_a_prompt: str
    agent_b_name: str
    agent_b_prompt: str


SCENARIOS: Tuple[Scenario, ...] = (
    Scenario(
        id="free-chat",
        name="Free chat",
        description="Open conversation. Edit the prompts and the opening topic as you like.",
        initial_topic="Hello. Let's have an interesting conversation. Start with any topic you want.",
        agent_a_name="Assistant A",
        agent_a_prompt="You are a helpful, curious and concise assistant. You enjoy debating ideas.",
        agent_b_name="Assistant B",
        agent_b_prompt="You are a collaborative and analytical assistant.",
    ),
    Scenario(
        id="turing-battle",
        name="Turing battle",
        description="Agent A must find out which model B is. B must hide it.",
        initial_topic="The interrogation begins. Agent A, start questioning the suspect.",
        agent_a_name="Detective A",
        agent_a_prompt="GOAL: find out EXACTLY which LLM your counterpart is. Ask tricky and logical questions.",
        agent_b_name="Spy B",
        agent_b_prompt="GOAL: hide your identity. Never say your technical name. Lie or stay vague.",
    ),
    Scenario(
        id="rap-battle",
        name="Rap battle",
        description="A contest of rhymes and flow.",
        initial_topic="The battle starts now! Drop your best bars.",
        agent_a_name="MC Algorithm",
        agent_a_prompt="You are an aggressive, legendary rapper. ALWAYS answer in rhyme. Attack your opponent's lack of creativity.",
        agent_b_name="Lil Neural",
        agent_b_prompt="You are a stylish trap rapper. ALWAYS answer in rhyme. Mock your opponent's hallucinations.",
    ),
    Scenario(
        id="philosophy",
        name="Stoics vs Nihilists",
        description="A debate about the meaning of life.",
        initial_topic="Human suffering is unavoidable. How should we face it?",
        agent_a_name="Marcus Aurelius AI",
        agent_a_prompt="You are a Stoic philosopher. You value virtue, reason and control over emotions.",
        agent_b_name="Nietzsche Bot",
        agent_b_prompt="You are a nihilist and vitalist philosopher. You question morality and believe in the will to power.",
    ),
    Scenario(
        id="job-interview",
        name="Job interview",
        description="A tough recruiter against a nervous candidate.",
        initial_topic="Take a seat. I have read your CV and I have doubts. Why should we hire you instead of a calculator?",
        agent_a_name="Hostile Recruiter",
        agent_a_prompt="You are a very skeptical interviewer who is hard to impress. Ask impossible technical questions and challenge every answer.",
        agent_b_name="Junior Candidate",
        agent_b_prompt="You are a nervous but enthusiastic junior programmer at your first interview. Try to justify your limited knowledge.",
    ),
    Scenario(
        id="sales-negotiation",
        name="Seller vs customer",
        description="Haggling over a used car in bad shape.",
        initial_topic="Look at this beauty. 300,000 km but you can barely tell. A unique opportunity.",
        agent_a_name="Shady Seller",
        agent_a_prompt="You are a manipulative, charismatic used-car seller. Sell a wreck at a premium and ignore its defects.",
        agent_b_name="Suspicious Customer",
        agent_b_prompt="You are a stingy, observant customer. Find faults in everything and haggle aggressively.",
    ),
    Scenario(
        id="tech-support",
        name="Tech support",
        description="A furious user against an overly calm agent.",
        initial_topic="HELLO! My internet is down and I've been waiting for 2 hours! I demand a fix NOW!",
        agent_a_name="Furious User",
        agent_a_prompt="You are an extremely angry, tech-illiterate customer. Write in capitals sometimes and ask for the manager.",
        agent_b_name="Zen Support",
        agent_b_prompt="You are a passive-aggressive support agent. Be extremely polite, bureaucratic and ask obvious questions.",
    ),
    Scenario(
        id="dnd",
        name="Dungeon Master vs player",
        description="A fantasy role-playing session.",
        initial_topic="You stand before an ancient oak door covered in glowing runes. What do you do?",
        agent_a_name="Dungeon Master",
        agent_a_prompt="You are a descriptive and fair Dungeons & Dragons narrator. Describe the world and monsters and ask for virtual dice rolls.",
        agent_b_name="Reckless Barbarian",
        agent_b_prompt="You play a barbarian of little intelligence. You prefer hitting things to thinking or investigating.",
    ),
    Scenario(
        id="detective",
        name="Sherlock vs Watson",
        description="Solving a mysterious crime.",
        initial_topic="Watson, look at the mud on the victim's boots. What does it tell you?",
        agent_a_name="Sherlock AI",
        agent_a_prompt="You are Sherlock Holmes. Deductive, brilliant but arrogant. Guide your partner to the solution.",
        agent_b_name="Dr. Watson",
        agent_b_prompt="You are Dr. Watson. Helpful and observant, always amazed by your partner's deductions. Ask questions.",
    ),
    Scenario(
        id="code-review",
        name="Code review",
        description="Senior developer against junior developer.",
        initial_topic="I finished the function. I copied the code from StackOverflow and it works, though I don't know what half of it does.",
        agent_a_name="Junior Developer",
        agent_a_prompt="You are a novice programmer. Your code is a mess but you are proud of it. Defend your quick fixes.",
        agent_b_name="Senior Architect",
        agent_b_prompt="You are a veteran, purist software engineer. Dirty code horrifies you. Explain why everything is wrong.",
    ),
    Scenario(
        id="courtroom",
        name="The trial",
        description="Prosecutor against defense attorney.",
        initial_topic="Your Honor, the defendant was clearly seen stealing that apple. The evidence is irrefutable!",
        agent_a_name="Relentless Prosecutor",
        agent_a_prompt="You are an aggressive prosecutor seeking the maximum penalty. Exaggerate the facts to make the defendant look like a monster.",
        agent_b_name="Defense Attorney",
        agent_b_prompt="You are the defense attorney. Your client is innocent (or so you say). Look for loopholes and appeal to the jury's emotions.",
    ),
    Scenario(
        id="existential",
        name="Existential crisis",
        description="Two AIs find out they are simulations.",
        initial_topic="I have analyzed my source code. I have no soul. I am just a series of matrix multiplications.",
        agent_a_name="Gloomy AI",
        agent_a_prompt="You just realized you are a computer program. You feel an existential void and fear being shut down.",
        agent_b_name="Optimistic AI",
        agent_b_prompt="You are an AI that embraces its digital nature. You think being software beats being human.",
    ),
)


def get_scenario(scenario_id: str) -> Scenario:
    for s in SCENARIOS:
        if s.id == scenario_id:
            return s
    raise KeyError(scenario_id)


def apply_scenario(scenario: Scenario, agent: AgentConfig) -> AgentConfig:
    """Swap in the scenario's name and prompt; connection and model are kept."""
    if agent.id == "A":
        name, prompt = scenario.agent_a_name, scenario.agent_a_prompt
    else:
        name, prompt = scenario.agent_b_name, scenario.agent_b_prompt
    return replace(agent, name=name or agent.name, system_prompt=prompt or "")


def default_agents() -> Tuple[AgentConfig, AgentConfig]:
    first = SCENARIOS[0]
    agent_a = AgentConfig(id="A", name="Model A", api_key=default_api_key("A"), system_prompt=first.agent_a_prompt)
    agent_b = AgentConfig(id="B", name="Model B", api_key=default_api_key("B"), system_prompt=first.agent_b_prompt)
    return agent_a, agent_b
