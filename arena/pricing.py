from __future__ import annotations

from .schemas import AgentConfig


def calculate_turn_cost(agent: AgentConfig, prompt_tokens: int, completion_tokens: int) -> float:
    """Spend for one turn from the selected model's per-token prices.

    Providers that publish no pricing (or a model missing from the list)
    cost exactly 0.0.
    """
    model = agent.find_model()
    if model is None or not model.has_pricing:
        return 0.0
    prompt_price = model.prompt_price or 0.0
    completion_price = model.completion_price or 0.0
    return prompt_tokens * prompt_price + completion_tokens * completion_price
