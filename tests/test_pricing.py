import pytest

from arena.pricing import calculate_turn_cost
from arena.schemas import ModelInfo

from conftest import make_agent


def test_cost_is_prompt_plus_completion():
    agent = make_agent("A")
    assert calculate_turn_cost(agent, 1000, 500) == pytest.approx(1000 * 0.001 + 500 * 0.002)


def test_unknown_model_costs_nothing():
    agent = make_agent("A", model="other-model", models=[ModelInfo(id="test-model", name="T", prompt_price=1.0)])
    assert calculate_turn_cost(agent, 1000, 1000) == 0.0


def test_model_without_pricing_costs_nothing():
    agent = make_agent("A", models=[ModelInfo(id="test-model", name="T")])
    assert calculate_turn_cost(agent, 1000, 1000) == 0.0


def test_missing_price_side_counts_as_zero():
    agent = make_agent("A", models=[ModelInfo(id="test-model", name="T", completion_price=0.5)])
    assert calculate_turn_cost(agent, 1000, 2) == pytest.approx(1.0)
