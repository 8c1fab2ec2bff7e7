"""Tests for levelized cost composition and interest-rate sweeps."""

from __future__ import annotations

import numpy as np
import pytest

from lcow.levelized_cost import (
    LevelizedCostResult,
    deterministic_closed_form,
    interest_rate_grid,
    interest_rate_sweep,
    levelized_cost,
)
from lcow.policy_solver import EvaluationConfig, evaluate_policy
from lcow.transition_tables import MarkovTables


@pytest.mark.parametrize("rate", [4.0, 6.5, 9.0, 12.0])
def test_deterministic_chain_matches_closed_form(deterministic, rate):
    policy = deterministic.constant_policy()
    cost = evaluate_policy(deterministic.transitions, deterministic.costs, 32, policy, rate, 1.0, 1e-6, np.zeros(32))
    reward = evaluate_policy(deterministic.transitions, deterministic.rewards, 32, policy, rate, 1.0, 1e-6, np.zeros(32))

    expected_cost, expected_reward = deterministic_closed_form(10.0, 0.3, 1.0, 32, rate)

    assert cost[0] == pytest.approx(expected_cost, rel=1e-9)
    assert reward[0] == pytest.approx(expected_reward, rel=1e-9)
    assert cost[31] == 0.0


def test_deterministic_levelized_cost(deterministic):
    result = levelized_cost(deterministic, 8.0)
    expected_cost, expected_reward = deterministic_closed_form(10.0, 0.3, 1.0, 32, 8.0)

    assert isinstance(result, LevelizedCostResult)
    assert result.discounted_cost == pytest.approx(expected_cost, rel=1e-9)
    assert result.levelized_cost == pytest.approx(expected_cost / expected_reward, rel=1e-9)
    assert result.cost_iterations > 0 and result.reward_iterations > 0


def test_higher_interest_discounts_cost_more(deterministic):
    sweep = interest_rate_sweep(deterministic, interest_rate_grid(4.0, 12.0, 0.5))

    assert np.all(np.diff(sweep["discounted_cost"].to_numpy()) < 0)
    assert sweep["levelized_cost"].is_monotonic_increasing


@pytest.mark.parametrize("rate", [4.0, 8.0, 12.0])
def test_stochastic_aging_stays_near_deterministic_lcow(deterministic, stochastic, rate):
    baseline = levelized_cost(deterministic, rate).levelized_cost
    faster = levelized_cost(stochastic, rate).levelized_cost

    assert 0.5 * baseline < faster < baseline


def test_sweep_frame_layout(stochastic):
    rates = [4.0, 5.0, 6.0]
    sweep = interest_rate_sweep(stochastic, rates, EvaluationConfig(tolerance=1e-4))

    assert list(sweep.columns) == [
        "interest_rate",
        "discounted_cost",
        "discounted_reward",
        "levelized_cost",
        "cost_iterations",
        "reward_iterations",
    ]
    assert sweep["interest_rate"].tolist() == rates
    assert (sweep["levelized_cost"] > 0).all()


def test_zero_output_cannot_be_levelized(deterministic):
    barren = MarkovTables(
        transitions=deterministic.transitions,
        costs=deterministic.costs,
        rewards=np.zeros_like(deterministic.rewards),
    )
    with pytest.raises(ZeroDivisionError):
        levelized_cost(barren, 5.0)


def test_interest_rate_grid_includes_both_ends():
    grid = interest_rate_grid()

    assert len(grid) == 801
    assert grid[0] == 4.0
    assert grid[-1] == pytest.approx(12.0)
    np.testing.assert_allclose(np.diff(grid), 0.01)


@pytest.mark.parametrize("start, stop, step", [(4.0, 12.0, 0.0), (12.0, 4.0, 1.0)])
def test_interest_rate_grid_rejects_bad_ranges(start, stop, step):
    with pytest.raises(ValueError):
        interest_rate_grid(start, stop, step)


@pytest.mark.parametrize("step, last", [(0.3, 11.8), (0.03, 11.98), (3.0, 10.0)])
def test_interest_rate_grid_stops_at_or_below_stop(step, last):
    grid = interest_rate_grid(4.0, 12.0, step)

    assert grid[-1] <= 12.0
    assert grid[-1] == pytest.approx(last)
    np.testing.assert_allclose(np.diff(grid), step)


@pytest.mark.parametrize("start_state", [-1, 32, 100])
def test_start_state_outside_chain_is_rejected(deterministic, start_state):
    with pytest.raises(ValueError, match="Start state"):
        levelized_cost(deterministic, 5.0, start_state=start_state)


def test_start_state_inside_chain(deterministic):
    result = levelized_cost(deterministic, 5.0, start_state=1)
    _, expected_reward = deterministic_closed_form(10.0, 0.3, 1.0, 32, 5.0)

    # One step later the same water is discounted once less.
    assert result.discounted_reward == pytest.approx(expected_reward / np.exp(-0.05), rel=1e-9)
