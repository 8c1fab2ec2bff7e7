"""
Levelized cost of water from two discounted policy evaluations.

The discounted cost and the discounted water production are evaluated
separately on the same chain; their ratio at the start state is the levelized
cost.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
import math
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from lcow.policy_solver import EvaluationConfig, discount_factor, run_policy_evaluation
from lcow.transition_tables import MarkovTables


@dataclass
class LevelizedCostResult:
    interest_rate: float
    discounted_cost: float
    discounted_reward: float
    levelized_cost: float
    cost_iterations: int
    reward_iterations: int


def levelized_cost(
    tables: MarkovTables,
    interest_rate: float,
    config: EvaluationConfig | None = None,
    policy: Optional[Sequence[int]] = None,
    start_state: int = 0,
) -> LevelizedCostResult:
    """Discounted cost divided by discounted output, both seen from ``start_state``."""

    if not 0 <= start_state < tables.n_states:
        raise ValueError(
            f"Start state must lie in [0, {tables.n_states}), got {start_state}."
        )
    if config is None:
        config = EvaluationConfig()
    if policy is None:
        policy = tables.constant_policy()

    runs = []
    for payoff in (tables.costs, tables.rewards):
        runs.append(
            run_policy_evaluation(
                tables.transitions,
                payoff,
                tables.n_states,
                policy,
                interest_rate,
                config.time_step,
                config.tolerance,
                np.zeros(tables.n_states),
                max_iterations=config.max_iterations,
            )
        )
    cost_run, reward_run = runs

    discounted_cost = float(cost_run.values[start_state])
    discounted_reward = float(reward_run.values[start_state])
    if discounted_reward == 0.0:
        raise ZeroDivisionError(
            f"Discounted output from state {start_state} is zero at {interest_rate}% interest."
        )

    return LevelizedCostResult(
        interest_rate=float(interest_rate),
        discounted_cost=discounted_cost,
        discounted_reward=discounted_reward,
        levelized_cost=discounted_cost / discounted_reward,
        cost_iterations=cost_run.iterations,
        reward_iterations=reward_run.iterations,
    )


def interest_rate_sweep(
    tables: MarkovTables,
    interest_rates: Iterable[float],
    config: EvaluationConfig | None = None,
    policy: Optional[Sequence[int]] = None,
) -> pd.DataFrame:
    """Levelized cost for each interest rate, one row per rate."""

    records = [asdict(levelized_cost(tables, rate, config, policy)) for rate in interest_rates]
    return pd.DataFrame(records, columns=list(LevelizedCostResult.__dataclass_fields__))


def interest_rate_grid(start: float = 4.0, stop: float = 12.0, step: float = 0.01) -> np.ndarray:
    """Evenly spaced rates including both ends."""

    if step <= 0:
        raise ValueError(f"Step must be positive, got {step}.")
    if stop < start:
        raise ValueError(f"Grid stop {stop} is below start {start}.")
    # Same points as start:step:stop; never past stop.
    count = int(math.floor((stop - start) / step + 1e-9)) + 1
    return np.linspace(start, start + (count - 1) * step, count)


def deterministic_closed_form(
    cap_ex: float,
    op_ex: float,
    water_production_rate: float,
    n_states: int,
    interest_rate: float,
    time_step: float = 1.0,
) -> Tuple[float, float]:
    """
    Analytic discounted cost and output from state 0 of the deterministic chain.

    Construction is paid one step out; each of the ``n_states - 2`` service
    years is paid and produces water from the second step onwards.
    """

    gamma = discount_factor(interest_rate, time_step)
    service_years = np.arange(2, n_states)
    annuity = float(np.sum(gamma ** service_years))
    cost = gamma * cap_ex + op_ex * annuity
    reward = water_production_rate * annuity
    return cost, reward
