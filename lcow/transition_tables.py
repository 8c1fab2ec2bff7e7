"""
Markov transition tables for a degrading water-producing system.

State 0 is a system under construction, states ``1 .. n_states - 2`` are years
of useful life already consumed, and the last state is end of life. Every
table is indexed ``[input, next_state, state]``.
"""

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Tuple

import numpy as np


@dataclass
class MarkovTables:
    transitions: np.ndarray
    costs: np.ndarray
    rewards: np.ndarray

    @property
    def n_inputs(self) -> int:
        return self.transitions.shape[0]

    @property
    def n_states(self) -> int:
        return self.transitions.shape[1]

    def constant_policy(self, action: int = 0) -> np.ndarray:
        """Policy applying the same input in every state."""

        return np.full(self.n_states, action, dtype=int)


@dataclass
class AgingScenario:
    cap_ex: float
    op_ex: float
    water_production_rate: float
    n_states: int = 32
    n_inputs: int = 1
    aging_steps: Tuple[int, ...] = (1,)
    aging_probabilities: Tuple[float, ...] = (1.0,)
    name: str = "deterministic"


def _check_scenario(scenario: AgingScenario) -> None:
    if scenario.n_states < 3:
        raise ValueError(
            f"An aging chain needs a build, a service and an end-of-life state; got {scenario.n_states} states."
        )
    if scenario.n_inputs < 1:
        raise ValueError(f"n_inputs must be at least 1, got {scenario.n_inputs}.")
    if len(scenario.aging_steps) != len(scenario.aging_probabilities):
        raise ValueError("aging_steps and aging_probabilities must have the same length.")
    if any(step < 1 for step in scenario.aging_steps):
        raise ValueError(f"Aging steps must be positive, got {scenario.aging_steps}.")
    if not math.isclose(sum(scenario.aging_probabilities), 1.0):
        raise ValueError(
            f"Aging probabilities must sum to 1, got {sum(scenario.aging_probabilities)}."
        )


def build_aging_tables(scenario: AgingScenario) -> MarkovTables:
    """
    Build transition, cost and reward tables for an aging scenario.

    The first transition costs Cap-Ex and produces no water. Each later
    transition costs Op-Ex and produces ``water_production_rate``. Aging that
    would overshoot end of life lands on the end-of-life state, which is
    absorbing with zero cost.
    """

    _check_scenario(scenario)

    shape = (scenario.n_inputs, scenario.n_states, scenario.n_states)
    transitions = np.zeros(shape)
    costs = np.zeros(shape)
    rewards = np.zeros(shape)
    terminal = scenario.n_states - 1

    transitions[:, 1, 0] = 1.0
    costs[:, 1, 0] = scenario.cap_ex

    for state in range(1, terminal):
        for step, prob in zip(scenario.aging_steps, scenario.aging_probabilities):
            next_state = min(state + step, terminal)
            transitions[:, next_state, state] += prob
            costs[:, next_state, state] = scenario.op_ex
            rewards[:, next_state, state] = scenario.water_production_rate

    transitions[:, terminal, terminal] = 1.0

    return MarkovTables(transitions=transitions, costs=costs, rewards=rewards)


def deterministic_tables(
    cap_ex: float = 10.0,
    op_ex: float = 0.3,
    water_production_rate: float = 1.0,
    n_states: int = 32,
) -> MarkovTables:
    """One year of aging per year of operation."""

    return build_aging_tables(
        AgingScenario(cap_ex, op_ex, water_production_rate, n_states=n_states)
    )


def stochastic_tables(
    cap_ex: float = 10.0,
    op_ex: float = 0.6,
    water_production_rate: float = 2.0,
    n_states: int = 32,
) -> MarkovTables:
    """Doubled output and Op-Ex, with one or two years of aging per year, 50/50."""

    return build_aging_tables(
        AgingScenario(
            cap_ex,
            op_ex,
            water_production_rate,
            n_states=n_states,
            aging_steps=(1, 2),
            aging_probabilities=(0.5, 0.5),
            name="stochastic",
        )
    )
