"""Shared fixtures for the policy evaluation tests."""

from __future__ import annotations

import matplotlib
import numpy as np
import pytest

from lcow.transition_tables import MarkovTables, deterministic_tables, stochastic_tables

matplotlib.use("Agg")


@pytest.fixture
def deterministic() -> MarkovTables:
    return deterministic_tables()


@pytest.fixture
def stochastic() -> MarkovTables:
    return stochastic_tables()


@pytest.fixture
def random_chain() -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Two-action, five-state chain with column-stochastic transition tables."""

    rng = np.random.default_rng(7)
    transitions = rng.random((2, 5, 5))
    transitions /= transitions.sum(axis=1, keepdims=True)
    costs = rng.uniform(0.0, 3.0, size=(2, 5, 5))
    policy = np.array([0, 1, 1, 0, 1])
    return transitions, costs, policy
