"""
Named aging scenarios used by the levelized cost of water analysis.
"""

from __future__ import annotations

from lcow.transition_tables import AgingScenario, MarkovTables, build_aging_tables


SCENARIOS = {
    "deterministic": AgingScenario(
        cap_ex=10.0,
        op_ex=0.3,
        water_production_rate=1.0,
        name="deterministic",
    ),
    "stochastic": AgingScenario(
        cap_ex=10.0,
        op_ex=0.6,
        water_production_rate=2.0,
        aging_steps=(1, 2),
        aging_probabilities=(0.5, 0.5),
        name="stochastic",
    ),
}


def load_scenario(key: str) -> AgingScenario:
    """Return the registered scenario called ``key``."""

    if key not in SCENARIOS:
        raise KeyError(f"Unknown scenario '{key}'. Expected one of {sorted(SCENARIOS)}.")
    return SCENARIOS[key]


def load_all() -> dict[str, MarkovTables]:
    """Convenience wrapper returning tables for every scenario keyed by name."""

    return {key: build_aging_tables(scenario) for key, scenario in SCENARIOS.items()}
