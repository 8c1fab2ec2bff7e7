"""
Discounted-cost evaluation of a fixed policy on a finite-state Markov chain.

Transition and cost tensors use the axis order ``[action, next_state, state]``:
``transition_tables[a, j, i]`` is the probability of moving from state ``i`` to
state ``j`` when action ``a`` is applied in state ``i``. The same evaluator is
used for costs and for rewards; it is agnostic to the sign and units of the
tensor it is handed.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import math
from typing import Optional, Sequence, Tuple

import numpy as np
from scipy import linalg

logger = logging.getLogger(__name__)


@dataclass
class EvaluationConfig:
    time_step: float = 1.0
    tolerance: float = 1e-6
    max_iterations: int = 10_000


@dataclass
class PolicyEvaluationResult:
    values: np.ndarray
    iterations: int
    relative_error: float
    discount: float
    converged: bool


class PolicyArgumentError(ValueError):
    """An argument to the evaluator is out of range."""


class PolicyShapeError(PolicyArgumentError):
    """Inputs to the evaluator are inconsistent with each other."""


class PolicyEvaluationNotConverged(RuntimeError):
    """The iteration cap was reached before the tolerance was met."""

    def __init__(self, result: PolicyEvaluationResult, tolerance: float) -> None:
        super().__init__(
            f"Policy evaluation did not converge after {result.iterations} sweeps "
            f"(relative change {result.relative_error:.3g}% > tolerance {tolerance:.3g}%)."
        )
        self.result = result


def discount_factor(interest_rate: float, time_step: float) -> float:
    """Per-step discount for a continuously compounded rate given in percent."""

    if interest_rate < 0:
        raise PolicyArgumentError(f"Interest rate must be nonnegative, got {interest_rate}.")
    if time_step <= 0:
        raise PolicyArgumentError(f"Time step must be positive, got {time_step}.")
    return math.exp(-interest_rate * time_step / 100.0)


def _validate_inputs(
    transition_tables: np.ndarray,
    transition_costs: np.ndarray,
    n_states: int,
    control_policy: np.ndarray,
) -> None:
    if n_states < 1:
        raise PolicyShapeError(f"Number of states must be at least 1, got {n_states}.")
    if transition_tables.ndim != 3:
        raise PolicyShapeError(
            "Transition tables must have shape (actions, next_state, state), "
            f"got {transition_tables.shape}."
        )
    if transition_costs.shape != transition_tables.shape:
        raise PolicyShapeError(
            f"Cost tensor shape {transition_costs.shape} does not match "
            f"transition tensor shape {transition_tables.shape}."
        )
    if transition_tables.shape[1:] != (n_states, n_states):
        raise PolicyShapeError(
            f"Transition tensor shape {transition_tables.shape} is not "
            f"(actions, {n_states}, {n_states})."
        )
    if control_policy.shape != (n_states,):
        raise PolicyShapeError(
            f"Control policy must have {n_states} entries, got shape {control_policy.shape}."
        )
    if not np.issubdtype(control_policy.dtype, np.integer):
        raise PolicyShapeError(f"Control policy entries must be integers, got {control_policy.dtype}.")

    n_actions = transition_tables.shape[0]
    bad = np.flatnonzero((control_policy < 0) | (control_policy >= n_actions))
    if bad.size:
        raise PolicyShapeError(
            f"Control policy selects actions outside [0, {n_actions}) in states {bad.tolist()}."
        )


def collapse_policy(
    transition_tables: np.ndarray,
    transition_costs: np.ndarray,
    control_policy: Sequence[int],
    n_states: int,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Fix the action in every state and return the policy's transition and cost matrices.

    Returns
    -------
    transitions, costs
        Arrays of shape ``(n_states, n_states)`` indexed ``[next_state, state]``.
    """

    tables = np.asarray(transition_tables, dtype=float)
    costs = np.asarray(transition_costs, dtype=float)
    policy = np.asarray(control_policy)
    _validate_inputs(tables, costs, n_states, policy)

    columns = np.arange(n_states)
    # Advanced indexing yields (state, next_state); transpose back to [next_state, state].
    transitions = tables[policy, :, columns].T
    step_costs = costs[policy, :, columns].T
    return transitions, step_costs


def relative_rms_change(new_values: np.ndarray, old_values: np.ndarray) -> float:
    """
    Percentage ratio of the RMS change between iterates to the RMS of the old iterate.

    A zero old iterate gives ``0.0`` if the new iterate is zero too and ``inf``
    otherwise, so the test stays independent of the scale of the costs.
    """

    old_norm = np.linalg.norm(old_values)
    change = np.linalg.norm(new_values - old_values)
    if old_norm == 0.0:
        return 0.0 if change == 0.0 else math.inf
    return float(100.0 * change / old_norm)


def run_policy_evaluation(
    transition_tables: np.ndarray,
    transition_costs: np.ndarray,
    n_states: int,
    control_policy: Sequence[int],
    interest_rate: float,
    time_step: float = 1.0,
    tolerance: float = 1e-6,
    initial_estimate: Optional[Sequence[float]] = None,
    *,
    max_iterations: int = 10_000,
) -> PolicyEvaluationResult:
    """
    Iteratively evaluate the discounted value of ``control_policy`` from every state.

    Parameters
    ----------
    transition_tables:
        Tensor ``[action, next_state, state]`` of transition probabilities.
    transition_costs:
        Tensor of the same shape holding the cost (or reward) of each transition.
    n_states:
        Number of states.
    control_policy:
        Action index chosen in each state.
    interest_rate:
        Continuously compounded rate, in percent per unit time.
    time_step:
        Length of one transition in the same time unit as the rate.
    tolerance:
        Largest acceptable percentage RMS change between successive sweeps.
    initial_estimate:
        Starting value function; zeros when omitted.
    max_iterations:
        Number of sweeps after which :class:`PolicyEvaluationNotConverged` is raised.

    Returns
    -------
    PolicyEvaluationResult
    """

    if tolerance <= 0:
        raise PolicyArgumentError(f"Tolerance must be positive, got {tolerance}.")
    if max_iterations < 1:
        raise PolicyArgumentError(f"max_iterations must be at least 1, got {max_iterations}.")

    discount = discount_factor(interest_rate, time_step)
    transitions, step_costs = collapse_policy(
        transition_tables, transition_costs, control_policy, n_states
    )

    if initial_estimate is None:
        values = np.zeros(n_states)
    else:
        values = np.array(initial_estimate, dtype=float)
        if values.shape != (n_states,):
            raise PolicyShapeError(
                f"Initial estimate must have {n_states} entries, got shape {values.shape}."
            )

    weighted = discount * transitions
    expected_costs = np.sum(weighted * step_costs, axis=0)

    error = math.inf
    for iteration in range(1, max_iterations + 1):
        # Jacobi sweep: every state reads the previous iterate only.
        new_values = weighted.T @ values + expected_costs
        error = relative_rms_change(new_values, values)
        values = new_values
        if error <= tolerance:
            logger.debug(
                "Policy evaluation converged after %d sweeps (change %.3g%%, discount %.6f)",
                iteration,
                error,
                discount,
            )
            return PolicyEvaluationResult(values, iteration, error, discount, True)

    result = PolicyEvaluationResult(values, max_iterations, error, discount, False)
    logger.warning(
        "Policy evaluation stopped at the %d-sweep cap with change %.3g%%", max_iterations, error
    )
    raise PolicyEvaluationNotConverged(result, tolerance)


def evaluate_policy(
    transition_tables: np.ndarray,
    transition_costs: np.ndarray,
    n_states: int,
    control_policy: Sequence[int],
    interest_rate: float,
    time_step: float = 1.0,
    tolerance: float = 1e-6,
    initial_estimate: Optional[Sequence[float]] = None,
    *,
    max_iterations: int = 10_000,
) -> np.ndarray:
    """Value function of ``control_policy``; see :func:`run_policy_evaluation`."""

    return run_policy_evaluation(
        transition_tables,
        transition_costs,
        n_states,
        control_policy,
        interest_rate,
        time_step,
        tolerance,
        initial_estimate,
        max_iterations=max_iterations,
    ).values


def solve_policy_values(
    transition_tables: np.ndarray,
    transition_costs: np.ndarray,
    n_states: int,
    control_policy: Sequence[int],
    interest_rate: float,
    time_step: float = 1.0,
) -> np.ndarray:
    """Exact fixed point of the evaluation sweep, from one linear solve."""

    discount = discount_factor(interest_rate, time_step)
    transitions, step_costs = collapse_policy(
        transition_tables, transition_costs, control_policy, n_states
    )
    weighted = discount * transitions
    system = np.eye(n_states) - weighted.T
    rhs = np.sum(weighted * step_costs, axis=0)
    try:
        return linalg.solve(system, rhs)
    except linalg.LinAlgError as exc:
        raise PolicyArgumentError(
            f"Evaluation system is singular at discount {discount:.6f}; "
            "the chain needs a cost-absorbing sink when the interest rate is zero."
        ) from exc
