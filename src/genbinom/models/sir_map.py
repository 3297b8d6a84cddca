from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
from numpy.typing import ArrayLike, NDArray

from .stats import BinomialDistribution

__all__ = [
    "SIRMapParams",
    "case_report_log_likelihood",
    "end_prevalence",
    "incidence",
    "prevalence_log_likelihood",
    "rate_to_proportion",
    "simulate_case_reports",
    "simulate_prevalence_survey",
    "sir_map",
    "solve_map",
]


@dataclass(frozen=True, slots=True)
class SIRMapParams:
    """Parameters of the discrete-time SIR map.

    Attributes:
        beta: Infection rate per day.
        gamma: Recovery rate per day.
        q: Probability that a new infection is reported.
        population: Total population size.
        dt: Length of a time step in days.

    Examples:
        >>> params = SIRMapParams()
        >>> params.beta, params.gamma, params.q
        (0.5, 0.25, 0.75)
    """

    beta: float = 0.5
    gamma: float = 0.25
    q: float = 0.75
    population: float = 1000.0
    dt: float = 1.0


def rate_to_proportion(rate: float, dt: float) -> float:
    """Probability of at least one event in ``dt`` for a Poisson process."""
    return -np.expm1(-rate * dt)


def sir_map(u: ArrayLike, params: SIRMapParams) -> NDArray:
    """Advance the state ``(S, I, R, C)`` by one step.

    ``C`` is the cumulative number of infections, so consecutive differences
    give the incidence per step.

    Examples:
        >>> u = sir_map([990.0, 10.0, 0.0, 0.0], SIRMapParams())
        >>> bool(np.isclose(u[:3].sum(), 1000.0))
        True
        >>> bool(u[3] > 0)
        True
    """
    S, I, R, C = u
    infection = rate_to_proportion(params.beta * I / params.population, params.dt) * S
    recovery = rate_to_proportion(params.gamma, params.dt) * I
    return np.array([S - infection, I + infection - recovery, R + recovery, C + infection])


def solve_map(u0: ArrayLike, nsteps: int, params: SIRMapParams) -> NDArray:
    """Iterate the SIR map.

    Args:
        u0: Initial state ``(S, I, R, C)``.
        nsteps: Number of steps.
        params: Model parameters.

    Returns:
        Array of shape ``(4, nsteps + 1)`` whose first column is ``u0``.

    Examples:
        >>> sol = solve_map([990.0, 10.0, 0.0, 0.0], 40, SIRMapParams())
        >>> sol.shape
        (4, 41)
    """
    u0 = np.asarray(u0, dtype=float)
    sol = np.empty((u0.size, nsteps + 1))
    sol[:, 0] = u0
    for t in range(1, nsteps + 1):
        sol[:, t] = sir_map(sol[:, t - 1], params)
    return sol


def incidence(sol: NDArray) -> NDArray:
    """New infections per step; generally not whole numbers."""
    return np.maximum(np.diff(sol[3]), 0.0)


def simulate_case_reports(sol: NDArray, q: float, rng: np.random.Generator) -> NDArray:
    """Draw reported cases, ``Binomial(incidence_t, q)`` for every step.

    Examples:
        >>> sol = solve_map([990.0, 10.0, 0.0, 0.0], 40, SIRMapParams())
        >>> reports = simulate_case_reports(sol, 0.75, np.random.default_rng(1))
        >>> reports.shape
        (40,)
        >>> bool(np.all(reports <= np.floor(incidence(sol))))
        True
    """
    return np.array(
        [BinomialDistribution(x, q).sample(1, rng=rng)[0] for x in incidence(sol)],
        dtype=np.int64,
    )


def case_report_log_likelihood(reports: Sequence[int], sol: NDArray, q: float) -> float:
    """Log-likelihood of reported cases given a model trajectory.

    Raises:
        ValueError: If the number of reports does not match the number of steps.
    """
    cases = incidence(sol)
    if len(reports) != len(cases):
        raise ValueError(
            f"Expected {len(cases)} reports, one per step, got {len(reports)}"
        )
    return float(
        sum(BinomialDistribution(x, q).log_pmf(y) for x, y in zip(cases, reports))
    )


def end_prevalence(sol: NDArray, params: SIRMapParams) -> float:
    """Proportion recovered at the end of the run, clamped to ``[0, 1]``."""
    return float(np.clip(sol[2, -1] / params.population, 0.0, 1.0))


def simulate_prevalence_survey(
    sol: NDArray, params: SIRMapParams, sample_size: int, rng: np.random.Generator
) -> int:
    """Number of positives in a serological survey of ``sample_size`` people."""
    dist = BinomialDistribution(sample_size, end_prevalence(sol, params))
    return int(dist.sample(1, rng=rng)[0])


def prevalence_log_likelihood(
    positives: int, sol: NDArray, params: SIRMapParams, sample_size: int
) -> float:
    dist = BinomialDistribution(sample_size, end_prevalence(sol, params))
    return float(dist.log_pmf(positives))
