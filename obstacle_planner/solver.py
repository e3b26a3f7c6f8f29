#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Augmented Lagrangian solver for the single-step planning problem

Solves
    min  f(u)
    s.t. F1(u) in C = {0}
with an outer Augmented Lagrangian loop around scipy's L-BFGS-B as the
inner quasi-Newton solver, continued with Nelder-Mead where its line search
breaks down at a kink of psi. The augmented cost and its gradient are

    psi(u; c, y)      = f(u) + (c/2) ||F1(u) + y/c||^2
    grad psi(u; c, y) = grad f(u) + JF1(u)^T (c F1(u) + y)

Outer iteration k:
    1. y <- Proj_Y(y)                       (Y is a ball of radius 1e12)
    2. u <- argmin psi(u; c, y)             (inner tolerance eps_k)
    3. y+ <- y + c F1(u)
    4. stop if k > 0, ||y+ - y|| <= c delta and eps_k <= epsilon
    5. c <- rho c unless ||y+ - y|| <= theta ||y - y_prev||
    6. eps_k <- max(epsilon, beta eps_k)

Any object exposing cost, cost_gradient, constraints and
constraint_jacobian_transpose_product can be solved.
"""

import time
from dataclasses import asdict, dataclass, field, fields, replace
from enum import Enum
from typing import Optional, Tuple

import numpy as np
from scipy.optimize import minimize

# Radius of the multiplier set Y
MULTIPLIER_BALL_RADIUS = 1e12
SMALL_EPSILON = 1e-30
# scipy L-BFGS-B status codes
_LBFGSB_LIMIT_REACHED = 1
_LBFGSB_ABNORMAL = 2


class ExitStatus(Enum):
    CONVERGED = "converged"
    NOT_CONVERGED_ITERATIONS = "not_converged_iterations"
    NOT_CONVERGED_OUT_OF_TIME = "not_converged_out_of_time"


@dataclass(frozen=True)
class SolverConfig:
    """Immutable solver settings (defaults reproduce the reference example)"""

    delta_tolerance: float = 1e-5
    epsilon_tolerance: float = 1e-6
    max_outer_iterations: int = 200
    max_inner_iterations: int = 500
    initial_inner_tolerance: float = 1e-2
    inner_tolerance_update_factor: float = 0.5
    initial_penalty: float = 100.0
    penalty_update_factor: float = 1.05
    sufficient_decrease_coefficient: float = 0.2
    initial_lagrange_multipliers: Tuple[float, ...] = (5.0, 5.0)
    lbfgs_memory: int = 5
    inner_ftol: float = 1e-12
    simplex_size: float = 1e-2
    simplex_xtol: float = 1e-9
    max_duration: Optional[float] = None

    def __post_init__(self):
        object.__setattr__(self, "initial_lagrange_multipliers",
                           tuple(float(v) for v in self.initial_lagrange_multipliers))
        if self.delta_tolerance <= 0.0:
            raise ValueError("delta_tolerance must be positive")
        if self.epsilon_tolerance <= 0.0:
            raise ValueError("epsilon_tolerance must be positive")
        if self.max_outer_iterations < 1:
            raise ValueError("max_outer_iterations must be at least 1")
        if self.max_inner_iterations < 1:
            raise ValueError("max_inner_iterations must be at least 1")
        if self.initial_inner_tolerance < self.epsilon_tolerance:
            raise ValueError("initial_inner_tolerance must be >= epsilon_tolerance")
        if not 0.0 < self.inner_tolerance_update_factor < 1.0:
            raise ValueError("inner_tolerance_update_factor must be in (0, 1)")
        if self.initial_penalty <= 0.0:
            raise ValueError("initial_penalty must be positive")
        if self.penalty_update_factor <= 1.0:
            raise ValueError("penalty_update_factor must be > 1")
        if not 0.0 < self.sufficient_decrease_coefficient < 1.0:
            raise ValueError("sufficient_decrease_coefficient must be in (0, 1)")
        if self.lbfgs_memory < 1:
            raise ValueError("lbfgs_memory must be at least 1")
        if self.inner_ftol < 0.0:
            raise ValueError("inner_ftol must be non-negative")
        if self.simplex_size <= 0.0:
            raise ValueError("simplex_size must be positive")
        if self.simplex_xtol <= 0.0:
            raise ValueError("simplex_xtol must be positive")
        if self.max_duration is not None and self.max_duration <= 0.0:
            raise ValueError("max_duration must be positive when given")

    @classmethod
    def from_dict(cls, params) -> "SolverConfig":
        params = dict(params or {})
        unknown = set(params) - {f.name for f in fields(cls)}
        if unknown:
            raise ValueError(f"Unknown solver settings: {sorted(unknown)}")
        return cls(**params)

    def to_dict(self):
        d = asdict(self)
        d["initial_lagrange_multipliers"] = list(self.initial_lagrange_multipliers)
        return d

    def relaxed(self, factor: float) -> "SolverConfig":
        """Copy with delta and epsilon tolerances multiplied by `factor`"""
        if factor < 1.0:
            raise ValueError(f"Relaxation factor must be >= 1, got {factor}")
        epsilon = self.epsilon_tolerance * factor
        return replace(self,
                       delta_tolerance=self.delta_tolerance * factor,
                       epsilon_tolerance=epsilon,
                       initial_inner_tolerance=max(self.initial_inner_tolerance, epsilon))


@dataclass
class SolverResult:
    """Outcome of one constrained solve"""

    solution: np.ndarray
    exit_status: ExitStatus
    num_outer_iterations: int
    num_inner_iterations: int
    cost: float
    constraint_values: np.ndarray
    infeasibility: float
    lagrange_multipliers: np.ndarray
    penalty: float
    delta_y_norm: float
    solve_time: float
    inner_messages: list = field(default_factory=list)

    def has_converged(self) -> bool:
        return self.exit_status == ExitStatus.CONVERGED


def _project_ball(y, radius=MULTIPLIER_BALL_RADIUS):
    norm_y = float(np.linalg.norm(y))
    if norm_y > radius:
        return y * (radius / norm_y)
    return y


class AugmentedLagrangianSolver:
    """ALM outer loop with an L-BFGS-B inner solver"""

    def __init__(self, config: SolverConfig = None, verbose: bool = False):
        self.config = config if config is not None else SolverConfig()
        self.verbose = verbose

    @staticmethod
    def _psi_and_gradient(u, problem, c, y):
        f1 = np.asarray(problem.constraints(u), dtype=float)
        t = f1 + y / c
        psi = problem.cost(u) + 0.5 * c * float(t.dot(t))
        grad = np.asarray(problem.cost_gradient(u), dtype=float) \
            + problem.constraint_jacobian_transpose_product(u, c * t)
        return psi, grad

    @staticmethod
    def _psi(u, problem, c, y):
        f1 = np.asarray(problem.constraints(u), dtype=float)
        t = f1 + y / c
        return problem.cost(u) + 0.5 * c * float(t.dot(t))

    def _inner_solve(self, problem, u, c, y, eps_k):
        """
        Minimise psi(.; c, y) from u

        L-BFGS-B first. psi has a kink wherever a penalised constraint
        switches on (obstacle boundary, step-length circle). When the
        L-BFGS-B line search breaks down there, the solve is continued with
        Nelder-Mead, which only compares function values.

        Returns:
            (u, iterations, converged, message)
        """
        cfg = self.config
        res = minimize(self._psi_and_gradient, u, args=(problem, c, y),
                       jac=True, method="L-BFGS-B",
                       options={"maxcor": cfg.lbfgs_memory,
                                "gtol": eps_k,
                                "ftol": cfg.inner_ftol,
                                "maxiter": cfg.max_inner_iterations})
        u = np.asarray(res.x, dtype=float)
        if res.status != _LBFGSB_ABNORMAL:
            return u, int(res.nit), res.status != _LBFGSB_LIMIT_REACHED, str(res.message)

        simplex = np.vstack([u, u + cfg.simplex_size * np.eye(u.size)])
        nm = minimize(self._psi, u, args=(problem, c, y), method="Nelder-Mead",
                      options={"initial_simplex": simplex,
                               "xatol": cfg.simplex_xtol,
                               "fatol": cfg.simplex_xtol,
                               "maxiter": cfg.max_inner_iterations,
                               "maxfev": 4 * cfg.max_inner_iterations})
        nit = int(res.nit) + int(nm.nit)
        message = f"{res.message}; Nelder-Mead: {nm.message}"
        if nm.fun > self._psi(u, problem, c, y):
            return u, nit, False, message
        return np.asarray(nm.x, dtype=float), nit, bool(nm.success), message

    def solve(self, problem, u0) -> SolverResult:
        """
        Solve from the initial guess u0

        Returns:
            SolverResult; check has_converged() before using the solution
        """
        cfg = self.config
        tic = time.perf_counter()

        u = np.array(u0, dtype=float).reshape(-1)
        n1 = np.asarray(problem.constraints(u)).size
        y = np.array(cfg.initial_lagrange_multipliers, dtype=float)
        if y.size != n1:
            raise ValueError(f"Expected {n1} initial Lagrange multipliers, got {y.size}")

        c = float(cfg.initial_penalty)
        eps_k = float(cfg.initial_inner_tolerance)
        delta_y_norm = np.inf
        delta_y_norm_plus = np.inf
        num_outer = 0
        num_inner = 0
        inner_messages = []
        exit_status = ExitStatus.NOT_CONVERGED_ITERATIONS

        for k in range(cfg.max_outer_iterations):
            if cfg.max_duration is not None and time.perf_counter() - tic > cfg.max_duration:
                exit_status = ExitStatus.NOT_CONVERGED_OUT_OF_TIME
                break
            num_outer += 1

            y = _project_ball(y)
            u, nit, inner_converged, message = self._inner_solve(problem, u, c, y, eps_k)
            num_inner += nit
            inner_messages.append(message)

            f1 = np.asarray(problem.constraints(u), dtype=float)
            y_plus = y + c * f1
            delta_y_norm_plus = float(np.linalg.norm(y_plus - y))

            if self.verbose:
                print(f"  ALM iteration {k}: cost = {problem.cost(u):.6e}, "
                      f"||F1|| = {np.linalg.norm(f1):.3e}, c = {c:.3e}, eps = {eps_k:.1e}")

            if (k > 0 and inner_converged
                    and delta_y_norm_plus <= c * cfg.delta_tolerance + SMALL_EPSILON
                    and eps_k <= cfg.epsilon_tolerance + SMALL_EPSILON):
                y = y_plus
                exit_status = ExitStatus.CONVERGED
                break

            if k == 0 or delta_y_norm_plus > cfg.sufficient_decrease_coefficient * delta_y_norm:
                c *= cfg.penalty_update_factor
            eps_k = max(cfg.epsilon_tolerance, cfg.inner_tolerance_update_factor * eps_k)
            delta_y_norm = delta_y_norm_plus
            y = y_plus

        f1 = np.asarray(problem.constraints(u), dtype=float)
        return SolverResult(
            solution=u,
            exit_status=exit_status,
            num_outer_iterations=num_outer,
            num_inner_iterations=num_inner,
            cost=float(problem.cost(u)),
            constraint_values=f1,
            infeasibility=float(np.linalg.norm(f1)),
            lagrange_multipliers=y,
            penalty=c,
            delta_y_norm=delta_y_norm_plus,
            solve_time=time.perf_counter() - tic,
            inner_messages=inner_messages,
        )
