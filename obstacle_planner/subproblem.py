#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Single-step planning subproblem

For the robot at `position`, choose the next point u that solves

    min  ||u - goal||^2
    s.t. F1(u) = [ h(u), max(0, ||u - position|| - max_step_length) ] = 0

where h is the aggregate obstacle penetration. Since both rows of F1 are
non-negative, F1(u) = 0 is the same as F1(u) <= 0.
"""

import numpy as np

from .derivatives import DEFAULT_STEP, forward_difference_gradient, forward_difference_jacobian
from .obstacles import ObstacleField

DERIVATIVE_MODES = ("analytic", "finite_difference")


class StepSubproblem:
    """Cost, constraints and their derivatives for one replanning step"""

    n_constraints = 2

    def __init__(self, position, goal, obstacles: ObstacleField, max_step_length: float,
                 derivatives: str = "analytic", step: float = DEFAULT_STEP):
        """
        Args:
            position: Current robot position
            goal: Goal position
            obstacles: Obstacle field (read-only)
            max_step_length: Largest admissible move per step
            derivatives: "analytic" or "finite_difference"
            step: Perturbation used by finite differences
        """
        if not np.isfinite(max_step_length) or max_step_length <= 0.0:
            raise ValueError(f"max_step_length must be positive and finite, got {max_step_length}")
        if derivatives not in DERIVATIVE_MODES:
            raise ValueError(f"Unknown derivative mode {derivatives!r}, expected one of {DERIVATIVE_MODES}")
        if step <= 0.0:
            raise ValueError(f"Finite-difference step must be positive, got {step}")

        self.position = np.array(position, dtype=float).reshape(2)
        self.goal = np.array(goal, dtype=float).reshape(2)
        self.obstacles = obstacles
        self.max_step_length = float(max_step_length)
        self.derivatives = derivatives
        self.step = float(step)

    # ---- cost ----
    def cost(self, u) -> float:
        e = np.asarray(u, dtype=float) - self.goal
        return float(e.dot(e))

    def cost_gradient(self, u) -> np.ndarray:
        if self.derivatives == "finite_difference":
            return forward_difference_gradient(self.cost, u, self.step)
        return 2.0 * (np.asarray(u, dtype=float) - self.goal)

    # ---- constraints ----
    def step_excess(self, u) -> float:
        """max(0, ||u - position|| - max_step_length)"""
        delta = np.asarray(u, dtype=float) - self.position
        return max(float(np.linalg.norm(delta)) - self.max_step_length, 0.0)

    def constraints(self, u) -> np.ndarray:
        u = np.asarray(u, dtype=float)
        return np.array([self.obstacles.penetration(u), self.step_excess(u)])

    def constraint_jacobian(self, u) -> np.ndarray:
        u = np.asarray(u, dtype=float)
        if self.derivatives == "finite_difference":
            return forward_difference_jacobian(self.constraints, u, self.step)

        jac = np.zeros((self.n_constraints, 2))
        jac[0] = self.obstacles.gradient(u)
        delta = u - self.position
        dist = float(np.linalg.norm(delta))
        if dist > self.max_step_length:
            jac[1] = delta / dist
        return jac

    def constraint_jacobian_transpose_product(self, u, d) -> np.ndarray:
        """
        J(u)^T d, with the obstacle row of J zeroed when u is outside every
        obstacle (penetration <= 0). The step row is kept as is.
        """
        u = np.asarray(u, dtype=float)
        d = np.asarray(d, dtype=float).reshape(self.n_constraints)
        jac = self.constraint_jacobian(u)
        if self.obstacles.penetration(u) <= 0.0:
            jac[0, :] = 0.0
        return jac.T @ d

    def __repr__(self):
        return (f"StepSubproblem(position={self.position.tolist()}, goal={self.goal.tolist()}, "
                f"max_step_length={self.max_step_length}, n_obstacles={len(self.obstacles)})")
