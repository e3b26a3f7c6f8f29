#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Replanning loop: repeatedly solve the single-step subproblem and advance the
robot until it is within `goal_tolerance` of the goal.

Usage:
    planner = ReplanningPlanner(obstacles, max_step_length=0.1)
    result = planner.plan(start=[0, 0], goal=[30, 30])
"""

import sys
import time
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Callable, List, Optional, Sequence

import numpy as np

from .exceptions import InfeasibleStep, NonTermination, PlanningError, SolverFailure, StalledProgress
from .obstacles import ObstacleField, as_vector2
from .solver import AugmentedLagrangianSolver, SolverConfig, SolverResult
from .subproblem import DERIVATIVE_MODES, StepSubproblem


class PlannerStatus(Enum):
    PLANNING = "planning"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class PlannerConfig:
    """Replanning loop settings"""

    goal_tolerance: float = 1e-5
    max_steps: int = 10000
    max_duration: Optional[float] = None
    max_retries: int = 0
    retry_relax_factor: float = 10.0
    derivatives: str = "analytic"
    finite_difference_step: float = 1e-6
    stall_tolerance: float = 1e-9
    max_stalled_steps: int = 3

    def __post_init__(self):
        if self.goal_tolerance <= 0.0:
            raise ValueError("goal_tolerance must be positive")
        if self.max_steps < 1:
            raise ValueError("max_steps must be at least 1")
        if self.max_duration is not None and self.max_duration <= 0.0:
            raise ValueError("max_duration must be positive when given")
        if self.max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        if self.retry_relax_factor < 1.0:
            raise ValueError("retry_relax_factor must be >= 1")
        if self.derivatives not in DERIVATIVE_MODES:
            raise ValueError(f"derivatives must be one of {DERIVATIVE_MODES}")
        if self.finite_difference_step <= 0.0:
            raise ValueError("finite_difference_step must be positive")
        if self.stall_tolerance < 0.0:
            raise ValueError("stall_tolerance must be non-negative")
        if self.max_stalled_steps < 1:
            raise ValueError("max_stalled_steps must be at least 1")

    @classmethod
    def from_dict(cls, params) -> "PlannerConfig":
        params = dict(params or {})
        unknown = set(params) - {f.name for f in fields(cls)}
        if unknown:
            raise ValueError(f"Unknown planner settings: {sorted(unknown)}")
        return cls(**params)


@dataclass
class PlanningState:
    """Mutable state of one planning run; only `position` changes"""

    position: np.ndarray
    goal: np.ndarray
    max_step_length: float
    obstacles: ObstacleField

    def distance_to_goal(self) -> float:
        return float(np.linalg.norm(self.position - self.goal))


@dataclass
class PlanningResult:
    path: np.ndarray
    status: PlannerStatus
    step_results: List[SolverResult] = field(default_factory=list)
    solve_time: float = 0.0

    @property
    def num_steps(self) -> int:
        return len(self.path) - 1

    def path_length(self) -> float:
        if len(self.path) < 2:
            return 0.0
        return float(np.sum(np.linalg.norm(np.diff(self.path, axis=0), axis=1)))

    def max_step(self) -> float:
        if len(self.path) < 2:
            return 0.0
        return float(np.max(np.linalg.norm(np.diff(self.path, axis=0), axis=1)))


class ProgressCallback:
    """Prints one updating line per step"""

    def __init__(self, stream=None):
        self.stream = stream if stream is not None else sys.stdout

    def __call__(self, step, position, distance, result):
        # \r rewrites the same line, \033[K clears the rest of it
        print(f"\rStep {step}: position = ({position[0]:.6f}, {position[1]:.6f}), "
              f"distance = {distance:.6e}, ALM iterations = {result.num_outer_iterations}\033[K",
              end='', flush=True, file=self.stream)


class ReplanningPlanner:
    """Advances a point robot towards the goal one constrained step at a time"""

    def __init__(self, obstacles: ObstacleField, max_step_length: float,
                 solver_config: SolverConfig = None, config: PlannerConfig = None,
                 callbacks: Sequence[Callable] = ()):
        """
        Args:
            obstacles: Obstacle field, shared read-only across steps
            max_step_length: Largest move allowed per step
            solver_config: Settings for the Augmented Lagrangian solver
            config: Loop settings (tolerance, budgets, retries)
            callbacks: Called after each step as cb(step, position, distance, result)
        """
        if not np.isfinite(max_step_length) or max_step_length <= 0.0:
            raise ValueError(f"max_step_length must be positive and finite, got {max_step_length}")
        self.obstacles = obstacles
        self.max_step_length = float(max_step_length)
        self.solver_config = solver_config if solver_config is not None else SolverConfig()
        self.config = config if config is not None else PlannerConfig()
        self.callbacks = list(callbacks)
        self.status = PlannerStatus.PLANNING

    def make_subproblem(self, state: PlanningState) -> StepSubproblem:
        return StepSubproblem(state.position, state.goal, state.obstacles, state.max_step_length,
                              derivatives=self.config.derivatives,
                              step=self.config.finite_difference_step)

    def plan_step(self, state: PlanningState, step: int = 0,
                  path: Optional[np.ndarray] = None) -> SolverResult:
        """
        Solve one step subproblem from the current position

        Non-converged solves are retried with relaxed tolerances up to
        `max_retries` times.

        Raises:
            InfeasibleStep: the last attempt still penetrates an obstacle
            SolverFailure: the last attempt did not converge otherwise
        """
        problem = self.make_subproblem(state)
        result = None
        for attempt in range(self.config.max_retries + 1):
            solver_config = self.solver_config
            if attempt > 0:
                solver_config = solver_config.relaxed(self.config.retry_relax_factor ** attempt)
            result = AugmentedLagrangianSolver(solver_config).solve(problem, state.position)
            if result.has_converged() and np.all(np.isfinite(result.solution)):
                return result

        if not np.all(np.isfinite(result.solution)):
            raise SolverFailure(f"Step {step}: solver returned a non-finite point {result.solution}",
                                step=step, path=path, result=result)
        if result.constraint_values[0] > solver_config.delta_tolerance:
            raise InfeasibleStep(
                f"Step {step}: no obstacle-free point found within {state.max_step_length} "
                f"of ({state.position[0]:.6f}, {state.position[1]:.6f}) "
                f"(penetration {result.constraint_values[0]:.3e})",
                step=step, path=path, result=result)
        raise SolverFailure(
            f"Step {step}: solver exited with {result.exit_status.value} after "
            f"{result.num_outer_iterations} outer iterations",
            step=step, path=path, result=result)

    def plan(self, start, goal) -> PlanningResult:
        """
        Run the replanning loop from start to goal

        Returns:
            PlanningResult with the path starting at `start`

        Raises:
            ValueError: start or goal is not a finite 2-vector
            SolverFailure, InfeasibleStep: a step could not be solved
            StalledProgress: the robot stopped moving short of the goal
            NonTermination: the step or time budget ran out
        """
        state = PlanningState(position=np.array(as_vector2(start, "start")),
                              goal=np.array(as_vector2(goal, "goal")),
                              max_step_length=self.max_step_length,
                              obstacles=self.obstacles)
        path = [state.position.copy()]
        step_results = []
        stalled = 0
        self.status = PlannerStatus.PLANNING
        tic = time.perf_counter()

        try:
            while not state.distance_to_goal() < self.config.goal_tolerance:
                step = len(step_results)
                if step >= self.config.max_steps:
                    raise NonTermination(
                        f"Goal not reached within {self.config.max_steps} steps "
                        f"(distance {state.distance_to_goal():.6e})",
                        step=step, path=np.array(path))
                if (self.config.max_duration is not None
                        and time.perf_counter() - tic > self.config.max_duration):
                    raise NonTermination(
                        f"Goal not reached within {self.config.max_duration} s "
                        f"(distance {state.distance_to_goal():.6e})",
                        step=step, path=np.array(path))

                result = self.plan_step(state, step=step, path=np.array(path))
                moved = float(np.linalg.norm(result.solution - state.position))
                state.position = result.solution.copy()
                path.append(state.position.copy())
                step_results.append(result)

                for cb in self.callbacks:
                    cb(step, state.position, state.distance_to_goal(), result)

                stalled = stalled + 1 if moved <= self.config.stall_tolerance else 0
                if stalled >= self.config.max_stalled_steps:
                    raise StalledProgress(
                        f"Step {step}: no progress for {stalled} steps at "
                        f"({state.position[0]:.6f}, {state.position[1]:.6f}) "
                        f"(distance {state.distance_to_goal():.6e})",
                        step=step, path=np.array(path))
        except PlanningError as e:
            self.status = PlannerStatus.FAILED
            e.step_results = list(step_results)
            raise
        except Exception:
            self.status = PlannerStatus.FAILED
            raise

        self.status = PlannerStatus.DONE
        return PlanningResult(path=np.array(path), status=self.status,
                              step_results=step_results,
                              solve_time=time.perf_counter() - tic)


def plan_path(start, goal, obstacles: ObstacleField, max_step_length: float,
              solver_config: SolverConfig = None, config: PlannerConfig = None,
              verbose: bool = False) -> PlanningResult:
    """Convenience wrapper around ReplanningPlanner.plan"""
    callbacks = [ProgressCallback()] if verbose else []
    planner = ReplanningPlanner(obstacles, max_step_length, solver_config=solver_config,
                                config=config, callbacks=callbacks)
    result = planner.plan(start, goal)
    if verbose:
        print()
    return result
