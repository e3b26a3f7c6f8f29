#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Nonlinear obstacle avoidance path planning for a point robot

Each step solves a small constrained problem (move towards the goal, stay
outside the obstacles, move at most `max_step_length`) with an Augmented
Lagrangian method, and the steps are chained until the goal is reached.
"""

from .exceptions import InfeasibleStep, NonTermination, PlanningError, SolverFailure, StalledProgress
from .obstacles import (Ellipse, NonlinearRegionA, NonlinearRegionB, Obstacle, ObstacleField,
                        obstacle_from_dict)
from .planner import (PlannerConfig, PlannerStatus, PlanningResult, PlanningState, ProgressCallback,
                      ReplanningPlanner, plan_path)
from .solver import AugmentedLagrangianSolver, ExitStatus, SolverConfig, SolverResult
from .subproblem import StepSubproblem

__version__ = "1.0.0"
