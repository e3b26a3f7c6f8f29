#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""Errors raised by the replanning loop"""

import numpy as np


class PlanningError(RuntimeError):
    """
    Base class for planning failures

    Attributes:
        step: Index of the step that failed (0-based)
        path: Path accumulated before the failure, shape (N, 2)
        result: Last SolverResult, if a solve was involved
        step_results: SolverResult of every completed step before the failure
    """

    def __init__(self, message, step=None, path=None, result=None, step_results=()):
        super().__init__(message)
        self.step = step
        self.path = np.zeros((0, 2)) if path is None else np.asarray(path, dtype=float)
        self.result = result
        self.step_results = list(step_results)


class SolverFailure(PlanningError):
    """The constrained solver did not converge for a step"""


class InfeasibleStep(PlanningError):
    """No point within the step bound could be found outside all obstacles"""


class StalledProgress(SolverFailure):
    """Steps keep converging to the current position short of the goal"""


class NonTermination(PlanningError):
    """The goal was not reached within the step or time budget"""
