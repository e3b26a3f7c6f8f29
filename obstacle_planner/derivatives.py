#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Forward-difference derivatives

Used as the fallback when no analytic derivative is selected, and to check
analytic derivatives in the tests.
"""

import numpy as np

DEFAULT_STEP = 1e-6


def forward_difference_gradient(fun, u, step=DEFAULT_STEP):
    """
    Gradient of a scalar function by forward differences

    Args:
        fun: Callable u -> float
        u: Evaluation point
        step: Perturbation applied to one coordinate at a time

    Returns:
        Gradient array with the shape of u
    """
    if step <= 0.0:
        raise ValueError(f"Finite-difference step must be positive, got {step}")
    u = np.asarray(u, dtype=float)
    step_inv = 1.0 / step
    f_base = fun(u)

    grad = np.zeros_like(u)
    u_pert = u.copy()
    for i in range(u.size):
        u_pert[i] = u[i] + step
        grad[i] = (fun(u_pert) - f_base) * step_inv
        u_pert[i] = u[i]  # restore
    return grad


def forward_difference_jacobian(fun, u, step=DEFAULT_STEP):
    """
    Jacobian of a vector function by forward differences

    Returns:
        Matrix J with J[i, j] = d fun_i / d u_j
    """
    if step <= 0.0:
        raise ValueError(f"Finite-difference step must be positive, got {step}")
    u = np.asarray(u, dtype=float)
    step_inv = 1.0 / step
    f_base = np.asarray(fun(u), dtype=float)

    jac = np.zeros((f_base.size, u.size))
    u_pert = u.copy()
    for j in range(u.size):
        u_pert[j] = u[j] + step
        jac[:, j] = (np.asarray(fun(u_pert), dtype=float) - f_base) * step_inv
        u_pert[j] = u[j]
    return jac
