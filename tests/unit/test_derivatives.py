"""
Unit tests for forward-difference derivatives.
"""

import numpy as np
import pytest

from obstacle_planner.derivatives import forward_difference_gradient, forward_difference_jacobian


def test_gradient_of_quadratic():
    goal = np.array([30.0, 30.0])
    u = np.array([1.0, -2.0])
    grad = forward_difference_gradient(lambda v: float(np.sum((v - goal) ** 2)), u)
    np.testing.assert_allclose(grad, 2.0 * (u - goal), atol=1e-4)


def test_gradient_leaves_input_untouched():
    u = np.array([1.0, 2.0])
    forward_difference_gradient(lambda v: float(v[0] * v[1]), u)
    np.testing.assert_array_equal(u, [1.0, 2.0])


def test_jacobian_of_linear_map():
    A = np.array([[1.0, 2.0], [-3.0, 0.5], [0.0, 4.0]])
    jac = forward_difference_jacobian(lambda v: A @ v, np.array([0.3, -0.7]))
    assert jac.shape == (3, 2)
    np.testing.assert_allclose(jac, A, atol=1e-6)


def test_jacobian_of_max_is_one_sided():
    # forward difference at the kink of max(0, x) sees the right slope
    jac = forward_difference_jacobian(lambda v: np.array([max(v[0], 0.0)]), np.array([0.0]))
    assert jac[0, 0] == pytest.approx(1.0)


@pytest.mark.parametrize("step", [0.0, -1e-6])
def test_rejects_non_positive_step(step):
    with pytest.raises(ValueError):
        forward_difference_gradient(lambda v: 0.0, np.zeros(2), step=step)
    with pytest.raises(ValueError):
        forward_difference_jacobian(lambda v: np.zeros(1), np.zeros(2), step=step)
