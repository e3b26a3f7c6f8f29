"""
Pytest configuration and fixtures for the path planning tests.

Fixtures provide:
- Obstacle fields (reference scenario, single obstacles, empty)
- Small solver/planner configurations
"""

import sys
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

# Ensure project root is in path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from obstacle_planner.obstacles import Ellipse, NonlinearRegionA, NonlinearRegionB, ObstacleField


# =============================================================================
# Obstacle Fixtures
# =============================================================================

@pytest.fixture
def reference_obstacles():
    """The four obstacles of the reference scenario."""
    return ObstacleField([
        Ellipse(center=(3.0, 4.0), radii=(1.5, 2.0)),
        Ellipse(center=(23.0, 23.0), radii=(2.5, 1.0)),
        NonlinearRegionA(center=(29.0, 27.0)),
        NonlinearRegionB(center=(9.0, 12.0)),
    ])


@pytest.fixture
def empty_field():
    return ObstacleField([])


@pytest.fixture
def unit_circle_field():
    """One circular obstacle of radius 1 centred at the origin."""
    return ObstacleField([Ellipse(center=(0.0, 0.0), radii=(1.0, 1.0))])


@pytest.fixture
def rng():
    return np.random.default_rng(12345)


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: end-to-end planning runs (slower)")
