#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Obstacle penetration functions for 2D path planning

Each obstacle is described by a product of clamped margins
    h(p) = prod_i max(0, m_i(p))
so that h is zero outside the obstacle and strictly positive inside the
intersection of the regions {m_i > 0}. All evaluators accept a single point
of shape (2,) or a batch of shape (..., 2).
"""

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

import numpy as np


def _as_points(p):
    p = np.asarray(p, dtype=float)
    if p.shape[-1] != 2:
        raise ValueError(f"Expected points with last dimension 2, got shape {p.shape}")
    return p


def as_vector2(v, name):
    arr = np.asarray(v, dtype=float).reshape(-1)
    if arr.shape != (2,) or not np.all(np.isfinite(arr)):
        raise ValueError(f"{name} must be a finite 2-vector, got {v!r}")
    return float(arr[0]), float(arr[1])


class Obstacle:
    """Base class: subclasses provide their margins and margin gradients"""

    kind = None

    def _margins(self, s, t) -> List[Tuple[np.ndarray, np.ndarray, np.ndarray]]:
        """
        Return (m, dm/dx, dm/dy) for every margin, in centre-relative
        coordinates s = x - cx, t = y - cy.
        """
        raise NotImplementedError

    def _relative(self, p):
        p = _as_points(p)
        cx, cy = self.center
        return p, p[..., 0] - cx, p[..., 1] - cy

    def penetration(self, p):
        """Penetration depth h(p) >= 0 (float for a single point)"""
        p, s, t = self._relative(p)
        h = np.ones(p.shape[:-1])
        for m, _, _ in self._margins(s, t):
            h = h * np.maximum(m, 0.0)
        return float(h) if p.ndim == 1 else h

    def gradient(self, p):
        """
        Exact gradient of h by the product rule.

        A clamped margin contributes zero derivative wherever it is <= 0, so
        the gradient vanishes identically outside the obstacle.
        """
        p, s, t = self._relative(p)
        margins = self._margins(s, t)
        clamped = [np.maximum(m, 0.0) for m, _, _ in margins]

        grad = np.zeros(p.shape)
        for i, (m, dmx, dmy) in enumerate(margins):
            active = (m > 0.0).astype(float)
            others = np.ones(p.shape[:-1])
            for j, c in enumerate(clamped):
                if j != i:
                    others = others * c
            grad[..., 0] += active * dmx * others
            grad[..., 1] += active * dmy * others
        return grad

    def contains(self, p):
        return np.asarray(self.penetration(p)) > 0.0

    def to_dict(self) -> Dict:
        raise NotImplementedError


@dataclass(frozen=True)
class Ellipse(Obstacle):
    """Axis-aligned ellipse, h = max(0, 1 - (dx/rx)^2 - (dy/ry)^2)"""

    center: Tuple[float, float]
    radii: Tuple[float, float]

    kind = "ellipse"

    def __post_init__(self):
        object.__setattr__(self, "center", as_vector2(self.center, "center"))
        radii = as_vector2(self.radii, "radii")
        if radii[0] <= 0.0 or radii[1] <= 0.0:
            raise ValueError(f"Ellipse radii must be positive, got {radii}")
        object.__setattr__(self, "radii", radii)

    def _margins(self, s, t):
        rx, ry = self.radii
        m = 1.0 - (s / rx) ** 2 - (t / ry) ** 2
        return [(m, -2.0 * s / rx ** 2, -2.0 * t / ry ** 2)]

    def to_dict(self):
        return {"kind": self.kind, "center": list(self.center), "radii": list(self.radii)}


@dataclass(frozen=True)
class NonlinearRegionA(Obstacle):
    """
    Band between the parabolas t = s^2 and t = 1 + s^2/2

    Margins: t - s^2 > 0 and 1 + s^2/2 - t > 0.
    """

    center: Tuple[float, float]

    kind = "nonlinear_a"

    def __post_init__(self):
        object.__setattr__(self, "center", as_vector2(self.center, "center"))

    def _margins(self, s, t):
        ones = np.ones_like(s)
        return [
            (t - s ** 2, -2.0 * s, ones),
            (1.0 + 0.5 * s ** 2 - t, s, -ones),
        ]

    def to_dict(self):
        return {"kind": self.kind, "center": list(self.center)}


@dataclass(frozen=True)
class NonlinearRegionB(Obstacle):
    """
    Strip between two sinusoids, limited to 1 < s < 8

    Margins: t + 2 sin(s/2) > 0, 3 sin(s/2 - 1) - t > 0, s - 1 > 0, 8 - s > 0.
    """

    center: Tuple[float, float]

    kind = "nonlinear_b"

    def __post_init__(self):
        object.__setattr__(self, "center", as_vector2(self.center, "center"))

    def _margins(self, s, t):
        ones = np.ones_like(s)
        zeros = np.zeros_like(s)
        return [
            (t + 2.0 * np.sin(0.5 * s), np.cos(0.5 * s), ones),
            (3.0 * np.sin(0.5 * s - 1.0) - t, 1.5 * np.cos(0.5 * s - 1.0), -ones),
            (s - 1.0, ones, zeros),
            (8.0 - s, -ones, zeros),
        ]

    def to_dict(self):
        return {"kind": self.kind, "center": list(self.center)}


OBSTACLE_KINDS = {
    Ellipse.kind: Ellipse,
    NonlinearRegionA.kind: NonlinearRegionA,
    NonlinearRegionB.kind: NonlinearRegionB,
}


def obstacle_from_dict(spec: Dict) -> Obstacle:
    """
    Build an obstacle from a mapping such as
    {"kind": "ellipse", "center": [3, 4], "radii": [1.5, 2]}

    Raises:
        ValueError: unknown kind or bad shape parameters
    """
    if not isinstance(spec, dict) or "kind" not in spec:
        raise ValueError(f"Obstacle entry must be a mapping with a 'kind' key, got {spec!r}")
    kind = spec["kind"]
    if kind not in OBSTACLE_KINDS:
        raise ValueError(f"Unknown obstacle kind {kind!r}, expected one of {sorted(OBSTACLE_KINDS)}")
    params = {k: v for k, v in spec.items() if k != "kind"}
    try:
        return OBSTACLE_KINDS[kind](**params)
    except TypeError as e:
        raise ValueError(f"Bad parameters for {kind} obstacle: {e}") from e


class ObstacleField:
    """Ordered, read-only set of obstacles with aggregate penetration"""

    def __init__(self, obstacles: Sequence[Obstacle] = ()):
        for obs in obstacles:
            if not isinstance(obs, Obstacle):
                raise TypeError(f"Not an obstacle: {obs!r}")
        self._obstacles = tuple(obstacles)

    @classmethod
    def from_dicts(cls, specs) -> "ObstacleField":
        return cls([obstacle_from_dict(s) for s in specs])

    @property
    def obstacles(self) -> Tuple[Obstacle, ...]:
        return self._obstacles

    def __len__(self):
        return len(self._obstacles)

    def __iter__(self):
        return iter(self._obstacles)

    def penetration(self, p):
        """Sum of the individual penetrations (0 everywhere if empty)"""
        p = _as_points(p)
        total = np.zeros(p.shape[:-1])
        for obs in self._obstacles:
            total = total + obs.penetration(p)
        return float(total) if p.ndim == 1 else total

    def gradient(self, p):
        p = _as_points(p)
        grad = np.zeros(p.shape)
        for obs in self._obstacles:
            grad = grad + obs.gradient(p)
        return grad

    def contains(self, p):
        return np.asarray(self.penetration(p)) > 0.0

    def sample_interior_points(self, x_range=(-10.0, 40.0), y_range=(-10.0, 40.0),
                               resolution=0.05) -> np.ndarray:
        """
        Grid points (inclusive of the range ends) that lie inside any obstacle

        Returns:
            Array of shape (N, 2)
        """
        if resolution <= 0.0:
            raise ValueError(f"resolution must be positive, got {resolution}")
        # small slack so that the upper bound is included despite rounding
        xs = np.arange(x_range[0], x_range[1] + 0.5 * resolution, resolution)
        ys = np.arange(y_range[0], y_range[1] + 0.5 * resolution, resolution)
        X, Y = np.meshgrid(xs, ys, indexing="ij")
        grid = np.stack([X.ravel(), Y.ravel()], axis=-1)
        if not self._obstacles:
            return np.zeros((0, 2))
        h = self.penetration(grid)
        return grid[h > 0.0]

    def to_dicts(self) -> List[Dict]:
        return [obs.to_dict() for obs in self._obstacles]

    def __repr__(self):
        return f"ObstacleField({list(self._obstacles)!r})"
