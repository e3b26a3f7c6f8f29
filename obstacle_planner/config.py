#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Scenario and settings loading from YAML

A configuration file has four optional sections: `scenario`, `solver`,
`planner` and `render`. Missing sections fall back to the defaults.
"""

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Optional, Tuple

import numpy as np
import yaml

from .obstacles import ObstacleField
from .planner import PlannerConfig
from .solver import SolverConfig

DEFAULT_CONFIG_PATH = Path(__file__).parent / 'data' / 'scenario.yaml'
SECTIONS = ('scenario', 'solver', 'planner', 'render')


def _pair(value, name) -> Tuple[float, float]:
    arr = np.asarray(value, dtype=float).reshape(-1)
    if arr.shape != (2,) or not np.all(np.isfinite(arr)):
        raise ValueError(f"{name} must be a pair of finite numbers, got {value!r}")
    return float(arr[0]), float(arr[1])


@dataclass(frozen=True)
class Scenario:
    """Problem instance: start, goal, obstacles and per-step move limit"""

    start: Tuple[float, float] = (0.0, 0.0)
    goal: Tuple[float, float] = (30.0, 30.0)
    max_step_length: float = 0.1
    obstacles: ObstacleField = field(default_factory=ObstacleField)

    @classmethod
    def from_dict(cls, params) -> "Scenario":
        params = dict(params or {})
        unknown = set(params) - {f.name for f in fields(cls)}
        if unknown:
            raise ValueError(f"Unknown scenario settings: {sorted(unknown)}")
        kwargs = {}
        if 'start' in params:
            kwargs['start'] = _pair(params['start'], 'start')
        if 'goal' in params:
            kwargs['goal'] = _pair(params['goal'], 'goal')
        if 'max_step_length' in params:
            step = float(params['max_step_length'])
            if step <= 0.0:
                raise ValueError(f"max_step_length must be positive, got {step}")
            kwargs['max_step_length'] = step
        if 'obstacles' in params:
            kwargs['obstacles'] = ObstacleField.from_dicts(params['obstacles'] or [])
        return cls(**kwargs)


@dataclass(frozen=True)
class RenderConfig:
    x_range: Tuple[float, float] = (-5.0, 35.0)
    y_range: Tuple[float, float] = (-5.0, 35.0)
    sample_x_range: Tuple[float, float] = (-10.0, 40.0)
    sample_y_range: Tuple[float, float] = (-10.0, 40.0)
    resolution: float = 0.05
    output: str = 'path_result.svg'

    @classmethod
    def from_dict(cls, params) -> "RenderConfig":
        params = dict(params or {})
        unknown = set(params) - {f.name for f in fields(cls)}
        if unknown:
            raise ValueError(f"Unknown render settings: {sorted(unknown)}")
        for key in ('x_range', 'y_range', 'sample_x_range', 'sample_y_range'):
            if key in params:
                params[key] = _pair(params[key], key)
        if 'resolution' in params:
            params['resolution'] = float(params['resolution'])
            if params['resolution'] <= 0.0:
                raise ValueError("resolution must be positive")
        if 'output' in params:
            params['output'] = str(params['output'])
        return cls(**params)


@dataclass(frozen=True)
class PlanningConfig:
    scenario: Scenario = field(default_factory=Scenario)
    solver: SolverConfig = field(default_factory=SolverConfig)
    planner: PlannerConfig = field(default_factory=PlannerConfig)
    render: RenderConfig = field(default_factory=RenderConfig)

    @classmethod
    def from_dict(cls, data) -> "PlanningConfig":
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(f"Configuration root must be a mapping, got {type(data).__name__}")
        unknown = set(data) - set(SECTIONS)
        if unknown:
            raise ValueError(f"Unknown configuration sections: {sorted(unknown)}")
        try:
            return cls(scenario=Scenario.from_dict(data.get('scenario')),
                       solver=SolverConfig.from_dict(data.get('solver')),
                       planner=PlannerConfig.from_dict(data.get('planner')),
                       render=RenderConfig.from_dict(data.get('render')))
        except TypeError as e:
            raise ValueError(f"Malformed configuration: {e}") from e


def load_config(path: Optional[str] = None, verbose: bool = True) -> PlanningConfig:
    """
    Load a planning configuration from YAML

    Args:
        path: YAML file; the bundled reference scenario when None
        verbose: Print a status line

    Raises:
        FileNotFoundError: the file does not exist
        ValueError: the content is malformed
    """
    path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
        config = PlanningConfig.from_dict(data)
    except (OSError, ValueError, yaml.YAMLError) as e:
        if verbose:
            print(f"✗ Failed to load planning configuration file: {e}")
        if isinstance(e, yaml.YAMLError):
            raise ValueError(f"Invalid YAML in {path}: {e}") from e
        raise

    if verbose:
        scenario = config.scenario
        print(f"✓ Successfully loaded planning configuration file: {path}")
        print(f"  - Start: {scenario.start}")
        print(f"  - Goal: {scenario.goal}")
        print(f"  - Maximum step length: {scenario.max_step_length}")
        print(f"  - Number of obstacles: {len(scenario.obstacles)}")
    return config
