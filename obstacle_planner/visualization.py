#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Plotting and saving of planned paths
"""

import numpy as np
import matplotlib.pyplot as plt


def plot_path(path, obstacle_points=None, start=None, goal=None,
              x_range=(-5.0, 35.0), y_range=(-5.0, 35.0), save_path=None, title=None):
    """
    Plot a planned path over sampled obstacle interiors

    Args:
        path: Path points, shape (N, 2)
        obstacle_points: Points inside obstacles, shape (M, 2)
        start: Start point (defaults to the first path point)
        goal: Goal point
        x_range, y_range: Axis limits
        save_path: Output file; format follows the extension (.svg, .png, ...)
        title: Optional figure title

    Returns:
        matplotlib Figure
    """
    path = np.asarray(path, dtype=float).reshape(-1, 2)
    if start is None and len(path) > 0:
        start = path[0]

    fig, ax = plt.subplots(figsize=(8, 8))

    if obstacle_points is not None and len(obstacle_points) > 0:
        obstacle_points = np.asarray(obstacle_points, dtype=float).reshape(-1, 2)
        ax.scatter(obstacle_points[:, 0], obstacle_points[:, 1], s=0.5, color='#bb33dd',
                   marker='.', linewidths=0, label='Obstacles', zorder=1)

    if len(path) > 0:
        ax.scatter(path[:, 0], path[:, 1], s=2.0, color='#DD3355', marker='s',
                   linewidths=0, label='Path', zorder=3)

    if start is not None:
        ax.scatter(start[0], start[1], color='#35C788', s=80, marker='o', label='Start', zorder=5)
    if goal is not None:
        ax.scatter(goal[0], goal[1], color='#35C788', s=120, marker='*', label='Goal', zorder=5)

    ax.set_xlim(list(x_range))
    ax.set_ylim(list(y_range))
    ax.set_aspect('equal')
    ax.set_xlabel('X (m)', fontsize=10)
    ax.set_ylabel('Y (m)', fontsize=10)
    ax.set_title(title or 'Obstacle Avoidance Path', fontsize=11, fontweight='bold')
    ax.legend(fontsize=8, loc='upper left', markerscale=3)
    ax.grid(True, alpha=0.3)

    if save_path:
        fig.savefig(save_path, dpi=300, bbox_inches='tight')
        print(f"✓ Path plot saved to: {save_path}")

    return fig


def save_path_data(save_path, path, goal=None, status=None, step_results=()):
    """
    Save a path and per-step solver diagnostics as .npz

    Args:
        save_path: Output file
        path: Path points, shape (N, 2)
        goal: Goal point
        status: Final planner status (PlannerStatus or str)
        step_results: SolverResult for every step
    """
    step_results = list(step_results)
    np.savez(save_path,
             path=np.asarray(path, dtype=float).reshape(-1, 2),
             goal=np.asarray(goal if goal is not None else [np.nan, np.nan], dtype=float),
             status=str(getattr(status, 'value', status)),
             outer_iterations=np.array([r.num_outer_iterations for r in step_results], dtype=int),
             inner_iterations=np.array([r.num_inner_iterations for r in step_results], dtype=int),
             infeasibility=np.array([r.infeasibility for r in step_results], dtype=float),
             solve_times=np.array([r.solve_time for r in step_results], dtype=float))
    print(f"✓ Path data saved to: {save_path}")
