#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Obstacle avoidance path planning from the command line

Usage:
    obstacle-plan --config my_scenario.yaml --output path_result.svg
"""

import argparse
import dataclasses
import traceback

import matplotlib

from .config import load_config
from .exceptions import PlanningError
from .planner import PlannerStatus, ProgressCallback, ReplanningPlanner
from .subproblem import DERIVATIVE_MODES


def build_parser():
    parser = argparse.ArgumentParser(description='Nonlinear Obstacle Avoidance Path Planning')
    parser.add_argument('--config', type=str, help='Path to scenario YAML file')
    parser.add_argument('--output', type=str, help='Output image (format from extension)')
    parser.add_argument('--save-data', type=str, help='Save path and solver data to this .npz file')
    parser.add_argument('--max-steps', type=int, help='Maximum number of replanning steps')
    parser.add_argument('--step-length', type=float, help='Maximum movement per step')
    parser.add_argument('--derivatives', choices=DERIVATIVE_MODES, help='Derivative mode')
    parser.add_argument('--no-plot', action='store_true', help='Do not render the path')
    parser.add_argument('--show', action='store_true', help='Show the plot window')
    parser.add_argument('--quiet', action='store_true', help='Only print errors')
    return parser


def main(argv=None):
    """Main function, returns the process exit code"""
    args = build_parser().parse_args(argv)
    verbose = not args.quiet

    if not args.show:
        matplotlib.use('Agg')
    import matplotlib.pyplot as plt
    from .visualization import plot_path, save_path_data

    if verbose:
        print("=" * 80)
        print("Nonlinear Obstacle Avoidance Path Planning")
        print("Augmented Lagrangian single-step replanning")
        print("=" * 80)

    try:
        config = load_config(args.config, verbose=verbose)
        scenario = config.scenario
        planner_config = config.planner
        if args.max_steps is not None:
            planner_config = dataclasses.replace(planner_config, max_steps=args.max_steps)
        if args.derivatives is not None:
            planner_config = dataclasses.replace(planner_config, derivatives=args.derivatives)
        step_length = args.step_length if args.step_length is not None else scenario.max_step_length

        planner = ReplanningPlanner(scenario.obstacles, step_length,
                                    solver_config=config.solver, config=planner_config,
                                    callbacks=[ProgressCallback()] if verbose else [])

        path = None
        status = PlannerStatus.FAILED
        step_results = []
        try:
            result = planner.plan(scenario.start, scenario.goal)
            path, status, step_results = result.path, result.status, result.step_results
        except PlanningError as e:
            if verbose:
                print()
            print(f"✗ Planning failed: {e}")
            path = e.path
            if args.save_data:
                failed_results = e.step_results + ([e.result] if e.result is not None else [])
                save_path_data(args.save_data, path, goal=scenario.goal, status=status,
                               step_results=failed_results)
            return 1

        if verbose:
            print()
            print(f"✓ Path planning completed")
            print(f"  - Steps: {result.num_steps}")
            print(f"  - Path length: {result.path_length():.4f} m")
            print(f"  - Largest step: {result.max_step():.6f} m")
            print(f"  - Final position: ({path[-1][0]:.6f}, {path[-1][1]:.6f})")
            print(f"  - Solve time: {result.solve_time:.2f} s")

        if args.save_data:
            save_path_data(args.save_data, path, goal=scenario.goal, status=status,
                           step_results=step_results)

        if not args.no_plot:
            render = config.render
            obstacle_points = scenario.obstacles.sample_interior_points(
                render.sample_x_range, render.sample_y_range, render.resolution)
            fig = plot_path(path, obstacle_points, start=scenario.start, goal=scenario.goal,
                            x_range=render.x_range, y_range=render.y_range,
                            save_path=args.output or render.output)
            if args.show:
                plt.show()
            plt.close(fig)

        if verbose:
            print("Done - Visual Result Generated" if not args.no_plot else "Done")
        return 0

    except Exception as e:
        print(f"\n✗ Program execution failed: {e}")
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
