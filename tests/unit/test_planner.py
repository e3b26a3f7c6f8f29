"""
Unit tests for the replanning loop.
"""

import math

import numpy as np
import pytest

from obstacle_planner.exceptions import (InfeasibleStep, NonTermination, PlanningError, SolverFailure,
                                         StalledProgress)
from obstacle_planner.obstacles import Ellipse, ObstacleField
from obstacle_planner.planner import (PlannerConfig, PlannerStatus, PlanningResult, ProgressCallback,
                                      ReplanningPlanner, plan_path)
from obstacle_planner.solver import AugmentedLagrangianSolver, ExitStatus, SolverConfig, SolverResult


class TestPlannerConfig:

    def test_defaults(self):
        cfg = PlannerConfig()
        assert cfg.goal_tolerance == 1e-5
        assert cfg.max_steps == 10000
        assert cfg.derivatives == "analytic"

    @pytest.mark.parametrize("params", [
        {"goal_tolerance": 0.0},
        {"max_steps": 0},
        {"max_duration": -1.0},
        {"max_retries": -1},
        {"retry_relax_factor": 0.5},
        {"derivatives": "symbolic"},
        {"finite_difference_step": 0.0},
        {"stall_tolerance": -1.0},
        {"max_stalled_steps": 0},
    ])
    def test_rejects_invalid_values(self, params):
        with pytest.raises(ValueError):
            PlannerConfig(**params)

    def test_from_dict_rejects_unknown_keys(self):
        with pytest.raises(ValueError, match="Unknown planner settings"):
            PlannerConfig.from_dict({"tolerance": 1e-5})


class TestReplanningLoop:

    def test_start_at_goal_finishes_immediately(self, reference_obstacles):
        planner = ReplanningPlanner(reference_obstacles, 0.1)
        result = planner.plan([30.0, 30.0], [30.0, 30.0])
        assert result.status == PlannerStatus.DONE
        assert planner.status == PlannerStatus.DONE
        assert result.num_steps == 0
        np.testing.assert_array_equal(result.path, [[30.0, 30.0]])

    def test_straight_line_without_obstacles(self, empty_field):
        start, goal, step = np.array([0.0, 0.0]), np.array([1.0, 1.0]), 0.1
        result = ReplanningPlanner(empty_field, step).plan(start, goal)

        path = result.path
        assert result.status == PlannerStatus.DONE
        np.testing.assert_array_equal(path[0], start)
        assert len(path) <= math.ceil(np.linalg.norm(goal - start) / step) + 1
        assert np.linalg.norm(path[-1] - goal) < 1e-5
        distances = np.linalg.norm(path - goal, axis=1)
        assert np.all(np.diff(distances) < 0.0)
        np.testing.assert_allclose(path[:, 0], path[:, 1], atol=1e-4)
        assert result.max_step() <= step + 1e-4

    def test_finite_difference_mode(self, empty_field):
        config = PlannerConfig(derivatives="finite_difference")
        result = ReplanningPlanner(empty_field, 0.1, config=config).plan([0.0, 0.0], [0.25, 0.0])
        assert result.status == PlannerStatus.DONE
        assert np.linalg.norm(result.path[-1] - [0.25, 0.0]) < 1e-5

    def test_step_results_recorded(self, empty_field):
        result = ReplanningPlanner(empty_field, 0.1).plan([0.0, 0.0], [0.25, 0.0])
        assert len(result.step_results) == result.num_steps
        assert all(r.has_converged() for r in result.step_results)
        assert result.solve_time > 0.0

    def test_callbacks_called_every_step(self, empty_field):
        calls = []
        planner = ReplanningPlanner(empty_field, 0.1,
                                    callbacks=[lambda *args: calls.append(args)])
        result = planner.plan([0.0, 0.0], [0.0, 0.35])
        assert [c[0] for c in calls] == list(range(result.num_steps))
        step, position, distance, solver_result = calls[-1]
        assert distance < 1e-5
        np.testing.assert_array_equal(position, result.path[-1])

    def test_goes_around_an_obstacle(self, unit_circle_field):
        result = ReplanningPlanner(unit_circle_field, 0.1).plan([-2.0, 0.1], [2.0, 0.0])
        assert result.status == PlannerStatus.DONE
        assert np.all(unit_circle_field.penetration(result.path) <= 1e-4)
        assert np.linalg.norm(result.path[-1] - [2.0, 0.0]) < 1e-5


class TestFailures:

    def test_step_budget_exhausted(self, empty_field):
        planner = ReplanningPlanner(empty_field, 0.1, config=PlannerConfig(max_steps=3))
        with pytest.raises(NonTermination) as excinfo:
            planner.plan([0.0, 0.0], [10.0, 0.0])
        assert planner.status == PlannerStatus.FAILED
        assert excinfo.value.step == 3
        assert len(excinfo.value.path) == 4
        assert isinstance(excinfo.value, PlanningError)

    def test_time_budget_exhausted(self, empty_field):
        planner = ReplanningPlanner(empty_field, 0.1, config=PlannerConfig(max_duration=1e-9))
        with pytest.raises(NonTermination):
            planner.plan([0.0, 0.0], [10.0, 0.0])

    def test_solver_failure_is_reported(self, empty_field):
        planner = ReplanningPlanner(empty_field, 0.1,
                                    solver_config=SolverConfig(max_outer_iterations=1))
        with pytest.raises(SolverFailure) as excinfo:
            planner.plan([0.0, 0.0], [1.0, 0.0])
        assert excinfo.value.step == 0
        assert excinfo.value.result is not None
        assert not excinfo.value.result.has_converged()
        np.testing.assert_array_equal(excinfo.value.path, [[0.0, 0.0]])
        assert planner.status == PlannerStatus.FAILED

    def test_retries_use_relaxed_tolerances(self, empty_field, monkeypatch):
        seen = []
        original = SolverConfig.relaxed

        def spy(self, factor):
            seen.append(factor)
            return original(self, factor)

        monkeypatch.setattr(SolverConfig, "relaxed", spy)
        planner = ReplanningPlanner(empty_field, 0.1,
                                    solver_config=SolverConfig(max_outer_iterations=1),
                                    config=PlannerConfig(max_retries=2, retry_relax_factor=10.0))
        with pytest.raises(SolverFailure):
            planner.plan([0.0, 0.0], [1.0, 0.0])
        assert seen == [10.0, 100.0]

    def test_enclosed_robot_is_infeasible(self):
        obstacles = ObstacleField([Ellipse(center=(0.0, 0.0), radii=(5.0, 5.0))])
        planner = ReplanningPlanner(obstacles, 0.1,
                                    solver_config=SolverConfig(max_outer_iterations=5))
        with pytest.raises(InfeasibleStep) as excinfo:
            planner.plan([0.0, 0.0], [10.0, 0.0])
        assert excinfo.value.result.constraint_values[0] > 1e-5

    def test_stalled_robot_is_reported(self, empty_field, monkeypatch):
        def stay_put(self, problem, u0):
            u = np.array(u0, dtype=float)
            return SolverResult(solution=u, exit_status=ExitStatus.CONVERGED,
                                num_outer_iterations=2, num_inner_iterations=0,
                                cost=problem.cost(u), constraint_values=np.zeros(2),
                                infeasibility=0.0, lagrange_multipliers=np.zeros(2),
                                penalty=100.0, delta_y_norm=0.0, solve_time=0.0)

        monkeypatch.setattr(AugmentedLagrangianSolver, "solve", stay_put)
        planner = ReplanningPlanner(empty_field, 0.1, config=PlannerConfig(max_stalled_steps=3))
        with pytest.raises(StalledProgress) as excinfo:
            planner.plan([0.0, 0.0], [1.0, 0.0])

        assert isinstance(excinfo.value, SolverFailure)
        assert excinfo.value.step == 2
        assert len(excinfo.value.path) == 4
        assert len(excinfo.value.step_results) == 3
        assert planner.status == PlannerStatus.FAILED

    def test_failure_carries_completed_steps(self, empty_field):
        planner = ReplanningPlanner(empty_field, 0.1, config=PlannerConfig(max_steps=2))
        with pytest.raises(NonTermination) as excinfo:
            planner.plan([0.0, 0.0], [1.0, 0.0])
        assert len(excinfo.value.step_results) == 2
        assert all(r.has_converged() for r in excinfo.value.step_results)

    @pytest.mark.parametrize("start, goal", [
        ([np.nan, 0.0], [1.0, 1.0]),
        ([0.0, 0.0], [1.0, np.inf]),
        ([0.0, 0.0, 0.0], [1.0, 1.0]),
    ])
    def test_malformed_endpoints_are_rejected(self, empty_field, start, goal):
        planner = ReplanningPlanner(empty_field, 0.1)
        with pytest.raises(ValueError):
            planner.plan(start, goal)
        assert planner.status != PlannerStatus.DONE

    @pytest.mark.parametrize("step", [0.0, -0.1, np.nan, np.inf])
    def test_invalid_step_length_is_rejected(self, empty_field, step):
        with pytest.raises(ValueError):
            ReplanningPlanner(empty_field, step)


class TestPlanningResult:

    def test_path_metrics(self):
        result = PlanningResult(path=np.array([[0.0, 0.0], [0.3, 0.4], [0.3, 1.4]]),
                                status=PlannerStatus.DONE)
        assert result.num_steps == 2
        assert result.path_length() == pytest.approx(1.5)
        assert result.max_step() == pytest.approx(1.0)

    def test_single_point_metrics(self):
        result = PlanningResult(path=np.array([[1.0, 1.0]]), status=PlannerStatus.DONE)
        assert result.path_length() == 0.0
        assert result.max_step() == 0.0


def test_plan_path_verbose_prints_progress(empty_field, capsys):
    result = plan_path([0.0, 0.0], [0.15, 0.0], empty_field, 0.1, verbose=True)
    assert result.status == PlannerStatus.DONE
    out = capsys.readouterr().out
    assert "Step 0" in out


def test_progress_callback_writes_to_stream(empty_field):
    import io
    stream = io.StringIO()
    planner = ReplanningPlanner(empty_field, 0.1, callbacks=[ProgressCallback(stream)])
    planner.plan([0.0, 0.0], [0.05, 0.0])
    assert "Step 0: position" in stream.getvalue()
