#!/usr/bin/env python3
"""Run ZMP center of gravity trajectory optimization offline.

Plans a straight crawl gait (LH, LF, RH, RF, ...), builds the spline
sequence and optimizes the center of gravity trajectory so that the
zero-moment-point stays inside the support triangles.

Usage:
    python3 run_zmp_optimization.py [--steps 4] [--step-length 0.15] [--nonlinear]
"""

import argparse
import json
import logging
import time
from pathlib import Path

import numpy as np

from support_polygon import Foothold, LegID, MarginValues
from zmp_splines import SplineTimings, construct_spline_sequence, zmp_from_state

CRAWL_ORDER = [LegID.LH, LegID.LF, LegID.RH, LegID.RF]


def crawl_plan(
    n_steps: int,
    step_length: float,
    stance_length: float,
    stance_width: float,
) -> tuple[list[Foothold], list[Foothold]]:
    """Nominal stance and forward crawl footholds.

    Returns:
        Tuple of (start stance, steps).
    """
    half_l, half_w = stance_length / 2, stance_width / 2
    nominal = {
        LegID.LF: np.array([half_l, half_w, 0.0]),
        LegID.RF: np.array([half_l, -half_w, 0.0]),
        LegID.LH: np.array([-half_l, half_w, 0.0]),
        LegID.RH: np.array([-half_l, -half_w, 0.0]),
    }
    start_stance = [Foothold(p=p.copy(), leg=leg) for leg, p in nominal.items()]

    current = {leg: p.copy() for leg, p in nominal.items()}
    steps = []
    for i in range(n_steps):
        leg = CRAWL_ORDER[i % len(CRAWL_ORDER)]
        current[leg] = current[leg] + np.array([step_length, 0.0, 0.0])
        steps.append(Foothold(p=current[leg].copy(), leg=leg))

    return start_stance, steps


def main() -> None:
    """Run ZMP trajectory optimization."""
    parser = argparse.ArgumentParser(
        description="Optimize a ZMP-stable center of gravity trajectory",
    )
    parser.add_argument(
        "--steps", type=int, default=4,
        help="Number of crawl steps (default: 4)",
    )
    parser.add_argument(
        "--step-length", type=float, default=0.15,
        help="Forward step length in meters (default: 0.15)",
    )
    parser.add_argument(
        "--stance-length", type=float, default=0.7,
        help="Distance between front and hind feet in meters (default: 0.7)",
    )
    parser.add_argument(
        "--stance-width", type=float, default=0.6,
        help="Distance between left and right feet in meters (default: 0.6)",
    )
    parser.add_argument(
        "--t-swing", type=float, default=0.7,
        help="Swing phase duration in seconds (default: 0.7)",
    )
    parser.add_argument(
        "--t-stance", type=float, default=0.4,
        help="Four-leg support duration between disjoint triangles (default: 0.4)",
    )
    parser.add_argument(
        "--t-stance-initial", type=float, default=1.0,
        help="Initial four-leg support duration (default: 1.0)",
    )
    parser.add_argument(
        "--height", type=float, default=0.58,
        help="Center of gravity height in meters (default: 0.58)",
    )
    parser.add_argument(
        "--dt", type=float, default=0.1,
        help="Sampling interval of the stability constraints (default: 0.1)",
    )
    parser.add_argument(
        "--margin", type=float, default=0.05,
        help="Stability margin of every support triangle side (default: 0.05)",
    )
    parser.add_argument(
        "--nonlinear", action="store_true",
        help="Also optimize the step footholds",
    )
    parser.add_argument(
        "--output", type=str, default=None,
        help="Output JSON path (default: data/zmp_trajectory.json)",
    )
    parser.add_argument(
        "--summary", action="store_true",
        help="Print a per-spline table of the result",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Log matrix dimensions and contents",
    )
    args = parser.parse_args()

    if args.output is None:
        base_dir = Path(__file__).parent.parent / "data"
        args.output = str(base_dir / "zmp_trajectory.json")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
    )
    logger = logging.getLogger(__name__)

    from zmp_optimization import OptimizerConfig, ZmpOptimizer
    from zmp_optimization.reporting import print_solution_summary

    logger.info("=" * 60)
    logger.info("ZMP Trajectory Optimization")
    logger.info("=" * 60)

    start_stance, steps = crawl_plan(
        args.steps, args.step_length, args.stance_length, args.stance_width,
    )
    timings = SplineTimings(
        t_swing=args.t_swing,
        t_stance=args.t_stance,
        t_stance_initial=args.t_stance_initial,
        t_stance_final=args.t_stance,
    )
    splines = construct_spline_sequence(steps, timings)

    margin = args.margin
    config = OptimizerConfig(
        margins=MarginValues(front=margin, hind=margin, side=margin, diag=margin),
        height_robot=args.height,
        dt=args.dt,
    )

    logger.info(f"  Steps: {args.steps} ({' '.join(s.leg.name for s in steps)})")
    logger.info(f"  Splines: {len(splines)} ({splines.get_total_time():.2f} s)")
    logger.info(f"  Variables: {splines.coefficient_count()}")
    logger.info(f"  Height: {config.height_robot} m")
    logger.info(f"  dt: {config.dt} s")
    logger.info(f"  Margin: {margin} m")
    logger.info("")

    start_p = np.zeros(2)
    start_v = np.zeros(2)

    optimizer = ZmpOptimizer(splines, config)
    artifacts = optimizer.setup(start_p, start_v, start_stance, steps)
    logger.info(f"  Equality constraints: {artifacts.eq_matrix.shape[0]}")
    logger.info(f"  Inequality constraints: {artifacts.inequality.n_constraints}")
    logger.info("")

    t_start = time.time()
    x = optimizer.solve(artifacts)
    wall_time = time.time() - t_start
    cost = artifacts.cost(x)

    footholds = steps
    if args.nonlinear:
        logger.info("Optimizing footholds...")
        solution = optimizer.solve_nonlinear(artifacts, initial_coefficients=x)
        x, cost, footholds = solution.coefficients, solution.cost, solution.footholds
        wall_time = time.time() - t_start
        logger.info(f"  Converged: {solution.success}")

    logger.info("")
    logger.info("=" * 60)
    logger.info("Results")
    logger.info("=" * 60)
    logger.info(f"  Cost: {cost:.6f}")
    logger.info(f"  Wall time: {wall_time:.3f}s")
    logger.info(
        f"  Max equality residual: "
        f"{np.max(np.abs(artifacts.equality_residual(x))):.3g}",
    )
    if artifacts.inequality.n_constraints > 0:
        logger.info(
            f"  Min stability slack: {np.min(artifacts.inequality_slack(x)):.4f} m",
        )

    if args.summary:
        print_solution_summary(splines, x, start_p, start_v, cost, wall_time)

    output_path = Path(args.output)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    times, pos, _, acc = splines.sample(x, start_p, start_v, config.dt)
    output_data = {
        "config": {
            "steps": args.steps,
            "step_length": args.step_length,
            "height": config.height_robot,
            "dt": config.dt,
            "margin": margin,
            "timings": vars(timings),
        },
        "splines": [
            {
                "id": s.id,
                "duration": s.duration,
                "step": s.step,
                "four_leg_support": s.four_leg_support,
            }
            for s in splines
        ],
        "coefficients": x.tolist(),
        "cost": cost,
        "footholds": [
            {"leg": f.leg.name, "p": f.p.tolist()} for f in footholds
        ],
        "trajectory": {
            "t": times.tolist(),
            "cog": pos.tolist(),
            "zmp": zmp_from_state(pos, acc, config.height_robot, config.gravity).tolist(),
        },
    }

    with open(output_path, "w") as f:
        json.dump(output_data, f, indent=2)

    logger.info("")
    logger.info(f"Saved to {output_path}")


if __name__ == "__main__":
    main()
