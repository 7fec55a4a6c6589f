#!/usr/bin/env python3
"""
Single Quantum Walk Search Runner

Computes the success-probability trajectory of one search on an n x n torus
for a fixed set of marked cells, and saves it as a SampleResult .npz.
"""

import argparse
import sys
import time
from pathlib import Path

import numpy as np

# Add src/ to path
ROOT = Path(__file__).resolve().parents[2]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from qw_search import hitting_time, qw_signal, utils


def run_trajectory(n: int, steps: int, targets: list) -> utils.SampleResult:
    """Run qw_signal and wrap the trajectory with its metadata."""
    start_time = time.time()
    signal = qw_signal(n, steps, targets)
    result = utils.SampleResult(probabilities=signal)
    meta = result.ensure_meta()
    meta.update(
        {
            "model": "qw_signal",
            "n": n,
            "steps": steps,
            "targets": [int(k) for k in targets],
            "hitting_time": hitting_time(n * n / max(1, len(targets))),
            "peak_step": int(np.argmax(signal)),
            "peak_probability": float(signal.max()),
            "time_elapsed": time.time() - start_time,
        }
    )
    return result


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Run a single quantum walk search",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--n",
        type=int,
        required=True,
        help="Grid side length (the torus has n*n cells)",
    )
    parser.add_argument(
        "--steps",
        type=int,
        default=None,
        help="Number of steps (default: twice the hitting time)",
    )
    parser.add_argument(
        "--targets",
        type=int,
        nargs="+",
        default=[0],
        help="Flattened indices of the marked cells (default: 0)",
    )
    parser.add_argument(
        "--out",
        type=str,
        default=None,
        help="Output .npz file path (auto-generated if not provided)",
    )

    args = parser.parse_args(argv)

    if args.steps is None:
        args.steps = 2 * hitting_time(args.n * args.n / max(1, len(args.targets)))

    print(f"Running quantum walk search: n={args.n}, steps={args.steps}, targets={args.targets}")
    result = run_trajectory(args.n, args.steps, args.targets)
    meta = result.meta

    if args.out is None:
        timestamp = utils.now_str()
        output_dir = Path("results")
        output_dir.mkdir(exist_ok=True)
        args.out = str(output_dir / f"signal_n{args.n}_m{args.steps}_{timestamp}.npz")

    utils.save_result(args.out, result)

    print(f"\nSimulation completed.")
    print(f"   Time elapsed: {meta['time_elapsed']:.2f} seconds")
    print(f"   Final probability: {result.probabilities[-1]:.6f}")
    print(f"   Peak probability: {meta['peak_probability']:.6f} at step {meta['peak_step']}")
    print(f"   Estimated hitting time: {meta['hitting_time']}")
    print(f"   Output saved to: {args.out}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
