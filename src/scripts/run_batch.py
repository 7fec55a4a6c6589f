#!/usr/bin/env python3
"""
Batch Quantum Walk Sampling Runner

Samples the success probability at the hitting time over random target
placements, for a sweep of grid sizes. Each grid size is written to its own
.npz and summarised in a manifest.json.
"""

import argparse
import json
import sys
import time
from pathlib import Path
from typing import Dict, Any

# Add src/ to path
ROOT = Path(__file__).resolve().parents[2]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from qw_search import SampleParams, run_model, utils


def run_single_size(params: SampleParams, output_path: str) -> Dict[str, Any]:
    """Sample one grid size and save it."""
    result = run_model(params)
    utils.save_result(output_path, result)
    meta = result.meta
    return {
        "output_path": output_path,
        "n": params.n,
        "seed": params.seed,
        "steps": meta["steps"],
        "mean": meta["mean"],
        "std": meta["std"],
        "success": True,
    }


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Sample quantum walk search success probabilities",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="JSON/TOML file with default values for the options below",
    )
    parser.add_argument(
        "--sizes",
        type=int,
        nargs="+",
        default=None,
        help="Grid side lengths to sample",
    )
    parser.add_argument(
        "--searched",
        type=int,
        default=None,
        help="Number of marked cells per sample (default: 1)",
    )
    parser.add_argument(
        "--count",
        type=int,
        default=None,
        help="Number of samples per grid size (default: 100)",
    )
    parser.add_argument(
        "--jobs",
        type=int,
        default=None,
        help="Number of parallel processes (default: 1)",
    )
    parser.add_argument(
        "--scale",
        action="store_true",
        default=None,
        help="Use the hitting time of N/M instead of N",
    )
    parser.add_argument(
        "--name",
        type=str,
        default=None,
        help="Batch name for output folder (default: 'batch')",
    )
    parser.add_argument(
        "--base-seed",
        type=int,
        default=None,
        help="Base seed (each grid size gets base_seed + index) (default: 42)",
    )
    parser.add_argument(
        "--out-dir",
        type=str,
        default=None,
        help="Parent directory for batches (default: results/batches)",
    )

    args = parser.parse_args(argv)

    # Command-line values override the config file, which overrides defaults
    defaults = {
        "sizes": None,
        "searched": 1,
        "count": 100,
        "jobs": 1,
        "scale": False,
        "name": "batch",
        "base_seed": 42,
        "out_dir": str(Path("results") / "batches"),
    }
    if args.config is not None:
        overrides = utils.load_params(args.config)
        unknown = sorted(set(overrides) - set(defaults))
        if unknown:
            parser.error(
                f"Unknown keys in {args.config}: {', '.join(unknown)} "
                f"(expected: {', '.join(sorted(defaults))})"
            )
        defaults.update(overrides)
    for key, value in defaults.items():
        if getattr(args, key) is None:
            setattr(args, key, value)
    if not args.sizes:
        parser.error("--sizes is required (on the command line or in --config)")

    timestamp = utils.now_str()
    batch_dir = Path(args.out_dir) / f"{args.name}_M{args.searched}_R{args.count}_{timestamp}"
    batch_dir.mkdir(parents=True, exist_ok=True)

    manifest = {
        "model": "qw_sample",
        "sizes": list(args.sizes),
        "nb_searched": args.searched,
        "count": args.count,
        "scale_hitting_time": bool(args.scale),
        "base_seed": args.base_seed,
        "jobs": args.jobs,
        "timestamp": timestamp,
        "batch_name": args.name,
    }
    manifest_path = batch_dir / "manifest.json"
    with open(manifest_path, "w") as f:
        json.dump(manifest, f, indent=2)

    print(f"Batch sampling started:")
    print(f"  Grid sizes: {args.sizes}")
    print(f"  Marked cells per sample: {args.searched}")
    print(f"  Samples per size: {args.count}")
    print(f"  Parallel jobs: {args.jobs}")
    print(f"  Output directory: {batch_dir}")
    print()

    start_time = time.time()
    results = []
    failed = []

    for i, n in enumerate(args.sizes):
        params = SampleParams(
            n=n,
            nb_searched=args.searched,
            nb_iter=args.count,
            scale_hitting_time=bool(args.scale),
            seed=args.base_seed + i,
            jobs=args.jobs,
        )
        output_path = str(batch_dir / f"n{n}.npz")
        try:
            result = run_single_size(params, output_path)
            results.append(result)
            print(
                f"  [{i + 1}/{len(args.sizes)}] Completed: n={n}, steps={result['steps']}, "
                f"mean={result['mean']:.4f}"
            )
        except Exception as e:
            failed.append({"n": n, "error": str(e)})
            print(f"  [{i + 1}/{len(args.sizes)}] FAILED: n={n} - {e}")

    elapsed_time = time.time() - start_time

    manifest["results"] = {
        "total": len(args.sizes),
        "successful": len(results),
        "failed": len(failed),
        "elapsed_seconds": elapsed_time,
    }
    manifest["runs"] = results
    if failed:
        manifest["failures"] = failed

    with open(manifest_path, "w") as f:
        json.dump(manifest, f, indent=2)

    print()
    print("=" * 60)
    print("Batch sampling completed!")
    print(f"  Successful: {len(results)}/{len(args.sizes)}")
    print(f"  Failed: {len(failed)}/{len(args.sizes)}")
    print(f"  Total time: {elapsed_time:.2f} seconds")
    print(f"  Manifest: {manifest_path}")
    print("=" * 60)

    return 0 if len(failed) == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
