"""
Scaling Analysis for Sampled Search Success Probabilities.

For a batch written by run_batch.py, computes the mean success probability at
the hitting time for every grid size and fits

    P(N) ~ a / ln(N) + b

with a linear regression of P against 1/ln(N).
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

import matplotlib

matplotlib.use("Agg")
import numpy as np
from matplotlib import pyplot as plt
from scipy.stats import linregress

ROOT = Path(__file__).resolve().parents[2]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from qw_search import utils  # type: ignore[import]


def collect_batch(batch_dir: str | Path) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Read every n*.npz of a batch.

    Returns:
        Tuple of (sizes, mean_probability, standard_error), sorted by size.
    """
    batch_dir = Path(batch_dir)
    files = sorted(batch_dir.glob("n*.npz"))
    if not files:
        raise ValueError(f"No sample files found in {batch_dir}")

    sizes, means, errs = [], [], []
    for path in files:
        result = utils.load_result(path)
        probs = np.asarray(result.probabilities, dtype=np.float64)
        if probs.size == 0:
            continue
        sizes.append(int(result.meta["n"]))
        means.append(probs.mean())
        errs.append(probs.std(ddof=1) / np.sqrt(probs.size) if probs.size > 1 else 0.0)

    order = np.argsort(sizes)
    return (
        np.asarray(sizes, dtype=np.int64)[order],
        np.asarray(means, dtype=np.float64)[order],
        np.asarray(errs, dtype=np.float64)[order],
    )


def fit_inverse_log(sizes: np.ndarray, means: np.ndarray) -> dict:
    """
    Regress mean success probability on 1/ln(N), N = n^2.

    Raises:
        ValueError: if fewer than 3 grid sizes with N > 1 are available
    """
    sizes = np.asarray(sizes, dtype=np.float64)
    means = np.asarray(means, dtype=np.float64)
    mask = sizes > 1
    if mask.sum() < 3:
        raise ValueError("Need at least 3 grid sizes (n > 1) for the scaling fit.")

    inv_log_n = 1.0 / np.log(sizes[mask] ** 2)
    slope, intercept, r_value, p_value, std_err = linregress(inv_log_n, means[mask])
    return {
        "slope": float(slope),
        "intercept": float(intercept),
        "r_squared": float(r_value**2),
        "p_value": float(p_value),
        "std_err": float(std_err),
    }


def plot_scaling(sizes, means, errs, fit, output_path=None):
    sizes = np.asarray(sizes, dtype=np.float64)
    mask = sizes > 1
    means = np.asarray(means, dtype=np.float64)[mask]
    errs = np.asarray(errs, dtype=np.float64)[mask]
    inv_log_n = 1.0 / np.log(sizes[mask] ** 2)

    fig, ax = plt.subplots(figsize=(6, 4.5))
    ax.errorbar(inv_log_n, means, yerr=errs, fmt="o", color="tab:blue", ms=4, capsize=2, label="samples")
    xs = np.linspace(inv_log_n.min(), inv_log_n.max(), 100)
    ax.plot(
        xs,
        fit["slope"] * xs + fit["intercept"],
        color="tab:red",
        lw=1.0,
        label=f"fit a={fit['slope']:.3f}, b={fit['intercept']:.3f}, R²={fit['r_squared']:.3f}",
    )
    ax.set_xlabel("1 / ln N")
    ax.set_ylabel("mean success probability")
    ax.legend(frameon=False)
    fig.tight_layout()
    if output_path:
        fig.savefig(output_path, dpi=150)
        print(f"Saved plot to {output_path}")
    return fig


def main(argv=None):
    parser = argparse.ArgumentParser(description="Scaling analysis of a sampling batch")
    parser.add_argument("batch_dir", type=str, help="Directory written by run_batch.py")
    parser.add_argument("--out", type=str, default=None, help="Output plot (default: <batch_dir>/scaling.png)")
    args = parser.parse_args(argv)

    sizes, means, errs = collect_batch(args.batch_dir)
    print(f"Loaded {len(sizes)} grid sizes from {args.batch_dir}")
    for n, p, e in zip(sizes, means, errs):
        print(f"  n={n:4d}  N={n * n:7d}  P={p:.4f} +/- {e:.4f}")

    fit = fit_inverse_log(sizes, means)
    print(f"\nFit P = a / ln N + b:  a={fit['slope']:.4f}  b={fit['intercept']:.4f}  R^2={fit['r_squared']:.4f}")

    batch_dir = Path(args.batch_dir)
    with open(batch_dir / "scaling.json", "w") as f:
        json.dump({"sizes": sizes.tolist(), "means": means.tolist(), "errors": errs.tolist(), "fit": fit}, f, indent=2)

    out = args.out or str(batch_dir / "scaling.png")
    fig = plot_scaling(sizes, means, errs, fit, output_path=out)
    plt.close(fig)
    return 0


if __name__ == "__main__":
    sys.exit(main())
