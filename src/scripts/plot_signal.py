"""
Success-Probability Trajectory Plotter.
"""
import argparse
import sys
from pathlib import Path

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np

ROOT = Path(__file__).resolve().parents[2]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from qw_search import hitting_time, utils


def render_signal(result, output_path=None, title=None, dpi=150):
    """
    Plot P(t) for a saved trajectory and mark the estimated hitting time.

    Returns the matplotlib Figure.
    """
    if result.probabilities is None or len(result.probabilities) == 0:
        raise ValueError("Result has no probabilities to plot.")
    signal = np.asarray(result.probabilities, dtype=np.float64)
    meta = result.meta or {}
    steps = np.arange(signal.size)

    fig, ax = plt.subplots(figsize=(8, 4.5))
    ax.plot(steps, signal, color="tab:blue", lw=1.2, label="P(t)")

    n = meta.get("n")
    targets = meta.get("targets")
    if n is not None:
        x = n * n / max(1, len(targets) if targets is not None else 1)
        t_hit = hitting_time(x)
        ax.axvline(t_hit, color="tab:red", ls="--", lw=1.0, label=f"hitting time = {t_hit}")

    peak = int(np.argmax(signal))
    ax.plot([peak], [signal[peak]], "o", color="black", ms=4, label=f"peak {signal[peak]:.3f} @ {peak}")

    ax.set_xlabel("step t")
    ax.set_ylabel("success probability")
    ax.set_xlim(0, max(1, signal.size - 1))
    ax.set_ylim(0, max(1e-3, 1.05 * signal.max()))
    ax.set_title(title or f"Quantum walk search, n={n}")
    ax.legend(loc="upper right", frameon=False)
    fig.tight_layout()

    if output_path:
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(output_path, dpi=dpi)
        print(f"Saved plot to {output_path}")
    return fig


def main(argv=None):
    parser = argparse.ArgumentParser(description="Plot a quantum walk search trajectory")
    parser.add_argument("input", type=str, help="Path to .npz written by run_single.py")
    parser.add_argument("--out", type=str, default=None, help="Output image (default: next to input)")
    parser.add_argument("--title", type=str, default=None)
    parser.add_argument("--dpi", type=int, default=150)
    args = parser.parse_args(argv)

    result = utils.load_result(args.input)
    out = args.out or str(Path(args.input).with_suffix(".png"))
    fig = render_signal(result, output_path=out, title=args.title, dpi=args.dpi)
    plt.close(fig)
    return 0


if __name__ == "__main__":
    sys.exit(main())
