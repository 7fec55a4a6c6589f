from __future__ import annotations

import math
import os
import time
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import asdict, dataclass
from typing import Iterable, Optional

import numpy as np

from . import utils
from .walk import COIN_X, COIN_Y, _signal_kernel, as_search_array, evolve, initial_state, measure


def hitting_time(x: float) -> int:
    """
    Estimated optimal number of steps, floor(sqrt(pi * x * ln x) / 4).

    ``x`` is the ratio N/M (cells over marked cells), or N for a single target.
    x == 1 gives 0; anything below 1 has no real root and is rejected.
    """
    x = float(x)
    if not math.isfinite(x):
        raise ValueError(f"Hitting time needs a finite ratio, got x={x}")
    if x < 1.0:
        raise ValueError(f"Hitting time is undefined for x < 1 (got x={x})")
    return int(math.floor(math.sqrt(math.pi * x * math.log(x)) / 4.0))


def qw(n: int, m: int, search: Iterable[int]) -> float:
    """
    Probability of measuring a searched element after ``m`` steps on an n x n grid.
    """
    targets = as_search_array(search, n)
    return measure(evolve(n, m, targets), targets)


def qw_signal(n: int, m: int, search: Iterable[int]) -> np.ndarray:
    """
    Success probability after each step; entry t is the value after t ticks,
    so the result has m + 1 entries.
    """
    if m < 0:
        raise ValueError(f"Number of steps must be non-negative, got m={m}")
    psi = initial_state(n)
    targets = as_search_array(search, n)
    return _signal_kernel(psi, int(m), targets, COIN_X, COIN_Y)


###############################################################################
# Sampling over random target placements
###############################################################################


def _check_sampling(n: int, nb_searched: int, scale_hitting_time: bool) -> None:
    if n < 1:
        raise ValueError(f"Grid size must be positive, got n={n}")
    if nb_searched < 0 or nb_searched > n * n:
        raise ValueError(
            f"Cannot draw {nb_searched} distinct targets from a {n}x{n} grid"
        )
    if scale_hitting_time and nb_searched == 0:
        raise ValueError("scale_hitting_time requires at least one searched element")


def sample_steps(n: int, nb_searched: int, scale_hitting_time: bool) -> int:
    """Step count used by the sampler: hitting time of N/M or of N."""
    if scale_hitting_time:
        return hitting_time((n * n) / nb_searched)
    return hitting_time(n * n)


def qw_sample_one(
    n: int,
    nb_searched: int,
    scale_hitting_time: bool = False,
    rng: Optional[np.random.Generator] = None,
) -> float:
    """
    One search with ``nb_searched`` targets drawn uniformly without replacement,
    evaluated at the hitting time.
    """
    _check_sampling(n, nb_searched, scale_hitting_time)
    rng = utils.make_rng() if rng is None else rng
    search = rng.choice(n * n, size=nb_searched, replace=False).astype(np.int64)
    return qw(n, sample_steps(n, nb_searched, scale_hitting_time), search)


def _run_trial(
    n: int, nb_searched: int, scale_hitting_time: bool, seed_seq: np.random.SeedSequence
) -> float:
    """
    Worker entry point for ProcessPoolExecutor.
    Must be at module level (not nested) for pickling.
    """
    rng = utils.make_rng(seed_seq)
    return qw_sample_one(n, nb_searched, scale_hitting_time, rng=rng)


def qw_sample(
    n: int,
    nb_searched: int,
    nb_iter: int,
    scale_hitting_time: bool = False,
    *,
    seed: Optional[int] = None,
    jobs: Optional[int] = None,
    verbose: bool = False,
) -> np.ndarray:
    """
    Run ``nb_iter`` independent random-target searches and return their success
    probabilities, ordered by sample index.

    Every trial draws from its own child of ``SeedSequence(seed)``, so a fixed
    seed gives the same output whatever the number of worker processes.
    """
    _check_sampling(n, nb_searched, scale_hitting_time)
    if nb_iter < 0:
        raise ValueError(f"Number of samples must be non-negative, got {nb_iter}")

    children = np.random.SeedSequence(seed).spawn(nb_iter)
    results = np.empty(nb_iter, dtype=np.float64)
    if nb_iter == 0:
        return results

    if jobs is None:
        jobs = os.cpu_count() or 1
    if jobs < 1:
        raise ValueError(f"jobs must be at least 1, got {jobs}")
    report_every = max(1, nb_iter // 10)

    if jobs == 1:
        for idx, child in enumerate(children):
            results[idx] = _run_trial(n, nb_searched, scale_hitting_time, child)
            if verbose and (idx + 1) % report_every == 0:
                print(f"[qw_sample] {idx + 1}/{nb_iter} samples (n={n}, M={nb_searched})")
        return results

    with ProcessPoolExecutor(max_workers=min(jobs, nb_iter)) as executor:
        future_to_idx = {
            executor.submit(_run_trial, n, nb_searched, scale_hitting_time, child): idx
            for idx, child in enumerate(children)
        }
        completed = 0
        for future in as_completed(future_to_idx):
            results[future_to_idx[future]] = future.result()
            completed += 1
            if verbose and completed % report_every == 0:
                print(f"[qw_sample] {completed}/{nb_iter} samples (n={n}, M={nb_searched})")
    return results


@dataclass
class SampleParams:
    """Configuration for a Monte Carlo run over random target placements."""

    n: int = 32
    nb_searched: int = 1
    nb_iter: int = 100
    scale_hitting_time: bool = False
    seed: Optional[int] = None
    jobs: Optional[int] = 1
    verbose: bool = False


def run_model(params: SampleParams | dict | None = None) -> utils.SampleResult:
    """
    Run ``qw_sample`` from a SampleParams (or plain dict) and return a SampleResult.
    """
    if params is None:
        params = SampleParams()
    elif isinstance(params, dict):
        params = SampleParams(**params)
    start_time = time.time()

    probabilities = qw_sample(
        params.n,
        params.nb_searched,
        params.nb_iter,
        params.scale_hitting_time,
        seed=params.seed,
        jobs=params.jobs,
        verbose=params.verbose,
    )

    meta = asdict(params)
    meta.update(
        {
            "model": "qw_sample",
            "steps": sample_steps(params.n, params.nb_searched, params.scale_hitting_time),
            "mean": float(probabilities.mean()) if probabilities.size else float("nan"),
            "std": float(probabilities.std()) if probabilities.size else float("nan"),
            "time_elapsed": time.time() - start_time,
        }
    )
    return utils.SampleResult(probabilities=probabilities, meta=meta)


__all__ = [
    "SampleParams",
    "hitting_time",
    "qw",
    "qw_sample",
    "qw_sample_one",
    "qw_signal",
    "run_model",
    "sample_steps",
]
