"""
Coined Quantum Walk on a Periodic Square Lattice.

The walker lives on an ``n x n`` torus. Each cell carries two complex chirality
components, so the state is a dense ``(n, n, 2)`` complex array. One step of the
search ("tick") is the composition

    Oracle -> Coin(Cx) -> ScatterX -> Coin(Cy) -> ScatterY

Key Implementation Features:
1.  **Double Buffering:** Every operator reads a source buffer and writes a
    destination buffer, so no cell ever sees a partially updated neighbour.
    The tick kernel ping-pongs between two preallocated arrays.
2.  **Numba Kernels:** All per-cell loops are compiled with ``@numba.njit``.
    The public operator functions are thin allocating wrappers around them.
"""

from __future__ import annotations

from typing import Iterable, Optional

import math
import operator

import numpy as np
from numba import njit

###############################################################################
# Constants
###############################################################################

_ONE = 1.0 / math.sqrt(2.0)
_I = 1j / math.sqrt(2.0)

COIN_X = np.array([[_ONE, _I], [_I, _ONE]], dtype=np.complex128)
COIN_Y = np.array([[_ONE, -_I], [-_I, _ONE]], dtype=np.complex128)
COIN_X.setflags(write=False)
COIN_Y.setflags(write=False)

###############################################################################
# Input helpers
###############################################################################


def as_search_array(search: Optional[Iterable[int]], n: int) -> np.ndarray:
    """
    Convert a collection of flattened cell indices into an int64 array.

    Raises ValueError if an index is not an integer or falls outside ``[0, n*n)``.
    """
    if search is None:
        return np.zeros(0, dtype=np.int64)
    if isinstance(search, np.ndarray):
        if search.size and not np.issubdtype(search.dtype, np.integer):
            raise ValueError(f"Target indices must be integers, got dtype {search.dtype}")
        arr = search.astype(np.int64).ravel()
    else:
        try:
            arr = np.fromiter((operator.index(k) for k in search), dtype=np.int64)
        except TypeError as e:
            raise ValueError(f"Target indices must be integers: {e}") from e
    if arr.size:
        lo = int(arr.min())
        hi = int(arr.max())
        if lo < 0 or hi >= n * n:
            bad = lo if lo < 0 else hi
            raise ValueError(
                f"Target index {bad} is outside the grid (expected 0 <= k < {n * n})"
            )
    return arr


def _check_grid(n: int) -> None:
    if n < 1:
        raise ValueError(f"Grid size must be positive, got n={n}")


def initial_state(n: int) -> np.ndarray:
    """Uniform superposition over all 2*n^2 (cell, chirality) basis states."""
    _check_grid(n)
    return np.full((n, n, 2), 1.0 / math.sqrt(2.0 * n * n), dtype=np.complex128)


###############################################################################
# Kernels (source -> destination)
###############################################################################


@njit(cache=True)
def _coin_kernel(src: np.ndarray, dst: np.ndarray, c: np.ndarray) -> None:
    n = src.shape[0]
    c00 = c[0, 0]
    c01 = c[0, 1]
    c10 = c[1, 0]
    c11 = c[1, 1]
    for i in range(n):
        for j in range(n):
            a = src[i, j, 0]
            b = src[i, j, 1]
            dst[i, j, 0] = c00 * a + c01 * b
            dst[i, j, 1] = c10 * a + c11 * b


@njit(cache=True)
def _scatter_x_kernel(src: np.ndarray, dst: np.ndarray) -> None:
    n = src.shape[0]
    for i in range(n):
        up = (i + 1) % n
        down = (i + n - 1) % n
        for j in range(n):
            dst[i, j, 0] = src[up, j, 0]
            dst[i, j, 1] = src[down, j, 1]


@njit(cache=True)
def _scatter_y_kernel(src: np.ndarray, dst: np.ndarray) -> None:
    n = src.shape[0]
    for i in range(n):
        for j in range(n):
            dst[i, j, 0] = src[i, (j + 1) % n, 0]
            dst[i, j, 1] = src[i, (j + n - 1) % n, 1]


@njit(cache=True)
def _oracle_kernel(src: np.ndarray, dst: np.ndarray, search: np.ndarray) -> None:
    """Copy src into dst, then negate-and-swap the components of marked cells."""
    n = src.shape[0]
    dst[:, :, :] = src
    for idx in range(search.shape[0]):
        k = search[idx]
        i = k // n
        j = k % n
        dst[i, j, 0] = -src[i, j, 1]
        dst[i, j, 1] = -src[i, j, 0]


@njit(cache=True)
def _measure_kernel(psi: np.ndarray, search: np.ndarray) -> float:
    n = psi.shape[0]
    p = 0.0
    for idx in range(search.shape[0]):
        k = search[idx]
        i = k // n
        j = k % n
        a = psi[i, j, 0]
        b = psi[i, j, 1]
        p += a.real * a.real + a.imag * a.imag + b.real * b.real + b.imag * b.imag
    return p


@njit(cache=True)
def _tick_kernel(psi, buf, search, cx, cy):
    """
    One search step. Five passes alternate between the two buffers, so the
    result ends up in ``buf``; the caller swaps the references.
    """
    _oracle_kernel(psi, buf, search)
    _coin_kernel(buf, psi, cx)
    _scatter_x_kernel(psi, buf)
    _coin_kernel(buf, psi, cy)
    _scatter_y_kernel(psi, buf)
    return buf, psi


@njit(cache=True)
def _evolve_kernel(psi, m, search, cx, cy):
    buf = np.empty_like(psi)
    for _ in range(m):
        psi, buf = _tick_kernel(psi, buf, search, cx, cy)
    return psi


@njit(cache=True)
def _signal_kernel(psi, m, search, cx, cy):
    out = np.empty(m + 1, dtype=np.float64)
    buf = np.empty_like(psi)
    out[0] = _measure_kernel(psi, search)
    for t in range(m):
        psi, buf = _tick_kernel(psi, buf, search, cx, cy)
        out[t + 1] = _measure_kernel(psi, search)
    return out


###############################################################################
# Public operators
###############################################################################


def _as_state(psi) -> np.ndarray:
    psi = np.asarray(psi, dtype=np.complex128)
    if psi.ndim != 3 or psi.shape[2] != 2 or psi.shape[0] != psi.shape[1]:
        raise ValueError(f"Expected a state of shape (n, n, 2), got {psi.shape}")
    return np.ascontiguousarray(psi)


def coin(psi: np.ndarray, c: np.ndarray) -> np.ndarray:
    """Apply the 2x2 matrix ``c`` to the chirality pair of every cell."""
    psi = _as_state(psi)
    c = np.ascontiguousarray(c, dtype=np.complex128)
    if c.shape != (2, 2):
        raise ValueError(f"Coin must be a 2x2 matrix, got shape {c.shape}")
    out = np.empty_like(psi)
    _coin_kernel(psi, out, c)
    return out


def scatter_x(psi: np.ndarray) -> np.ndarray:
    """Shift component 0 from i+1 and component 1 from i-1 (periodic)."""
    psi = _as_state(psi)
    out = np.empty_like(psi)
    _scatter_x_kernel(psi, out)
    return out


def scatter_y(psi: np.ndarray) -> np.ndarray:
    """Shift component 0 from j+1 and component 1 from j-1 (periodic)."""
    psi = _as_state(psi)
    out = np.empty_like(psi)
    _scatter_y_kernel(psi, out)
    return out


def oracle(psi: np.ndarray, search: Iterable[int]) -> np.ndarray:
    """Negate and swap both components on every marked cell."""
    psi = _as_state(psi)
    targets = as_search_array(search, psi.shape[0])
    out = np.empty_like(psi)
    _oracle_kernel(psi, out, targets)
    return out


def tick(psi: np.ndarray, search: Iterable[int]) -> np.ndarray:
    """Return the state after one full search step."""
    psi = _as_state(psi).copy()
    targets = as_search_array(search, psi.shape[0])
    new, _ = _tick_kernel(psi, np.empty_like(psi), targets, COIN_X, COIN_Y)
    return new


def measure(psi: np.ndarray, search: Iterable[int]) -> float:
    """
    Probability of finding the walker on any marked cell.

    Duplicated indices are counted once per occurrence.
    """
    psi = _as_state(psi)
    targets = as_search_array(search, psi.shape[0])
    return float(_measure_kernel(psi, targets))


def total_probability(psi: np.ndarray) -> float:
    """Sum of |amplitude|^2 over the whole state (1.0 for a normalised walk)."""
    psi = np.asarray(psi)
    return float(np.sum(psi.real ** 2 + psi.imag ** 2))


def evolve(n: int, m: int, search: Iterable[int]) -> np.ndarray:
    """Return the state after ``m`` ticks from the uniform initial state."""
    if m < 0:
        raise ValueError(f"Number of steps must be non-negative, got m={m}")
    psi = initial_state(n)
    targets = as_search_array(search, n)
    return _evolve_kernel(psi, int(m), targets, COIN_X, COIN_Y)


###############################################################################
# Simulator
###############################################################################


class WalkSimulator:
    """
    Step-by-step manager for a single search run.

    Owns the two state buffers and the target array; ``run`` hands the loop
    to the compiled kernel.
    """

    def __init__(self, n: int, search: Optional[Iterable[int]] = None) -> None:
        _check_grid(n)
        self.n = int(n)
        self.search = as_search_array(search, self.n)
        self.reset()

    def reset(self) -> None:
        """Back to the uniform superposition at t=0."""
        self._psi = initial_state(self.n)
        self._buf = np.empty_like(self._psi)
        self.steps = 0

    # ------------------------------------------------------------------ public
    def step(self) -> float:
        """Advance one tick and return the new success probability."""
        self._psi, self._buf = _tick_kernel(
            self._psi, self._buf, self.search, COIN_X, COIN_Y
        )
        self.steps += 1
        return self.probability()

    def run(self, m: int) -> float:
        """Advance ``m`` ticks and return the success probability."""
        if m < 0:
            raise ValueError(f"Number of steps must be non-negative, got m={m}")
        self._psi = _evolve_kernel(self._psi, int(m), self.search, COIN_X, COIN_Y)
        self._buf = np.empty_like(self._psi)
        self.steps += int(m)
        return self.probability()

    def probability(self) -> float:
        return float(_measure_kernel(self._psi, self.search))

    def norm(self) -> float:
        return total_probability(self._psi)

    @property
    def state(self) -> np.ndarray:
        """Copy of the current (n, n, 2) amplitudes."""
        return self._psi.copy()

    def cell_probabilities(self) -> np.ndarray:
        """(n, n) map of the probability of finding the walker on each cell."""
        return np.sum(self._psi.real ** 2 + self._psi.imag ** 2, axis=2)

    def snapshot(self) -> dict:
        return {
            "n": self.n,
            "steps": self.steps,
            "probability": self.probability(),
            "norm": self.norm(),
        }


__all__ = [
    "COIN_X",
    "COIN_Y",
    "WalkSimulator",
    "as_search_array",
    "coin",
    "evolve",
    "initial_state",
    "measure",
    "oracle",
    "scatter_x",
    "scatter_y",
    "tick",
    "total_probability",
]
