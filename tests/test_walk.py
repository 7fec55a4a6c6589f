"""
Unit tests for the quantum walk state and operators.
"""

import sys
from pathlib import Path

import numpy as np
import pytest

SRC = Path(__file__).resolve().parents[1] / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from qw_search.walk import (
    COIN_X,
    COIN_Y,
    WalkSimulator,
    as_search_array,
    coin,
    evolve,
    initial_state,
    measure,
    oracle,
    scatter_x,
    scatter_y,
    tick,
    total_probability,
)


def _random_state(n, seed=0):
    rng = np.random.default_rng(seed)
    psi = rng.normal(size=(n, n, 2)) + 1j * rng.normal(size=(n, n, 2))
    return psi / np.sqrt(total_probability(psi))


def test_initial_state_is_uniform_and_normalised():
    psi = initial_state(4)
    assert psi.shape == (4, 4, 2)
    assert psi.dtype == np.complex128
    assert np.allclose(psi, 1.0 / np.sqrt(32.0))
    assert abs(total_probability(psi) - 1.0) < 1e-12


def test_initial_state_rejects_empty_grid():
    with pytest.raises(ValueError):
        initial_state(0)


@pytest.mark.parametrize("c", [COIN_X, COIN_Y])
def test_coins_are_unitary(c):
    assert np.allclose(c @ c.conj().T, np.eye(2))


def test_coin_constants_are_read_only():
    with pytest.raises(ValueError):
        COIN_X[0, 0] = 0.0


def test_coin_matches_matrix_product():
    psi = _random_state(5, seed=1)
    out = coin(psi, COIN_X)
    expected = np.einsum("ab,ijb->ija", COIN_X, psi)
    assert np.allclose(out, expected)
    # input untouched
    assert np.allclose(psi, _random_state(5, seed=1))


def test_coin_rejects_bad_matrix():
    with pytest.raises(ValueError):
        coin(initial_state(3), np.eye(3))


def test_scatter_x_is_periodic_shift():
    psi = _random_state(4, seed=2)
    out = scatter_x(psi)
    assert np.allclose(out[:, :, 0], np.roll(psi[:, :, 0], -1, axis=0))
    assert np.allclose(out[:, :, 1], np.roll(psi[:, :, 1], 1, axis=0))


def test_scatter_y_is_periodic_shift():
    psi = _random_state(4, seed=3)
    out = scatter_y(psi)
    assert np.allclose(out[:, :, 0], np.roll(psi[:, :, 0], -1, axis=1))
    assert np.allclose(out[:, :, 1], np.roll(psi[:, :, 1], 1, axis=1))


def test_scatter_wraps_around_boundary():
    """A delta on the edge must reappear on the opposite edge."""
    n = 3
    psi = np.zeros((n, n, 2), dtype=np.complex128)
    psi[0, 1, 0] = 1.0
    psi[n - 1, 1, 1] = 1.0
    out = scatter_x(psi)
    assert out[n - 1, 1, 0] == 1.0
    assert out[0, 1, 1] == 1.0
    assert abs(total_probability(out) - 2.0) < 1e-12


def test_oracle_swaps_and_negates_marked_cells_only():
    n = 3
    psi = _random_state(n, seed=4)
    out = oracle(psi, [4])
    assert out[1, 1, 0] == -psi[1, 1, 1]
    assert out[1, 1, 1] == -psi[1, 1, 0]
    mask = np.ones((n, n), dtype=bool)
    mask[1, 1] = False
    assert np.array_equal(out[mask], psi[mask])


def test_oracle_twice_is_identity():
    psi = _random_state(4, seed=5)
    assert np.allclose(oracle(oracle(psi, [0, 5, 15]), [0, 5, 15]), psi)


def test_oracle_duplicate_targets_apply_once():
    psi = _random_state(4, seed=6)
    assert np.array_equal(oracle(psi, [2, 2, 2]), oracle(psi, [2]))


def test_measure_counts_both_components():
    psi = initial_state(2)
    assert measure(psi, [0]) == pytest.approx(0.25)
    assert measure(psi, []) == 0.0
    assert measure(psi, range(4)) == pytest.approx(1.0)


def test_measure_double_counts_duplicates():
    psi = _random_state(3, seed=7)
    assert measure(psi, [1, 1]) == pytest.approx(2 * measure(psi, [1]))


def test_tick_is_fixed_composition():
    psi = _random_state(5, seed=8)
    search = [3, 17]
    expected = scatter_y(coin(scatter_x(coin(oracle(psi, search), COIN_X)), COIN_Y))
    before = psi.copy()
    assert np.allclose(tick(psi, search), expected)
    assert np.array_equal(psi, before)


@pytest.mark.parametrize("n, m, search", [(2, 7, [0]), (5, 12, [3, 7]), (6, 20, []), (4, 9, list(range(16)))])
def test_evolution_preserves_norm(n, m, search):
    psi = evolve(n, m, search)
    assert abs(total_probability(psi) - 1.0) < 1e-9


def test_search_array_validation():
    assert as_search_array(None, 3).size == 0
    assert as_search_array({1, 2}, 3).dtype == np.int64
    with pytest.raises(ValueError):
        as_search_array([9], 3)
    with pytest.raises(ValueError):
        as_search_array([-1], 3)


def test_simulator_steps_match_evolve():
    sim = WalkSimulator(5, [6])
    probs = [sim.probability()] + [sim.step() for _ in range(8)]
    assert sim.steps == 8
    assert probs[-1] == pytest.approx(measure(evolve(5, 8, [6]), [6]))
    assert np.allclose(sim.state, evolve(5, 8, [6]))


def test_simulator_run_and_reset():
    sim = WalkSimulator(4, [0])
    p = sim.run(6)
    assert p == pytest.approx(measure(evolve(4, 6, [0]), [0]))
    snap = sim.snapshot()
    assert snap["n"] == 4
    assert snap["steps"] == 6
    assert abs(snap["norm"] - 1.0) < 1e-9
    assert sim.cell_probabilities().shape == (4, 4)
    assert sim.cell_probabilities().sum() == pytest.approx(1.0)

    sim.reset()
    assert sim.steps == 0
    assert sim.probability() == pytest.approx(2.0 / 32.0)


def test_simulator_rejects_bad_input():
    with pytest.raises(ValueError):
        WalkSimulator(3, [9])
    with pytest.raises(ValueError):
        WalkSimulator(3, [0]).run(-1)
