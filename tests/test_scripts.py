"""
Smoke tests for the command-line scripts.
"""

import json
import sys
from pathlib import Path

import numpy as np
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from src.scripts import analyse_samples, plot_signal, run_batch, run_single  # type: ignore[import]
from qw_search import qw_signal, utils


def test_run_single_writes_trajectory(tmp_path):
    out = tmp_path / "signal.npz"
    assert run_single.main(["--n", "4", "--steps", "6", "--targets", "0", "5", "--out", str(out)]) == 0

    result = utils.load_result(out)
    assert np.allclose(result.probabilities, qw_signal(4, 6, [0, 5]))
    assert result.meta["targets"] == [0, 5]
    assert result.meta["peak_step"] == int(np.argmax(result.probabilities))


def test_plot_signal_renders_png(tmp_path):
    npz = tmp_path / "signal.npz"
    run_single.main(["--n", "5", "--steps", "10", "--out", str(npz)])
    png = tmp_path / "signal.png"
    assert plot_signal.main([str(npz), "--out", str(png)]) == 0
    assert png.exists()


def test_plot_signal_rejects_empty_result():
    with pytest.raises(ValueError):
        plot_signal.render_signal(utils.SampleResult(probabilities=np.zeros(0)))


def _single_batch_dir(parent: Path) -> Path:
    dirs = [p for p in parent.iterdir() if p.is_dir()]
    assert len(dirs) == 1
    return dirs[0]


def test_run_batch_and_analyse(tmp_path):
    code = run_batch.main(
        [
            "--sizes", "3", "4", "5",
            "--searched", "1",
            "--count", "4",
            "--jobs", "1",
            "--name", "smoke",
            "--out-dir", str(tmp_path),
        ]
    )
    assert code == 0

    batch_dir = _single_batch_dir(tmp_path)
    manifest = json.loads((batch_dir / "manifest.json").read_text())
    assert manifest["results"]["successful"] == 3
    assert manifest["results"]["failed"] == 0
    for n in (3, 4, 5):
        result = utils.load_result(batch_dir / f"n{n}.npz")
        assert result.probabilities.shape == (4,)
        assert result.meta["n"] == n

    assert analyse_samples.main([str(batch_dir)]) == 0
    scaling = json.loads((batch_dir / "scaling.json").read_text())
    assert scaling["sizes"] == [3, 4, 5]
    assert (batch_dir / "scaling.png").exists()


def test_run_batch_reads_config_and_records_failures(tmp_path):
    config = tmp_path / "batch.json"
    config.write_text(json.dumps({"sizes": [1, 3], "searched": 2, "count": 2}))
    out_dir = tmp_path / "out"

    # n=1 cannot hold two targets, so that size fails and the exit code is 1
    assert run_batch.main(["--config", str(config), "--out-dir", str(out_dir)]) == 1

    manifest = json.loads((_single_batch_dir(out_dir) / "manifest.json").read_text())
    assert manifest["nb_searched"] == 2
    assert manifest["results"]["successful"] == 1
    assert manifest["failures"][0]["n"] == 1


def test_fit_needs_three_sizes():
    with pytest.raises(ValueError):
        analyse_samples.fit_inverse_log(np.array([4, 8]), np.array([0.2, 0.1]))


def test_run_batch_records_unexpected_errors(tmp_path, monkeypatch):
    """Any exception from one grid size is logged in the manifest, not raised."""

    def broken_model(params):
        raise RuntimeError("worker died")

    monkeypatch.setattr(run_batch, "run_model", broken_model)
    code = run_batch.main(["--sizes", "3", "--count", "2", "--out-dir", str(tmp_path)])
    assert code == 1

    manifest = json.loads((_single_batch_dir(tmp_path) / "manifest.json").read_text())
    assert manifest["results"]["failed"] == 1
    assert manifest["failures"] == [{"n": 3, "error": "worker died"}]


def test_run_batch_rejects_unknown_config_keys(tmp_path):
    config = tmp_path / "batch.json"
    config.write_text(json.dumps({"sizes": [3], "base-seed": 7}))
    with pytest.raises(SystemExit) as exc:
        run_batch.main(["--config", str(config), "--out-dir", str(tmp_path / "out")])
    assert exc.value.code == 2
    assert not (tmp_path / "out").exists()


@pytest.mark.filterwarnings("error::RuntimeWarning")
def test_plot_scaling_skips_single_cell_grid():
    sizes = np.array([1, 3, 4, 5])
    means = np.array([1.0, 0.3, 0.25, 0.2])
    errs = np.zeros(4)
    fit = analyse_samples.fit_inverse_log(sizes, means)
    fig = analyse_samples.plot_scaling(sizes, means, errs, fit)
    for line in fig.axes[0].get_lines():
        assert np.all(np.isfinite(line.get_xdata()))
        assert np.all(np.isfinite(line.get_ydata()))
    analyse_samples.plt.close(fig)
