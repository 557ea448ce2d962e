"""Tests for the simulation driver and result export."""

import numpy as np
import pytest

from exemplar_dynamics.experiments import (
    POOL_COLUMNS,
    SUMMARY_COLUMNS,
    export_results,
    initial_pools,
    results_frame,
    run_simulation,
    summary_frame,
)
from exemplar_dynamics.io_utils import read_table
from exemplar_dynamics.model import InvalidParameter, SimulationParameters
from exemplar_dynamics.viz_utils import pools_from_frame, pools_from_result


SMALL = SimulationParameters(n_exemplars=40, n_iterations=200)


def test_initial_pools_follow_category_distributions():
    """Test initial pools are drawn around their category means."""
    params = SimulationParameters(n_exemplars=2000)
    singleton, geminate = initial_pools(params, np.random.default_rng(0))
    assert len(singleton) == len(geminate) == 2000
    assert abs(singleton.mean() - 75.0) < 2.0
    assert abs(geminate.mean() - 125.0) < 2.0
    assert np.std(singleton.values) == pytest.approx(15.0, rel=0.1)


def test_zero_iterations_return_initial_draw():
    """Test T=0 outputs equal the initial draw for every experiment."""
    params = SimulationParameters(n_iterations=0)
    result = run_simulation(params, np.random.default_rng(60), seed=60)
    assert np.array_equal(result.external_singleton, result.initial_singleton)
    assert np.array_equal(result.external_geminate, result.initial_geminate)
    assert np.array_equal(result.competitive_singleton, result.initial_singleton)
    assert np.array_equal(result.competitive_geminate, result.initial_geminate)
    assert result.n_trades == 0


def test_initial_draw_matches_direct_draw():
    """Test the driver's initial pools are the first draws of the stream."""
    result = run_simulation(SMALL, np.random.default_rng(5))
    singleton, geminate = initial_pools(SMALL, np.random.default_rng(5))
    assert np.array_equal(result.initial_singleton, singleton.values)
    assert np.array_equal(result.initial_geminate, geminate.values)


def test_result_shapes_and_pairs():
    result = run_simulation(SMALL, np.random.default_rng(1))
    ext_s, ext_g, (comp_s, comp_g) = result.pairs()
    for arr in (ext_s, ext_g, comp_s, comp_g, *result.initial):
        assert arr.shape == (40,)
    assert result.external == (ext_s, ext_g)
    assert result.competitive == (comp_s, comp_g)


def test_result_arrays_are_read_only():
    result = run_simulation(SMALL, np.random.default_rng(1))
    with pytest.raises(ValueError):
        result.competitive_singleton[0] = 0.0


def test_experiments_do_not_share_pools():
    """Test the external runs leave the initial snapshot untouched."""
    result = run_simulation(SMALL, np.random.default_rng(2))
    assert not np.array_equal(result.external_singleton, result.initial_singleton)
    assert not np.array_equal(result.competitive_geminate, result.initial_geminate)


@pytest.mark.parametrize("streams", ["shared", "independent"])
def test_simulation_is_deterministic(streams):
    r1 = run_simulation(SMALL, np.random.default_rng(42), streams=streams)
    r2 = run_simulation(SMALL, np.random.default_rng(42), streams=streams)
    for e in ("initial", "external", "competitive"):
        for c in ("singleton", "geminate"):
            assert np.array_equal(r1.pool(e, c), r2.pool(e, c))
    assert r1.n_trades == r2.n_trades


def test_stream_policies_share_initial_draw():
    """Test independent streams change the runs but not the initial pools."""
    shared = run_simulation(SMALL, np.random.default_rng(3), streams="shared")
    indep = run_simulation(SMALL, np.random.default_rng(3), streams="independent")
    assert np.array_equal(shared.initial_singleton, indep.initial_singleton)
    assert np.array_equal(shared.initial_geminate, indep.initial_geminate)
    assert not np.array_equal(shared.external_geminate, indep.external_geminate)


def test_unknown_stream_policy():
    with pytest.raises(InvalidParameter):
        run_simulation(SMALL, np.random.default_rng(0), streams="parallel")


def test_logger_hook_receives_progress_messages():
    messages = []
    run_simulation(SMALL, np.random.default_rng(0), logger_info=messages.append)
    assert any("external update: singleton" in m for m in messages)
    assert any("variant trades" in m for m in messages)


def test_unknown_pool_lookup():
    result = run_simulation(SMALL.replace(n_iterations=0), np.random.default_rng(0))
    with pytest.raises(KeyError):
        result.pool("final", "singleton")


def test_results_and_summary_frames():
    result = run_simulation(SMALL, np.random.default_rng(8), seed=8)
    df = results_frame(result, mode="quick")
    assert list(df.columns) == POOL_COLUMNS
    assert len(df) == 6 * 40
    assert set(df["experiment"]) == {"initial", "external", "competitive"}
    assert (df["seed"] == 8).all()

    summary = summary_frame(result, mode="quick")
    assert list(summary.columns) == SUMMARY_COLUMNS
    assert len(summary) == 6
    row = summary[(summary["experiment"] == "competitive") & (summary["category"] == "geminate")].iloc[0]
    assert row["mean"] == pytest.approx(float(np.mean(result.competitive_geminate)))


def test_export_round_trip(tmp_path):
    """Test exported CSVs reload into the same pools."""
    result = run_simulation(SMALL, np.random.default_rng(8), seed=8)
    pools_path, summary_path = export_results(result, mode="quick", root=tmp_path)
    assert pools_path.name == "pools_quick.csv"
    assert summary_path.name == "pool_summary_quick.csv"

    df = read_table(pools_path, columns=POOL_COLUMNS)
    reloaded = pools_from_frame(df)
    for key, values in pools_from_result(result).items():
        np.testing.assert_allclose(reloaded[key], values, rtol=0, atol=1e-9)

    summary = read_table(summary_path, columns=SUMMARY_COLUMNS)
    assert len(summary) == 6


@pytest.mark.parametrize("seed", [0, 1, 2])
def test_variant_trading_separates_overlapping_categories(seed):
    """Test overlapping categories end further apart under the competitive rule.

    Both experiments start from the same initial pools; trading trims the
    inner tails, so the competitive means separate more than the external ones.
    """
    params = SimulationParameters(mu_singleton=95.0, mu_geminate=105.0)
    result = run_simulation(params, np.random.default_rng(seed), seed=seed)
    sep_external = abs(float(np.mean(result.external_geminate) - np.mean(result.external_singleton)))
    sep_competitive = float(np.mean(result.competitive_geminate) - np.mean(result.competitive_singleton))
    assert sep_competitive >= sep_external
