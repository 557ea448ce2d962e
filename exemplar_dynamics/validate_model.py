from __future__ import annotations

"""
Sanity-check / validation script.

This script intentionally does NOT write into exemplar_dynamics/results/.
It runs a single seeded simulation and prints key diagnostics to console.

The chosen parameters are the reference configuration (config.py).
"""

from typing import Optional

import numpy as np

from . import config
from .experiments import CATEGORIES, EXPERIMENTS, SimulationResult, run_simulation
from .model import ExemplarPool, SimulationParameters, summarize_pool


def _pct(x: float) -> str:
    return f"{100.0 * x:.2f}%"


def pool_sizes_ok(result: SimulationResult) -> bool:
    """Every pool must still hold n_exemplars values; print a failure line otherwise."""
    expected = result.params.n_exemplars
    ok = True
    for e in EXPERIMENTS:
        for c in CATEGORIES:
            size = len(result.pool(e, c))
            if size != expected:
                print(f"[VALIDATION][FAIL] {e}/{c} holds {size} exemplars, expected {expected}")
                ok = False
    return ok


def main(params: Optional[SimulationParameters] = None, *, seed: int = config.BASE_SEED) -> None:
    params = params if params is not None else SimulationParameters()

    result = run_simulation(params, np.random.default_rng(seed), seed=seed, progress=True)

    # ---- Pool stats
    print("[VALIDATION] pool stats (single seed)")
    print(
        f"seed={seed}, n={params.n_exemplars}, k={params.n_entrenchment}, "
        f"T={params.n_iterations}, noise={params.noise}"
    )
    for experiment in EXPERIMENTS:
        for category in CATEGORIES:
            s = summarize_pool(ExemplarPool(result.pool(experiment, category)))
            print(
                f"{experiment:>11s} {category:<9s} mean={s.mean:8.3f} std={s.std:7.3f} "
                f"min={s.min:8.3f} max={s.max:8.3f} above boundary={_pct(s.frac_above_boundary)}"
            )
    print("")

    # ---- Variant trading
    print("[VALIDATION] variant trading (competitive rule)")
    print(f"trades: {result.n_trades} of {params.n_iterations} productions")
    print("")

    # ---- Long-run behaviour
    print("[VALIDATION] long-run behaviour")
    drift_s = float(np.mean(result.external_singleton) - params.mu_singleton)
    drift_g = float(np.mean(result.external_geminate) - params.mu_geminate)
    print(f"external drift: singleton {drift_s:+.3f} ms, geminate {drift_g:+.3f} ms")

    sep_ext = float(np.mean(result.external_geminate) - np.mean(result.external_singleton))
    sep_comp = float(np.mean(result.competitive_geminate) - np.mean(result.competitive_singleton))
    print(f"mean separation: external {sep_ext:.3f} ms, competitive {sep_comp:.3f} ms")

    ordered = np.mean(result.competitive_singleton) < np.mean(result.competitive_geminate)
    print(f"competitive pools keep category order: {bool(ordered)}")
    print("")

    # A pool whose size changed would indicate a routing bug.
    if not pool_sizes_ok(result):
        raise SystemExit(1)

    print("[VALIDATION COMPLETE] Model behaviour consistent with expectations.")


if __name__ == "__main__":
    main()
