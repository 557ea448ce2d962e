from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Literal, Optional

import numpy as np
import pandas as pd

from . import config
from .io_utils import atomic_write_csv, mode_suffix, results_root
from .model import (
    ExemplarPool,
    InvalidParameter,
    SimulationParameters,
    Trade,
    summarize_pool,
    update_competitive,
    update_external,
)

StreamPolicy = Literal["shared", "independent"]

POOL_COLUMNS = ["run_id", "seed", "experiment", "category", "slot", "duration_ms"]
SUMMARY_COLUMNS = [
    "run_id",
    "seed",
    "experiment",
    "category",
    "n",
    "mean",
    "std",
    "min",
    "max",
    "frac_above_boundary",
]

EXPERIMENTS = ("initial", "external", "competitive")
CATEGORIES = ("singleton", "geminate")


@dataclass(frozen=True, eq=False)
class SimulationResult:
    """Final snapshots of one simulation; pools are handed off read-only."""

    seed: Optional[int]
    params: SimulationParameters
    initial_singleton: np.ndarray
    initial_geminate: np.ndarray
    external_singleton: np.ndarray
    external_geminate: np.ndarray
    competitive_singleton: np.ndarray
    competitive_geminate: np.ndarray
    n_trades: int

    @property
    def initial(self) -> tuple[np.ndarray, np.ndarray]:
        return self.initial_singleton, self.initial_geminate

    @property
    def external(self) -> tuple[np.ndarray, np.ndarray]:
        return self.external_singleton, self.external_geminate

    @property
    def competitive(self) -> tuple[np.ndarray, np.ndarray]:
        return self.competitive_singleton, self.competitive_geminate

    def pairs(self) -> tuple[np.ndarray, np.ndarray, tuple[np.ndarray, np.ndarray]]:
        """(external singleton, external geminate, competitive pair)."""
        return self.external_singleton, self.external_geminate, self.competitive

    def pool(self, experiment: str, category: str) -> np.ndarray:
        if experiment not in EXPERIMENTS or category not in CATEGORIES:
            raise KeyError(f"unknown pool {experiment}/{category}")
        return getattr(self, f"{experiment}_{category}")


def _frozen(arr: np.ndarray) -> np.ndarray:
    out = np.array(arr, dtype=np.float64)
    out.flags.writeable = False
    return out


def initial_pools(
    params: SimulationParameters, rng: np.random.Generator
) -> tuple[ExemplarPool, ExemplarPool]:
    """Draw the singleton then the geminate pool from N(mu, sigma)."""
    singleton = ExemplarPool.from_normal(
        rng, mean=params.mu_singleton, sigma=params.sigma, size=params.n_exemplars
    )
    geminate = ExemplarPool.from_normal(
        rng, mean=params.mu_geminate, sigma=params.sigma, size=params.n_exemplars
    )
    return singleton, geminate


def _streams(rng: np.random.Generator, policy: StreamPolicy) -> list[np.random.Generator]:
    if policy == "shared":
        return [rng, rng, rng]
    if policy == "independent":
        return list(rng.spawn(3))
    raise InvalidParameter(f"unknown stream policy: {policy!r}")


def run_simulation(
    params: SimulationParameters,
    rng: np.random.Generator,
    *,
    seed: Optional[int] = None,
    streams: StreamPolicy = "shared",
    logger_info: Optional[Callable[[str], None]] = None,
    progress: bool = False,
) -> SimulationResult:
    """
    Run the three experiments from one reference draw of the initial pools.

    Every experiment works on its own copies of the initial pools, so the
    competitive run starts from exactly the pools the external runs started
    from. With streams="shared" the single generator is consumed in order
    (initial draw, external singleton, external geminate, competitive);
    with streams="independent" each experiment gets a spawned child stream.
    """
    info = logger_info or (lambda _msg: None)
    # Resolve the policy before drawing anything.
    rng_ext_s, rng_ext_g, rng_comp = _streams(rng, streams)

    singleton, geminate = initial_pools(params, rng)
    run_kw = dict(
        n_entrenchment=params.n_entrenchment,
        n_iterations=params.n_iterations,
        noise=params.noise,
        progress=progress,
    )

    info(f"external update: singleton (T={params.n_iterations})")
    ext_s = update_external(singleton.copy(), rng=rng_ext_s, **run_kw)
    info(f"external update: geminate (T={params.n_iterations})")
    ext_g = update_external(geminate.copy(), rng=rng_ext_g, **run_kw)

    trades = 0

    def _count(trade: Trade) -> None:
        nonlocal trades
        trades += int(trade.traded)

    info(f"competitive update: singleton vs geminate (T={params.n_iterations})")
    comp_s, comp_g = update_competitive(
        singleton.copy(), geminate.copy(), rng=rng_comp, trade_hook=_count, **run_kw
    )
    info(f"competitive update: {trades} variant trades")

    return SimulationResult(
        seed=seed,
        params=params,
        initial_singleton=_frozen(singleton.values),
        initial_geminate=_frozen(geminate.values),
        external_singleton=_frozen(ext_s.values),
        external_geminate=_frozen(ext_g.values),
        competitive_singleton=_frozen(comp_s.values),
        competitive_geminate=_frozen(comp_g.values),
        n_trades=trades,
    )


def _run_id(result: SimulationResult, mode: str) -> str:
    return f"exemplar_{mode}_T{result.params.n_iterations}"


def results_frame(result: SimulationResult, *, mode: str = "full") -> pd.DataFrame:
    """Long-format table with one row per exemplar of every final pool."""
    run_id = _run_id(result, mode)
    frames = []
    for experiment in EXPERIMENTS:
        for category in CATEGORIES:
            values = result.pool(experiment, category)
            frames.append(
                pd.DataFrame(
                    {
                        "run_id": run_id,
                        "seed": result.seed,
                        "experiment": experiment,
                        "category": category,
                        "slot": np.arange(values.size, dtype=np.int64),
                        "duration_ms": values,
                    }
                )
            )
    return pd.concat(frames, ignore_index=True)[POOL_COLUMNS]


def summary_frame(
    result: SimulationResult,
    *,
    mode: str = "full",
    boundary: float = config.CATEGORY_BOUNDARY,
) -> pd.DataFrame:
    run_id = _run_id(result, mode)
    rows = []
    for experiment in EXPERIMENTS:
        for category in CATEGORIES:
            values = result.pool(experiment, category)
            stats = summarize_pool(ExemplarPool(values), boundary=boundary)
            rows.append(
                {
                    "run_id": run_id,
                    "seed": result.seed,
                    "experiment": experiment,
                    "category": category,
                    "n": int(values.size),
                    "mean": stats.mean,
                    "std": stats.std,
                    "min": stats.min,
                    "max": stats.max,
                    "frac_above_boundary": stats.frac_above_boundary,
                }
            )
    return pd.DataFrame(rows, columns=SUMMARY_COLUMNS)


def pools_csv_path(*, mode: str, root: Optional[Path] = None) -> Path:
    return results_root(root) / f"pools{mode_suffix(mode)}.csv"


def summary_csv_path(*, mode: str, root: Optional[Path] = None) -> Path:
    return results_root(root) / f"pool_summary{mode_suffix(mode)}.csv"


def export_results(
    result: SimulationResult,
    *,
    mode: str = "full",
    root: Optional[Path] = None,
    logger_info: Optional[Callable[[str], None]] = None,
) -> tuple[Path, Path]:
    """Write the final pools and their summary statistics as CSV."""
    pools_path = pools_csv_path(mode=mode, root=root)
    summary_path = summary_csv_path(mode=mode, root=root)
    atomic_write_csv(results_frame(result, mode=mode), pools_path)
    atomic_write_csv(summary_frame(result, mode=mode), summary_path)
    if logger_info is not None:
        logger_info(f"wrote {pools_path} and {summary_path}")
    return pools_path, summary_path
