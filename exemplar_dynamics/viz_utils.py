"""
Visualisation utilities for exemplar_dynamics.

This module only consumes final pool arrays (in memory or from the exported
pools CSV) and writes figure files under results/figures/. It never runs or
alters a simulation.
"""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Optional

import numpy as np
import pandas as pd
from scipy import stats

from . import config
from .experiments import CATEGORIES, EXPERIMENTS, POOL_COLUMNS, SimulationResult
from .io_utils import figures_dir, read_table


COLOURS = {
    "singleton": "#0072BD",  # blue
    "geminate":  "#D95319",  # orange
}

LABELS = {
    "singleton": "Singleton",
    "geminate": "Initial Geminate",
}

PoolMap = Mapping[tuple[str, str], np.ndarray]


def kernel_density(
    values: np.ndarray,
    *,
    bandwidth: float = config.KDE_BANDWIDTH,
    grid: Optional[np.ndarray] = None,
    n_points: int = 100,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Gaussian kernel density estimate of `values` with a fixed bandwidth in ms.

    Returns (grid, density). Without an explicit grid, 100 points spanning the
    data range padded by three bandwidths are used.
    """
    v = np.asarray(values, dtype=float).ravel()
    if v.size == 0:
        raise ValueError("cannot estimate a density from no values")
    if bandwidth <= 0:
        raise ValueError("bandwidth must be > 0")
    if grid is None:
        grid = np.linspace(v.min() - 3 * bandwidth, v.max() + 3 * bandwidth, n_points)
    sd = float(np.std(v, ddof=1)) if v.size > 1 else 0.0
    if sd == 0.0:
        # gaussian_kde needs a non-singular covariance; a point mass smooths
        # to a single kernel.
        return grid, stats.norm.pdf(grid, loc=v[0], scale=bandwidth)
    # bw_method scales the sample sd, so this gives an absolute kernel sd.
    kde = stats.gaussian_kde(v, bw_method=bandwidth / sd)
    return grid, kde(grid)


def _filled_density(ax, values: np.ndarray, *, bandwidth: float, colour: str, label: Optional[str]) -> None:
    xi, f = kernel_density(values, bandwidth=bandwidth)
    ax.fill_between(xi, 0.0, f, color=colour, alpha=0.4, linewidth=0, label=label)
    ax.plot(xi, f, color=colour, linewidth=2)


def pools_from_result(result: SimulationResult) -> dict[tuple[str, str], np.ndarray]:
    return {(e, c): result.pool(e, c) for e in EXPERIMENTS for c in CATEGORIES}


def pools_from_frame(df: pd.DataFrame) -> dict[tuple[str, str], np.ndarray]:
    """Rebuild the pool arrays from the long-format pools table."""
    pools = {}
    for (experiment, category), g in df.groupby(["experiment", "category"], sort=False):
        pools[(str(experiment), str(category))] = (
            g.sort_values("slot")["duration_ms"].to_numpy(dtype=float)
        )
    missing = [(e, c) for e in EXPERIMENTS for c in CATEGORIES if (e, c) not in pools]
    if missing:
        raise ValueError(f"pools table lacks {missing}")
    return pools


def plot_pools(
    pools: PoolMap,
    *,
    out_dir: Path,
    stem: str = "Figure_LexicalCharacterDisplacement",
    bandwidth: float = config.KDE_BANDWIDTH,
    x_range: tuple[float, float] = config.X_RANGE,
    boundary: float = config.CATEGORY_BOUNDARY,
) -> Path:
    """
    Three-panel figure: (a) initial populations, (b) after the external rule,
    (c) after the competitive rule. Returns the PNG path (a PDF is saved too).
    """
    import matplotlib.pyplot as plt
    from matplotlib.gridspec import GridSpec

    fig = plt.figure(figsize=(18, 10))
    gs = GridSpec(6, 6, figure=fig)
    ax_a = fig.add_subplot(gs[1:5, 0:3])
    ax_b = fig.add_subplot(gs[0:3, 3:6])
    ax_c = fig.add_subplot(gs[3:6, 3:6])

    panels = [
        (ax_a, "initial", "a)", 0.05),
        (ax_b, "external", "b)", 0.04),
        (ax_c, "competitive", "c)", 0.04),
    ]
    for ax, experiment, title, y_top in panels:
        for category in CATEGORIES:
            _filled_density(
                ax,
                pools[(experiment, category)],
                bandwidth=bandwidth,
                colour=COLOURS[category],
                label=LABELS[category] if experiment == "initial" else None,
            )
        ax.set_xlim(*x_range)
        ax.set_ylim(0.0, y_top)
        ax.set_yticks([])
        ax.set_title(title, loc="left")

    ax_a.axvline(boundary, linestyle="--", color="black", linewidth=1.0)
    ax_a.text(boundary, 0.047, " category boundary", ha="left", va="top", fontsize=12)
    ax_a.set_xlabel("Closure Duration [ms]")
    ax_a.legend(frameon=False)
    ax_c.set_xlabel("Closure Duration [ms]")

    fig.tight_layout()

    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    png_path = out_dir / f"{stem}.png"
    pdf_path = out_dir / f"{stem}.pdf"
    fig.savefig(png_path, dpi=150, bbox_inches="tight")
    fig.savefig(pdf_path, bbox_inches="tight")
    plt.close(fig)

    print(f"[FIGURE] Saved figure to {png_path} and {pdf_path}")
    return png_path


def generate_figure(
    result: SimulationResult,
    *,
    out_dir: Optional[Path] = None,
    **kwargs,
) -> Path:
    return plot_pools(
        pools_from_result(result),
        out_dir=out_dir if out_dir is not None else figures_dir(),
        **kwargs,
    )


def figure_from_csv(path: Path, *, out_dir: Optional[Path] = None, **kwargs) -> Path:
    """Regenerate the figure from an exported pools CSV."""
    df = read_table(Path(path), columns=POOL_COLUMNS)
    if df.empty:
        raise ValueError(f"{path} has no exemplar rows")
    return plot_pools(
        pools_from_frame(df),
        out_dir=out_dir if out_dir is not None else Path(path).parent / "figures",
        **kwargs,
    )
