from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

import numpy as np

from . import config
from .experiments import CATEGORIES, EXPERIMENTS, export_results, run_simulation
from .io_utils import ensure_results_layout, figures_dir, get_logger, mode_suffix
from .model import ExemplarPool, InvalidParameter, SimulationParameters, summarize_pool


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Run the degemination exemplar-dynamics experiments.")
    p.add_argument(
        "--mode",
        choices=["full", "quick"],
        default="full",
        help="full: N_ITERATIONS; quick: N_ITERATIONS_QUICK, writing _quick outputs",
    )
    p.add_argument("--seed", type=int, default=config.BASE_SEED, help="Random seed")
    p.add_argument(
        "--iterations",
        type=int,
        default=None,
        help="Override the iteration count of the selected mode.",
    )
    p.add_argument(
        "--streams",
        choices=["shared", "independent"],
        default="shared",
        help="shared: one generator threaded through all runs; independent: one child stream per run",
    )
    p.add_argument(
        "--results-dir",
        type=Path,
        default=None,
        help="Where CSVs, logs and figures go (default: <package>/results).",
    )
    p.add_argument("--no-figure", action="store_true", help="Skip figure generation.")
    p.add_argument("--progress", action="store_true", help="Show iteration progress bars.")
    return p.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    mode = args.mode
    root = args.results_dir

    ensure_results_layout(root)
    logger = get_logger(mode=mode, root=root)

    n_iterations = config.N_ITERATIONS if mode == "full" else config.N_ITERATIONS_QUICK
    if args.iterations is not None:
        n_iterations = args.iterations

    try:
        if args.seed < 0:
            raise InvalidParameter("seed must be >= 0")
        params = SimulationParameters(n_iterations=n_iterations)
    except InvalidParameter as e:
        logger.error(f"invalid parameters: {e}")
        return 2

    logger.info(f"RUN START mode={mode} seed={args.seed} streams={args.streams}")
    logger.info(f"RUN CONFIG {params}")

    result = run_simulation(
        params,
        np.random.default_rng(args.seed),
        seed=args.seed,
        streams=args.streams,
        logger_info=logger.info,
        progress=args.progress,
    )

    for experiment in EXPERIMENTS:
        for category in CATEGORIES:
            s = summarize_pool(ExemplarPool(result.pool(experiment, category)))
            logger.info(
                f"{experiment}/{category}: mean={s.mean:.2f} std={s.std:.2f} "
                f"above_boundary={s.frac_above_boundary:.2f}"
            )

    export_results(result, mode=mode, root=root, logger_info=logger.info)

    if not args.no_figure:
        from .viz_utils import generate_figure

        png = generate_figure(
            result,
            out_dir=figures_dir(root),
            stem=f"LexicalCharacterDisplacement{mode_suffix(mode)}",
        )
        logger.info(f"figure written to {png}")

    logger.info("RUN END")
    return 0


if __name__ == "__main__":
    sys.exit(main())
