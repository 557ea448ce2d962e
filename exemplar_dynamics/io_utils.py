from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, Optional
from uuid import uuid4

import pandas as pd

LOGGER_NAME = "exemplar_dynamics"


def results_root(root: Optional[Path] = None) -> Path:
    """Results directory: `root` if given, else `results/` beside the package."""
    if root is not None:
        return Path(root)
    return Path(__file__).resolve().parent / "results"


def figures_dir(root: Optional[Path] = None) -> Path:
    return results_root(root) / "figures"


def ensure_results_layout(root: Optional[Path] = None) -> None:
    figures_dir(root).mkdir(parents=True, exist_ok=True)


def mode_suffix(mode: str) -> str:
    return "" if mode == "full" else f"_{mode}"


def log_path(*, mode: str = "full", root: Optional[Path] = None) -> Path:
    return results_root(root) / f"diagnostics{mode_suffix(mode)}.log"


def get_logger(*, mode: str = "full", root: Optional[Path] = None) -> logging.Logger:
    """
    Return the diagnostics logger, writing to stderr and to the run's log file.

    The stderr handler is attached once. The file handler follows the most
    recent (mode, root): asking for a different log file closes the previous
    one and opens the new one, so each results directory keeps its own log.
    """
    ensure_results_layout(root)
    # FileHandler stores abspath(filename); compare on the same footing.
    target = Path(os.path.abspath(log_path(mode=mode, root=root)))

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.INFO)
    logger.propagate = False

    fmt = logging.Formatter(
        fmt="%(asctime)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if not any(type(h) is logging.StreamHandler for h in logger.handlers):
        sh = logging.StreamHandler()
        sh.setLevel(logging.INFO)
        sh.setFormatter(fmt)
        logger.addHandler(sh)

    current = [h for h in logger.handlers if isinstance(h, logging.FileHandler)]
    if any(Path(h.baseFilename) == target for h in current):
        return logger
    for h in current:
        logger.removeHandler(h)
        h.close()

    fh = logging.FileHandler(target, mode="a", encoding="utf-8")
    fh.setLevel(logging.INFO)
    fh.setFormatter(fmt)
    logger.addHandler(fh)
    return logger


def atomic_write_csv(df: pd.DataFrame, path: Path) -> None:
    """Write `df` to a sibling temp file, then rename it over `path`."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f".{path.name}.{os.getpid()}.{uuid4().hex}.tmp")
    try:
        df.to_csv(tmp, index=False)
        os.replace(tmp, path)
    finally:
        if tmp.exists():
            tmp.unlink()


def read_table(path: Path, *, columns: Iterable[str]) -> pd.DataFrame:
    """
    Read an exported results table.

    Raises FileNotFoundError if `path` does not exist and ValueError if any of
    `columns` is missing from the header.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(path)
    df = pd.read_csv(path)
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise ValueError(f"{path} lacks columns {missing}")
    return df
