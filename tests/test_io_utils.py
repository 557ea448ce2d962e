"""Tests for io_utils."""

import logging

import pandas as pd
import pytest

from exemplar_dynamics.io_utils import (
    atomic_write_csv,
    ensure_results_layout,
    figures_dir,
    get_logger,
    log_path,
    mode_suffix,
    read_table,
    results_root,
)


def _file_handlers(logger):
    return [h for h in logger.handlers if isinstance(h, logging.FileHandler)]


def test_results_layout(tmp_path):
    root = tmp_path / "out"
    ensure_results_layout(root)
    assert results_root(root) == root
    assert figures_dir(root).is_dir()


def test_mode_suffix_and_log_path(tmp_path):
    assert mode_suffix("full") == ""
    assert mode_suffix("quick") == "_quick"
    assert log_path(mode="quick", root=tmp_path) == tmp_path / "diagnostics_quick.log"


def test_atomic_write_and_read(tmp_path):
    path = tmp_path / "nested" / "t.csv"
    atomic_write_csv(pd.DataFrame({"a": [1, 2], "b": [3.0, 4.0]}), path)
    df = read_table(path, columns=["a", "b"])
    assert df["a"].tolist() == [1, 2]
    assert [p.name for p in path.parent.iterdir()] == ["t.csv"]


def test_read_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_table(tmp_path / "none.csv", columns=["x"])


def test_read_missing_column(tmp_path):
    path = tmp_path / "t.csv"
    atomic_write_csv(pd.DataFrame({"a": [1]}), path)
    with pytest.raises(ValueError, match="lacks columns"):
        read_table(path, columns=["a", "b"])


def test_get_logger_is_idempotent(tmp_path):
    logger = get_logger(mode="quick", root=tmp_path)
    n_handlers = len(logger.handlers)
    again = get_logger(mode="quick", root=tmp_path)
    assert again is logger
    assert len(again.handlers) == n_handlers
    assert len(_file_handlers(logger)) == 1
    assert logger.level == logging.INFO
    assert logger.propagate is False


def test_get_logger_follows_results_dir(tmp_path):
    """Test each results directory receives its own log file."""
    a, b = tmp_path / "a", tmp_path / "b"
    get_logger(mode="quick", root=a).info("first run")
    logger = get_logger(mode="quick", root=b)
    logger.info("second run")

    assert len(_file_handlers(logger)) == 1
    log_a = (a / "diagnostics_quick.log").read_text(encoding="utf-8")
    log_b = (b / "diagnostics_quick.log").read_text(encoding="utf-8")
    assert "first run" in log_a and "second run" not in log_a
    assert "second run" in log_b and "first run" not in log_b


def test_get_logger_mode_selects_file(tmp_path):
    get_logger(mode="full", root=tmp_path).info("full run")
    assert "full run" in (tmp_path / "diagnostics.log").read_text(encoding="utf-8")
