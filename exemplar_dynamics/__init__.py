"""
Exemplar Dynamics: Degemination and Degemination Inhibition

This package simulates two populations of closure-duration exemplars
(singleton and geminate) under exemplar-based production, comparing an
update rule where category identity is externally guaranteed with one that
allows variant trading between the categories.
"""

from .config import (  # noqa: F401
    BASE_SEED,
    CATEGORY_BOUNDARY,
    KDE_BANDWIDTH,
    MU_GEMINATE,
    MU_SINGLETON,
    N_ENTRENCHMENT,
    N_EXEMPLARS,
    N_ITERATIONS,
    N_ITERATIONS_QUICK,
    NOISE,
    SIGMA,
    X_RANGE,
)
from .model import (  # noqa: F401
    ExemplarPool,
    InvalidParameter,
    PoolStats,
    SimulationParameters,
    Trade,
    entrench,
    source_pool_for,
    summarize_pool,
    update_competitive,
    update_external,
)
