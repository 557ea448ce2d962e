from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass
from typing import Callable, Iterable, Literal, Optional

import numpy as np
from tqdm import tqdm

from . import config

PoolLabel = Literal["a", "b"]


class InvalidParameter(ValueError):
    """Raised before any iteration starts when a run cannot be performed."""


@dataclass(frozen=True)
class SimulationParameters:
    """Immutable configuration for one simulation (durations in ms)."""

    mu_singleton: float = config.MU_SINGLETON
    mu_geminate: float = config.MU_GEMINATE
    sigma: float = config.SIGMA
    n_exemplars: int = config.N_EXEMPLARS
    n_entrenchment: int = config.N_ENTRENCHMENT
    n_iterations: int = config.N_ITERATIONS
    noise: float = config.NOISE

    def __post_init__(self) -> None:
        for name in ("mu_singleton", "mu_geminate", "sigma", "noise"):
            if not math.isfinite(getattr(self, name)):
                raise InvalidParameter(f"{name} must be finite")
        if self.sigma < 0:
            raise InvalidParameter("sigma must be >= 0")
        if self.noise < 0:
            raise InvalidParameter("noise must be >= 0")
        if self.n_exemplars < 1:
            raise InvalidParameter("n_exemplars must be >= 1")
        if self.n_entrenchment < 1:
            raise InvalidParameter("n_entrenchment must be >= 1")
        if self.n_entrenchment > self.n_exemplars:
            raise InvalidParameter("n_entrenchment must not exceed n_exemplars")
        if self.n_iterations < 0:
            raise InvalidParameter("n_iterations must be >= 0")

    def replace(self, **changes) -> SimulationParameters:
        return dataclasses.replace(self, **changes)


class ExemplarPool:
    """
    Fixed-size population of exemplar values for one category.

    The only mutation is overwriting a single slot, so len(pool) never changes.
    """

    def __init__(self, values: Iterable[float]) -> None:
        arr = np.array(values, dtype=np.float64).ravel()
        if arr.size == 0:
            raise InvalidParameter("an exemplar pool cannot be empty")
        self._values = arr

    @classmethod
    def from_normal(
        cls,
        rng: np.random.Generator,
        *,
        mean: float,
        sigma: float,
        size: int,
    ) -> ExemplarPool:
        if size < 1:
            raise InvalidParameter("pool size must be >= 1")
        if sigma < 0:
            raise InvalidParameter("sigma must be >= 0")
        return cls(rng.normal(loc=mean, scale=sigma, size=size))

    def __len__(self) -> int:
        return int(self._values.size)

    def __repr__(self) -> str:
        return f"ExemplarPool(n={len(self)}, mean={self.mean():.3f})"

    @property
    def values(self) -> np.ndarray:
        view = self._values.view()
        view.flags.writeable = False
        return view

    def to_numpy(self) -> np.ndarray:
        return self._values.copy()

    def copy(self) -> ExemplarPool:
        return ExemplarPool(self._values)

    def mean(self) -> float:
        return float(np.mean(self._values))

    def sample(self, rng: np.random.Generator, k: int) -> np.ndarray:
        """Draw k values uniformly at random, with replacement."""
        idx = rng.integers(0, self._values.size, size=k)
        return self._values[idx]

    def replace_random(self, rng: np.random.Generator, value: float) -> int:
        """Overwrite a uniformly chosen slot with `value` and return its index."""
        ix = int(rng.integers(0, self._values.size))
        self._values[ix] = value
        return ix


@dataclass(frozen=True)
class Trade:
    """Routing record for one competitive iteration."""

    iteration: int  # 1-based
    source: PoolLabel
    candidate: float
    dist_a: float
    dist_b: float
    target: PoolLabel
    index: int

    @property
    def traded(self) -> bool:
        return self.source != self.target


@dataclass(frozen=True)
class PoolStats:
    mean: float
    std: float
    min: float
    max: float
    frac_above_boundary: float


def _check_pool(pool: ExemplarPool, name: str = "pool") -> None:
    if len(pool) == 0:
        raise InvalidParameter(f"{name} is empty")


def _check_run_args(*, n_entrenchment: int, n_iterations: int, noise: float) -> None:
    if n_entrenchment < 1:
        raise InvalidParameter("n_entrenchment must be >= 1")
    if n_iterations < 0:
        raise InvalidParameter("n_iterations must be >= 0")
    if not math.isfinite(noise) or noise < 0:
        raise InvalidParameter("noise must be finite and >= 0")


def _produce(pool: ExemplarPool, k: int, noise: float, rng: np.random.Generator) -> float:
    # Indices first, then noise: the draw order is part of reproducibility.
    target = float(np.mean(pool.sample(rng, k)))
    return target + float(rng.uniform(-noise, noise))


def entrench(
    pool: ExemplarPool,
    k: int,
    noise: float,
    rng: np.random.Generator,
) -> float:
    """
    Produce one candidate exemplar from `pool`.

    The production target is the mean of k exemplars drawn with replacement
    (entrenchment); uniform noise models articulatory and perceptual
    variability. k may exceed len(pool). The noise is drawn on [-noise, noise)
    by Generator.uniform; the closed lower end has probability zero for
    noise > 0, so this matches the open interval (-noise, noise).
    """
    _check_pool(pool)
    if k < 1:
        raise InvalidParameter("k must be >= 1")
    if not math.isfinite(noise) or noise < 0:
        raise InvalidParameter("noise must be finite and >= 0")
    return _produce(pool, k, noise, rng)


def _iterations(n_iterations: int, *, progress: bool, desc: str):
    return tqdm(range(1, n_iterations + 1), desc=desc, disable=not progress, leave=False)


def update_external(
    pool: ExemplarPool,
    *,
    n_entrenchment: int,
    n_iterations: int,
    noise: float,
    rng: np.random.Generator,
    progress: bool = False,
) -> ExemplarPool:
    """
    Update one category in isolation (external disambiguation, no variant trading).

    Every produced exemplar goes back into the pool it came from. The pool is
    mutated in place and returned; callers that need the initial state must
    pass a copy.
    """
    _check_pool(pool)
    _check_run_args(n_entrenchment=n_entrenchment, n_iterations=n_iterations, noise=noise)

    for _ in _iterations(n_iterations, progress=progress, desc="external"):
        candidate = _produce(pool, n_entrenchment, noise, rng)
        pool.replace_random(rng, candidate)
    return pool


def source_pool_for(iteration: int) -> PoolLabel:
    """Pool a competitive iteration produces from: even 1-based index -> A, odd -> B."""
    return "a" if iteration % 2 == 0 else "b"


def update_competitive(
    pool_a: ExemplarPool,
    pool_b: ExemplarPool,
    *,
    n_entrenchment: int,
    n_iterations: int,
    noise: float,
    rng: np.random.Generator,
    trade_hook: Optional[Callable[[Trade], None]] = None,
    progress: bool = False,
) -> tuple[ExemplarPool, ExemplarPool]:
    """
    Update two categories jointly, allowing variant trading.

    Production alternates by iteration parity. Each candidate is stored in the
    pool whose current mean is closer; A only wins on a strictly smaller
    distance, so ties go to B. Both pools are mutated in place and returned.
    """
    _check_pool(pool_a, "pool_a")
    _check_pool(pool_b, "pool_b")
    _check_run_args(n_entrenchment=n_entrenchment, n_iterations=n_iterations, noise=noise)

    pools = {"a": pool_a, "b": pool_b}
    for it in _iterations(n_iterations, progress=progress, desc="competitive"):
        source = source_pool_for(it)
        candidate = _produce(pools[source], n_entrenchment, noise, rng)

        dist_a = abs(pool_a.mean() - candidate)
        dist_b = abs(pool_b.mean() - candidate)
        target: PoolLabel = "a" if dist_a < dist_b else "b"
        ix = pools[target].replace_random(rng, candidate)

        if trade_hook is not None:
            trade_hook(
                Trade(
                    iteration=it,
                    source=source,
                    candidate=candidate,
                    dist_a=dist_a,
                    dist_b=dist_b,
                    target=target,
                    index=ix,
                )
            )
    return pool_a, pool_b


def summarize_pool(pool: ExemplarPool, *, boundary: float = config.CATEGORY_BOUNDARY) -> PoolStats:
    v = pool.values
    return PoolStats(
        mean=float(np.mean(v)),
        std=float(np.std(v)),
        min=float(np.min(v)),
        max=float(np.max(v)),
        frac_above_boundary=float(np.mean(v > boundary)),
    )
