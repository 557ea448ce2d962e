"""
Configuration for the exemplar dynamics experiments.

Values reproduce the published degemination / degemination-inhibition figure.
Durations are closure durations in milliseconds.
"""

# Category means and shared spread
MU_SINGLETON = 75.0
MU_GEMINATE = 125.0
SIGMA = 15.0

# Population and production
N_EXEMPLARS = 100
N_ENTRENCHMENT = 3  # exemplars averaged into one production target
NOISE = 25.0  # production noise is uniform in (-NOISE, NOISE)

# Iterations
N_ITERATIONS = 10_000

# Quick mode (dev / smoke test)
N_ITERATIONS_QUICK = 1_000

# Randomness
BASE_SEED = 60

# Figure
KDE_BANDWIDTH = 8.0
CATEGORY_BOUNDARY = 99.7
X_RANGE = (10.0, 190.0)
