"""Search and simulation tuning constants.

These are the defaults; every one of them can be overridden through
``rensa.config.Settings`` or passed explicitly to the search driver.
"""

# Server tick: every activation is rounded up to whole ticks plus one.
TICK_SECONDS = 0.132

# Search bounds
MAX_CHAIN_LENGTH = 8
TOP_N = 5
AOE_TOP_N = 10
MAX_COMBOS_PER_LENGTH = 2_000_000  # lengths above this are skipped outright
MAX_RESULTS_PER_LENGTH = 500
PROGRESS_INTERVAL = 50_000  # combos between progress reports / cancel checks

# Pruning
PRUNE_RATIO = 0.65  # drop candidates whose bound is below this share of the best
BUFF_CAP_ESTIMATE = 1.3  # optimistic ceiling on the self-buff multiplier

# Steady-state simulation
WARMUP_CYCLES = 3  # empirical convergence budget, not a proven bound
MAX_WAIT_RATIO = 3
FEASIBILITY_TOLERANCE = 1e-3
MIN_ELAPSED = 1e-9

# Overlay simulation, counted in units of the longest overlay recharge
OVERLAY_WARMUP_CYCLES = 2
OVERLAY_MEASURE_CYCLES = 3

STACK = "Stack"
REPLACE = "Replace"
STACKING_MODES = frozenset({STACK, REPLACE})
