"""Activation timing: tick quantization and recharge resolution."""

import math

from rensa.pipeline.constants import TICK_SECONDS


def quantize(nominal: float, tick: float = TICK_SECONDS) -> float:
    """Real time an activation occupies, in seconds.

    Cast time is rounded up to whole server ticks and one extra tick is
    added for the activation itself. Instant powers still take a tick.
    """
    if nominal <= 0:
        return tick
    return (math.ceil(nominal / tick) + 1) * tick


def resolve_recharge(
    base_recharge: float,
    enhanced_pct: float = 0.0,
    global_bonus_pct: float = 0.0,
) -> float:
    """Apply additive recharge bonuses (percentages) to a base recharge."""
    return base_recharge / (1 + enhanced_pct / 100 + global_bonus_pct / 100)
