"""Closed-form recharge checks for a repeating chain."""

from collections import defaultdict
from collections.abc import Sequence

from rensa.pipeline.constants import FEASIBILITY_TOLERANCE, MAX_WAIT_RATIO
from rensa.powers.models import ChainPower


def cycle_offsets(
    chain: Sequence[ChainPower], latency: float = 0.0,
) -> tuple[list[float], float]:
    """Start offset of every step within one cycle, plus the cycle length."""
    offsets: list[float] = []
    t = 0.0
    for power in chain:
        offsets.append(t)
        t += power.duration + latency
    return offsets, t


def is_strictly_feasible(
    chain: Sequence[ChainPower],
    latency: float = 0.0,
    tolerance: float = FEASIBILITY_TOLERANCE,
) -> bool:
    """True if the chain can repeat forever without ever waiting on a recharge.

    Each use of a power must be followed (cyclically) by its next use no
    sooner than its effective recharge. A power used once is checked
    against the whole cycle length.
    """
    if not chain:
        return False

    offsets, cycle = cycle_offsets(chain, latency)
    usages: dict[str, list[tuple[float, float]]] = defaultdict(list)
    for power, offset in zip(chain, offsets):
        usages[power.slug].append((offset, power.effective_recharge))

    for uses in usages.values():
        count = len(uses)
        for i, (offset, recharge) in enumerate(uses):
            next_idx = (i + 1) % count
            if next_idx > i:
                gap = uses[next_idx][0] - offset
            else:
                gap = (cycle - offset) + uses[next_idx][0]
            if gap < recharge - tolerance:
                return False
    return True


def is_worth_simulating(
    chain: Sequence[ChainPower],
    latency: float = 0.0,
    max_wait_ratio: float = MAX_WAIT_RATIO,
) -> bool:
    """Cheap necessary condition for chains that need some waiting.

    A power used ``k`` times per cycle needs at least ``k * recharge`` of
    cycle time; reject chains where that exceeds the cast time by more
    than ``max_wait_ratio``.
    """
    if not chain:
        return False

    cast_time = sum(p.duration + latency for p in chain)
    counts: dict[str, int] = defaultdict(int)
    recharges: dict[str, float] = {}
    for power in chain:
        counts[power.slug] += 1
        recharges.setdefault(power.slug, power.effective_recharge)

    for slug, count in counts.items():
        if count > 1 and count * recharges[slug] > cast_time * max_wait_ratio:
            return False
    return True


def is_candidate(
    chain: Sequence[ChainPower],
    latency: float = 0.0,
    max_wait_ratio: float = MAX_WAIT_RATIO,
) -> bool:
    return is_strictly_feasible(chain, latency) or is_worth_simulating(
        chain, latency, max_wait_ratio,
    )
