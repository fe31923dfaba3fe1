"""Long-horizon simulation of a chain with overlay buff powers fired on recharge.

Overlay powers (Aim, Build Up and the like) deal no damage themselves;
they are cast as soon as they are ready, delaying the chain, and grant a
separate buff pool that adds to the chain's own self-buffs.
"""

import logging
from collections.abc import Sequence

from rensa.pipeline.constants import OVERLAY_MEASURE_CYCLES, OVERLAY_WARMUP_CYCLES
from rensa.pipeline.simulate import BuffPool, ChainResult, OverlayResult
from rensa.powers.models import ChainPower

logger = logging.getLogger(__name__)


def simulate_overlay(
    chain: ChainResult,
    overlay_powers: Sequence[ChainPower],
    latency: float = 0.0,
    warmup_cycles: int = OVERLAY_WARMUP_CYCLES,
    measure_cycles: int = OVERLAY_MEASURE_CYCLES,
) -> OverlayResult:
    """Run ``chain`` continuously with ``overlay_powers`` interleaved.

    The horizon is ``warmup_cycles + measure_cycles`` multiples of the
    longest overlay recharge; only the tail after the warm-up counts.

    ``avg_multiplier`` is ``1 + sum(overlay bonuses) * uptime``, an
    approximation rather than a time-weighted average of the real
    per-step multiplier.
    """
    names = tuple(p.name for p in overlay_powers)
    if not overlay_powers or not chain.steps:
        return OverlayResult(chain.throughput, 0.0, 1.0, names)

    chain_powers = chain.powers
    longest_recharge = max(p.effective_recharge for p in overlay_powers)
    sim_duration = longest_recharge * (warmup_cycles + measure_cycles)
    measure_start = longest_recharge * warmup_cycles

    t = 0.0
    chain_index = 0
    chain_buffs = BuffPool()
    overlay_buffs = BuffPool()
    overlay_ready: dict[str, float] = {p.slug: 0.0 for p in overlay_powers}
    chain_ready: dict[str, float] = {}

    measured_value = 0.0
    measured_from: float | None = None
    overlay_active_time = 0.0

    while t < sim_duration:
        measuring = t >= measure_start
        if measuring and measured_from is None:
            measured_from = t

        for buff_power in overlay_powers:
            if overlay_ready[buff_power.slug] <= t and buff_power.buff_bonus > 0:
                t += buff_power.duration + latency
                overlay_buffs.apply(buff_power.slug, buff_power.self_buff, t)
                overlay_ready[buff_power.slug] = t + buff_power.effective_recharge

        power = chain_powers[chain_index % len(chain_powers)]
        chain_index += 1

        ready_at = chain_ready.get(power.slug, 0.0)
        if ready_at > t:
            t = ready_at

        chain_buffs.expire(t)
        overlay_buffs.expire(t)
        overlay_bonus = overlay_buffs.total
        multiplier = 1 + chain_buffs.total + overlay_bonus
        step_time = power.duration + latency

        if measuring:
            measured_value += power.base_value * multiplier
            if overlay_bonus > 0:
                overlay_active_time += step_time

        chain_buffs.apply(power.slug, power.self_buff, t)
        chain_ready[power.slug] = t + power.effective_recharge
        t += step_time

    elapsed = t - (measured_from if measured_from is not None else measure_start)
    if elapsed <= 0:
        return OverlayResult(chain.throughput, 0.0, 1.0, names)

    uptime = min(1.0, overlay_active_time / elapsed)
    total_bonus = sum(p.buff_bonus for p in overlay_powers)
    logger.debug(
        "Overlay on %s: %.2f over %.1fs, uptime %.1f%%",
        chain.slugs, measured_value / elapsed, elapsed, uptime * 100,
    )
    return OverlayResult(
        throughput=measured_value / elapsed,
        uptime=uptime,
        avg_multiplier=1 + total_bonus * uptime,
        power_names=names,
    )
