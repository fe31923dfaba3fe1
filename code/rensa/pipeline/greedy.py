"""Quick greedy chain: always fire the best power that is off recharge."""

from collections.abc import Sequence

from rensa.pipeline.simulate import ChainResult, ChainStep
from rensa.powers.models import ChainPower

READY_TOLERANCE = 1e-3


def greedy_chain(
    powers: Sequence[ChainPower],
    max_length: int = 20,
    latency: float = 0.0,
) -> ChainResult | None:
    """Build a chain by picking the highest-DPA ready power at each step.

    Self-buffs are ignored, so the result is a fast baseline rather than
    a steady-state measurement. Stops early if nothing is ready.
    """
    if not powers:
        return None

    by_dpa = sorted(powers, key=lambda p: p.dpa, reverse=True)
    ready_at: dict[str, float] = {}
    steps: list[ChainStep] = []
    t = 0.0

    for _ in range(max_length):
        best = next(
            (p for p in by_dpa if ready_at.get(p.slug, 0.0) - t <= READY_TOLERANCE),
            None,
        )
        if best is None:
            break
        steps.append(ChainStep(power=best, value=best.base_value, multiplier=1.0, start=t))
        ready_at[best.slug] = t + best.effective_recharge
        t += best.duration + latency

    if not steps or t <= 0:
        return None

    total_value = sum(s.value for s in steps)
    return ChainResult(
        steps=tuple(steps),
        total_value=total_value,
        cycle_time=t,
        throughput=total_value / t,
        avg_multiplier=1.0,
        resource_rate=sum(s.power.resource_cost for s in steps) / t,
        is_greedy=True,
    )
