"""Steady-state simulation of a repeating attack chain.

The chain is replayed ``warmup_cycles + 1`` times against one persistent
cooldown table and one persistent buff pool. Only the last pass is
measured, so the measured numbers reflect the stacking pattern the chain
settles into rather than its cold start.
"""

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass, field

from rensa.pipeline.constants import MIN_ELAPSED, REPLACE, WARMUP_CYCLES
from rensa.powers.models import ChainPower, SelfBuff

logger = logging.getLogger(__name__)


@dataclass
class BuffInstance:
    source: str
    bonus: float
    expires_at: float
    stacking: str


class BuffPool:
    """Decaying buffs whose bonuses add up to one multiplier."""

    def __init__(self) -> None:
        self.instances: list[BuffInstance] = []

    def __bool__(self) -> bool:
        return bool(self.instances)

    def __len__(self) -> int:
        return len(self.instances)

    def expire(self, now: float) -> None:
        self.instances = [b for b in self.instances if b.expires_at > now]

    @property
    def total(self) -> float:
        return sum(b.bonus for b in self.instances)

    def apply(self, source: str, buff: SelfBuff | None, now: float) -> None:
        if buff is None or buff.bonus <= 0:
            return
        if buff.stacking == REPLACE:
            self.instances = [b for b in self.instances if b.source != source]
        self.instances.append(
            BuffInstance(source, buff.bonus, now + buff.duration, buff.stacking)
        )


@dataclass
class SimulationState:
    """Mutable state for one simulation run; never shared between runs."""

    time: float = 0.0
    cooldowns: dict[str, float] = field(default_factory=dict)
    buffs: BuffPool = field(default_factory=BuffPool)

    def wait_for(self, power: ChainPower) -> float:
        """Advance time until ``power`` is ready; return the wait."""
        ready_at = self.cooldowns.get(power.slug, 0.0)
        if ready_at > self.time:
            wait = ready_at - self.time
            self.time = ready_at
            return wait
        return 0.0

    def activate(self, power: ChainPower, latency: float) -> None:
        self.buffs.apply(power.slug, power.self_buff, self.time)
        self.cooldowns[power.slug] = self.time + power.effective_recharge
        self.time += power.duration + latency


@dataclass(frozen=True)
class ChainStep:
    """One activation recorded during the measurement pass."""

    power: ChainPower
    value: float
    multiplier: float
    start: float  # relative to the start of the measurement pass
    wait_before: float = 0.0

    @property
    def slug(self) -> str:
        return self.power.slug

    @property
    def end(self) -> float:
        return self.start + self.power.duration

    @property
    def dpa(self) -> float:
        return self.value / self.power.duration


@dataclass(frozen=True)
class OverlayResult:
    throughput: float
    uptime: float
    avg_multiplier: float
    power_names: tuple[str, ...] = ()


@dataclass(frozen=True)
class ChainResult:
    steps: tuple[ChainStep, ...]
    total_value: float
    cycle_time: float
    throughput: float
    avg_multiplier: float
    resource_rate: float = 0.0
    total_wait: float = 0.0
    is_greedy: bool = False
    overlay: OverlayResult | None = None

    @property
    def length(self) -> int:
        return len(self.steps)

    @property
    def slugs(self) -> list[str]:
        return [s.slug for s in self.steps]

    @property
    def powers(self) -> list[ChainPower]:
        return [s.power for s in self.steps]

    @property
    def effective_throughput(self) -> float:
        """Overlay-augmented throughput when available, else the base one."""
        return self.overlay.throughput if self.overlay else self.throughput


def simulate(
    chain: Sequence[ChainPower],
    latency: float = 0.0,
    warmup_cycles: int = WARMUP_CYCLES,
) -> ChainResult | None:
    """Measure the steady-state throughput of ``chain`` repeated forever.

    Returns None when the measured pass is degenerate (no elapsed time or
    a non-finite throughput); such chains are treated as infeasible.
    """
    if not chain:
        return None

    state = SimulationState()
    steps: list[ChainStep] = []
    measure_start = 0.0
    total_passes = warmup_cycles + 1

    for cycle in range(total_passes):
        measuring = cycle == total_passes - 1
        if measuring:
            measure_start = state.time

        for power in chain:
            wait = state.wait_for(power)
            state.buffs.expire(state.time)
            multiplier = 1 + state.buffs.total
            if measuring:
                steps.append(ChainStep(
                    power=power,
                    value=power.base_value * multiplier,
                    multiplier=multiplier,
                    start=state.time - measure_start,
                    wait_before=wait,
                ))
            state.activate(power, latency)

    elapsed = state.time - measure_start
    total_value = sum(s.value for s in steps)
    if elapsed <= MIN_ELAPSED:
        logger.debug("Discarding %s: zero elapsed time", [p.slug for p in chain])
        return None
    throughput = total_value / elapsed
    if not math.isfinite(throughput):
        logger.debug("Discarding %s: non-finite throughput", [p.slug for p in chain])
        return None

    return ChainResult(
        steps=tuple(steps),
        total_value=total_value,
        cycle_time=elapsed,
        throughput=throughput,
        avg_multiplier=sum(s.multiplier for s in steps) / len(steps),
        resource_rate=sum(p.resource_cost for p in chain) / elapsed,
        total_wait=sum(s.wait_before for s in steps),
    )
