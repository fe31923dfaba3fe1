"""Exhaustive search for the highest-throughput repeating attack chain.

For every chain length up to ``max_chain_length`` all ``n ** length``
ordered chains are enumerated. Each candidate goes through an optimistic
throughput bound, the recharge feasibility checks, and finally the
steady-state simulation. Survivors from all lengths are merged,
deduplicated, trimmed to the top N, rotated for display and, when
overlay powers are given, re-measured with overlays fired on recharge.
"""

import itertools
import logging
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace

from rensa.pipeline import constants
from rensa.pipeline.dedupe import deduplicate
from rensa.pipeline.feasibility import is_candidate
from rensa.pipeline.overlay import simulate_overlay
from rensa.pipeline.ranking import (
    rotate_to_best,
    sort_by_effective_throughput,
    sort_by_throughput,
)
from rensa.pipeline.simulate import ChainResult, simulate
from rensa.powers.loader import validate_powers
from rensa.powers.models import ChainPower

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchParams:
    max_chain_length: int = constants.MAX_CHAIN_LENGTH
    top_n: int = constants.TOP_N
    latency: float = 0.0
    warmup_cycles: int = constants.WARMUP_CYCLES
    max_wait_ratio: float = constants.MAX_WAIT_RATIO
    max_combos_per_length: int = constants.MAX_COMBOS_PER_LENGTH
    max_results_per_length: int = constants.MAX_RESULTS_PER_LENGTH
    prune_ratio: float = constants.PRUNE_RATIO
    buff_cap_estimate: float = constants.BUFF_CAP_ESTIMATE
    progress_interval: int = constants.PROGRESS_INTERVAL
    overlay_warmup_cycles: int = constants.OVERLAY_WARMUP_CYCLES
    overlay_measure_cycles: int = constants.OVERLAY_MEASURE_CYCLES

    def __post_init__(self) -> None:
        if not 1 <= self.max_chain_length <= constants.MAX_CHAIN_LENGTH:
            raise ValueError(
                f"max_chain_length must be between 1 and {constants.MAX_CHAIN_LENGTH} "
                f"(got {self.max_chain_length})"
            )
        if self.top_n < 1:
            raise ValueError(f"top_n must be >= 1 (got {self.top_n})")
        if self.latency < 0:
            raise ValueError(f"latency must be >= 0 (got {self.latency})")
        if self.progress_interval < 1:
            raise ValueError(
                f"progress_interval must be >= 1 (got {self.progress_interval})"
            )
        if self.max_combos_per_length < 1 or self.max_results_per_length < 1:
            raise ValueError("combo and result limits must be >= 1")
        if not 0 < self.prune_ratio <= 1:
            raise ValueError(f"prune_ratio must be in (0, 1] (got {self.prune_ratio})")
        if self.warmup_cycles < 0 or self.overlay_measure_cycles < 1:
            raise ValueError("warmup_cycles must be >= 0 and overlay_measure_cycles >= 1")

    @classmethod
    def from_settings(cls, settings, **overrides) -> "SearchParams":
        params = cls(
            max_chain_length=settings.search.max_chain_length,
            top_n=settings.search.top_n,
            latency=settings.player.latency,
            warmup_cycles=settings.simulation.warmup_cycles,
            max_wait_ratio=settings.simulation.max_wait_ratio,
            max_combos_per_length=settings.search.max_combos_per_length,
            max_results_per_length=settings.search.max_results_per_length,
            prune_ratio=settings.search.prune_ratio,
            buff_cap_estimate=settings.search.buff_cap_estimate,
            progress_interval=settings.search.progress_interval,
            overlay_warmup_cycles=settings.simulation.overlay_warmup_cycles,
            overlay_measure_cycles=settings.simulation.overlay_measure_cycles,
        )
        return replace(params, **overrides) if overrides else params


@dataclass(frozen=True)
class SearchProgress:
    label: str
    length: int
    total_combos: int
    examined: int = 0
    simulated: int = 0
    best_throughput: float = 0.0
    skipped: bool = False
    reason: str = ""


ProgressCallback = Callable[[SearchProgress], None]


class CancelToken:
    """Thread-safe flag a caller sets to stop a running search early."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class SearchOutcome:
    label: str = ""
    results: list[ChainResult] = field(default_factory=list)
    partial: bool = False  # True when the search was cancelled
    skipped_lengths: list[int] = field(default_factory=list)
    candidates_simulated: int = 0

    @property
    def is_empty(self) -> bool:
        """No chain survived filtering (not an error)."""
        return not self.results

    @property
    def best(self) -> ChainResult | None:
        return self.results[0] if self.results else None


@dataclass
class LengthSearch:
    results: list[ChainResult] = field(default_factory=list)
    best_throughput: float = 0.0
    simulated: int = 0
    cancelled: bool = False


def _report(progress: ProgressCallback | None, update: SearchProgress) -> None:
    if progress is not None:
        progress(update)
        return
    if update.skipped:
        return
    logger.debug(
        "%s length %d: %d/%d examined, %d simulated, best %.2f",
        update.label, update.length, update.examined, update.total_combos,
        update.simulated, update.best_throughput,
    )


def search_length(
    powers: Sequence[ChainPower],
    length: int,
    params: SearchParams,
    best_so_far: float = 0.0,
    *,
    label: str = "",
    progress: ProgressCallback | None = None,
    cancel: CancelToken | None = None,
) -> LengthSearch:
    """Simulate every competitive chain of exactly ``length`` powers.

    ``best_so_far`` seeds the pruning bound with the best throughput found
    at shorter lengths.
    """
    total_combos = len(powers) ** length
    out = LengthSearch(best_throughput=best_so_far)
    held = out.results

    for examined, chain in enumerate(
        itertools.product(powers, repeat=length), start=1,
    ):
        if examined % params.progress_interval == 0:
            _report(progress, SearchProgress(
                label=label, length=length, total_combos=total_combos,
                examined=examined, simulated=out.simulated,
                best_throughput=out.best_throughput,
            ))
            if cancel is not None and cancel.cancelled:
                out.cancelled = True
                break

        best = out.best_throughput
        if best > 0:
            # Optimistic bound: no waiting, self-buffs at their usual ceiling
            total_value = sum(p.base_value for p in chain)
            cast_time = sum(p.duration for p in chain)
            upper_bound = total_value * params.buff_cap_estimate / cast_time
            if upper_bound < best * params.prune_ratio:
                continue

        if not is_candidate(chain, params.latency, params.max_wait_ratio):
            continue

        result = simulate(chain, params.latency, params.warmup_cycles)
        out.simulated += 1
        if result is None:
            continue

        if (result.throughput < best * params.prune_ratio
                and len(held) >= params.top_n):
            continue
        if result.throughput > best:
            out.best_throughput = result.throughput

        held.append(result)
        if len(held) >= params.max_results_per_length * 2:
            held.sort(key=lambda r: r.throughput, reverse=True)
            del held[params.max_results_per_length:]
            out.best_throughput = held[0].throughput

    return out


def search(
    powers: Sequence[ChainPower],
    overlay_powers: Sequence[ChainPower] = (),
    params: SearchParams | None = None,
    *,
    label: str = "",
    progress: ProgressCallback | None = None,
    cancel: CancelToken | None = None,
) -> SearchOutcome:
    """Find the top repeating chains over ``powers``.

    Raises InvalidPowerError for an empty or malformed power set. A
    cancelled search returns what it has so far with ``partial=True``.
    """
    params = params or SearchParams()
    validate_powers(powers)
    validate_powers(overlay_powers, allow_empty=True)

    outcome = SearchOutcome(label=label)
    collected: list[ChainResult] = []
    global_best = 0.0

    for length in range(1, params.max_chain_length + 1):
        if cancel is not None and cancel.cancelled:
            outcome.partial = True
            break

        total_combos = len(powers) ** length
        if total_combos > params.max_combos_per_length:
            logger.warning(
                "%s length %d: %d combos exceeds limit of %d, skipped",
                label or "search", length, total_combos,
                params.max_combos_per_length,
            )
            outcome.skipped_lengths.append(length)
            _report(progress, SearchProgress(
                label=label, length=length, total_combos=total_combos,
                skipped=True, reason=f"{total_combos:,} combos - skipped",
            ))
            continue

        _report(progress, SearchProgress(
            label=label, length=length, total_combos=total_combos,
            best_throughput=global_best,
        ))
        found = search_length(
            powers, length, params, global_best,
            label=label, progress=progress, cancel=cancel,
        )
        collected.extend(found.results)
        outcome.candidates_simulated += found.simulated
        global_best = max(global_best, found.best_throughput)
        logger.info(
            "%s length %d: %d simulated, %d kept, best %.2f",
            label or "search", length, found.simulated,
            len(found.results), global_best,
        )
        if found.cancelled:
            outcome.partial = True
            break

    if outcome.partial:
        logger.warning(
            "%s cancelled, returning partial results from %d chains",
            label or "search", len(collected),
        )

    unique = deduplicate(sort_by_throughput(collected))
    top = [rotate_to_best(r) for r in unique[:params.top_n]]

    if overlay_powers:
        top = sort_by_effective_throughput(
            replace(r, overlay=simulate_overlay(
                r, overlay_powers, params.latency,
                params.overlay_warmup_cycles, params.overlay_measure_cycles,
            ))
            for r in top
        )

    outcome.results = top
    if outcome.is_empty:
        logger.info("%s: no chain survived feasibility filtering", label or "search")
    return outcome
