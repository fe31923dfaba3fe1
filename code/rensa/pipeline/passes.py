"""Run the chain search once per power subset (ranged, hybrid, AoE)."""

import logging
from collections.abc import Sequence
from dataclasses import replace

from rensa.pipeline.constants import AOE_TOP_N
from rensa.pipeline.search import (
    CancelToken,
    ProgressCallback,
    SearchOutcome,
    SearchParams,
    search,
)
from rensa.powers.loader import InvalidPowerError, validate_powers
from rensa.powers.models import ChainPower

logger = logging.getLogger(__name__)

RANGED = "Ranged"
HYBRID = "Hybrid"


def aoe_label(num_targets: int) -> str:
    return f"AoE ({num_targets}t)"


def scale_for_targets(power: ChainPower, num_targets: int) -> ChainPower:
    """Multiply a power's value by the number of targets it actually hits."""
    targets_hit = min(num_targets, power.max_targets)
    if targets_hit <= 1:
        return power
    return replace(power, base_value=power.base_value * targets_hit)


def run_passes(
    powers: Sequence[ChainPower],
    overlay_powers: Sequence[ChainPower] = (),
    params: SearchParams | None = None,
    *,
    num_targets: int = 1,
    aoe_top_n: int = AOE_TOP_N,
    progress: ProgressCallback | None = None,
    cancel: CancelToken | None = None,
) -> dict[str, SearchOutcome]:
    """Search ranged-only powers, then all powers, then target-scaled powers.

    Buff-only powers in ``powers`` are moved to the overlay set. Passes
    after a cancellation are not run and do not appear in the result.
    """
    params = params or SearchParams()
    attacks = [p for p in powers if not p.is_buff_only]
    overlays = [p for p in powers if p.is_buff_only] + list(overlay_powers)
    validate_powers(attacks + overlays, allow_empty=True)
    if not attacks:
        raise InvalidPowerError("No attack powers to search")

    passes: list[tuple[str, list[ChainPower], SearchParams]] = [
        (RANGED, [p for p in attacks if not p.is_melee], params),
        (HYBRID, attacks, params),
    ]
    if num_targets > 1:
        passes.append((
            aoe_label(num_targets),
            [scale_for_targets(p, num_targets) for p in attacks],
            replace(params, top_n=aoe_top_n),
        ))

    outcomes: dict[str, SearchOutcome] = {}
    for label, candidates, pass_params in passes:
        if cancel is not None and cancel.cancelled:
            break
        if not candidates:
            logger.info("%s: no candidate powers, pass skipped", label)
            outcomes[label] = SearchOutcome(label=label)
            continue
        logger.info("%s: searching %d powers", label, len(candidates))
        outcomes[label] = search(
            candidates, overlays, pass_params,
            label=label, progress=progress, cancel=cancel,
        )
    return outcomes
