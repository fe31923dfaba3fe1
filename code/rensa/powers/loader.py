"""Turn upstream power records into validated ChainPower objects."""

import json
import logging
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from rensa.pipeline.constants import STACKING_MODES, TICK_SECONDS
from rensa.pipeline.timing import quantize, resolve_recharge
from rensa.powers.models import ChainPower, PowerRecord, SelfBuff

logger = logging.getLogger(__name__)


class InvalidPowerError(ValueError):
    """Raised when the power set cannot be searched as given."""

    def __init__(self, message: str, slug: str | None = None) -> None:
        super().__init__(message)
        self.slug = slug


@dataclass
class PowerSet:
    attacks: list[ChainPower] = field(default_factory=list)
    overlays: list[ChainPower] = field(default_factory=list)


def parse_power_records(raw: Iterable[dict[str, Any]]) -> list[PowerRecord]:
    records: list[PowerRecord] = []
    for index, item in enumerate(raw):
        try:
            records.append(PowerRecord.model_validate(item))
        except ValidationError as exc:
            slug = (item.get("id") or item.get("slug")) if isinstance(item, dict) else None
            label = slug or f"#{index}"
            raise InvalidPowerError(
                f"Power {label}: {exc.error_count()} invalid field(s): {exc}",
                slug=slug,
            ) from exc
    return records


def to_chain_power(
    record: PowerRecord,
    recharge_bonus_pct: float = 0.0,
    tick: float = TICK_SECONDS,
) -> ChainPower:
    """Resolve duration and recharge for one record.

    Precomputed ``quantizedDuration`` / ``effectiveRecharge`` values are
    taken as-is; missing ones are derived here.
    """
    duration = record.quantized_duration or quantize(record.nominal_duration, tick)
    if record.effective_recharge is not None:
        recharge = record.effective_recharge
    else:
        recharge = resolve_recharge(
            record.base_recharge, record.enhanced_recharge_pct, recharge_bonus_pct,
        )

    buff = None
    if record.self_buff is not None:
        buff = SelfBuff(
            bonus=record.self_buff.bonus_fraction,
            duration=record.self_buff.bonus_duration,
            stacking=record.self_buff.stacking,
        )

    return ChainPower(
        slug=record.slug,
        name=record.name or record.slug,
        duration=duration,
        effective_recharge=recharge,
        base_value=record.base_value,
        self_buff=buff,
        resource_cost=record.resource_cost,
        base_recharge=record.base_recharge,
        nominal_duration=record.nominal_duration,
        is_buff_only=record.is_buff_only,
        is_melee=record.is_melee,
        max_targets=record.max_targets,
    )


def load_powers(
    raw: Iterable[dict[str, Any]],
    recharge_bonus_pct: float = 0.0,
    tick: float = TICK_SECONDS,
) -> list[ChainPower]:
    powers = [
        to_chain_power(r, recharge_bonus_pct, tick) for r in parse_power_records(raw)
    ]
    validate_powers(powers, allow_empty=True)
    return powers


def load_power_set(
    data: Any, recharge_bonus_pct: float = 0.0, tick: float = TICK_SECONDS,
) -> PowerSet:
    """Build a PowerSet from decoded JSON.

    Accepts either a plain list of records (buff-only powers become
    overlays) or ``{"powers": [...], "overlay": [...]}``.
    """
    if isinstance(data, list):
        raw_powers, raw_overlay = data, []
    elif isinstance(data, dict):
        raw_powers = data.get("powers", [])
        raw_overlay = data.get("overlay", [])
    else:
        raise InvalidPowerError(
            f"Expected a list or object of powers, got {type(data).__name__}"
        )
    for key, section in (("powers", raw_powers), ("overlay", raw_overlay)):
        if not isinstance(section, list):
            raise InvalidPowerError(
                f"{key!r} must be a list of powers, got {type(section).__name__}"
            )

    powers = load_powers(raw_powers, recharge_bonus_pct, tick)
    overlays = load_powers(raw_overlay, recharge_bonus_pct, tick)

    result = PowerSet()
    for power in powers:
        (result.overlays if power.is_buff_only else result.attacks).append(power)
    result.overlays.extend(overlays)
    validate_powers(result.attacks + result.overlays, allow_empty=True)
    logger.info(
        "Loaded %d attack powers, %d overlay powers",
        len(result.attacks), len(result.overlays),
    )
    return result


def load_power_file(
    path: Path | str, recharge_bonus_pct: float = 0.0, tick: float = TICK_SECONDS,
) -> PowerSet:
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except UnicodeDecodeError as exc:
        raise InvalidPowerError(f"{path}: not valid UTF-8 ({exc})") from exc
    except json.JSONDecodeError as exc:
        raise InvalidPowerError(f"{path}: not valid JSON ({exc})") from exc
    return load_power_set(data, recharge_bonus_pct, tick)


def validate_powers(powers: Sequence[ChainPower], *, allow_empty: bool = False) -> None:
    """Fail fast on any power that would corrupt throughput comparisons."""
    if not powers and not allow_empty:
        raise InvalidPowerError("No powers to search")

    seen: set[str] = set()
    for p in powers:
        if p.slug in seen:
            raise InvalidPowerError(f"Duplicate power id {p.slug!r}", slug=p.slug)
        seen.add(p.slug)

        if not (p.duration > 0 and math.isfinite(p.duration)):
            raise InvalidPowerError(
                f"Power {p.slug}: duration must be positive (got {p.duration})",
                slug=p.slug,
            )
        if not (p.effective_recharge > 0 and math.isfinite(p.effective_recharge)):
            raise InvalidPowerError(
                f"Power {p.slug}: effective recharge must be positive "
                f"(got {p.effective_recharge})",
                slug=p.slug,
            )
        if p.base_value < 0 or not math.isfinite(p.base_value):
            raise InvalidPowerError(
                f"Power {p.slug}: base value must be >= 0 (got {p.base_value})",
                slug=p.slug,
            )

        buff = p.self_buff
        if buff is not None:
            if buff.bonus <= 0 or buff.duration <= 0:
                raise InvalidPowerError(
                    f"Power {p.slug}: self-buff needs a positive bonus and duration",
                    slug=p.slug,
                )
            if buff.stacking not in STACKING_MODES:
                raise InvalidPowerError(
                    f"Power {p.slug}: unknown stacking mode {buff.stacking!r}",
                    slug=p.slug,
                )

        if p.is_buff_only and (p.base_value != 0 or buff is None):
            raise InvalidPowerError(
                f"Power {p.slug}: buff-only power needs zero value and a self-buff",
                slug=p.slug,
            )
