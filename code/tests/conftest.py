"""Shared power builders for chain search tests."""

from rensa.powers.models import ChainPower, SelfBuff


def make_power(
    slug: str,
    duration: float = 1.0,
    recharge: float = 1.0,
    value: float = 10.0,
    buff: tuple[float, float] | tuple[float, float, str] | None = None,
    **kwargs,
) -> ChainPower:
    """Build a ChainPower; ``buff`` is ``(bonus, duration[, stacking])``."""
    self_buff = SelfBuff(*buff) if buff else None
    return ChainPower(
        slug=slug,
        name=kwargs.pop("name", slug.title()),
        duration=duration,
        effective_recharge=recharge,
        base_value=value,
        self_buff=self_buff,
        **kwargs,
    )


def flares() -> ChainPower:
    return make_power(
        "flares", duration=1.188, recharge=4.0, value=63.19,
        buff=(0.066, 8.5, "Stack"), name="Flares",
    )


def fire_blast() -> ChainPower:
    return make_power(
        "fire_blast", duration=1.848, recharge=8.0, value=95.0,
        buff=(0.11, 9.17, "Stack"), name="Fire Blast",
    )
