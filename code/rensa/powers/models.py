from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class PowerBaseModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class SelfBuffRecord(PowerBaseModel):
    bonus_fraction: float = Field(gt=0)
    bonus_duration: float = Field(gt=0)
    stacking: Literal["Stack", "Replace"] = "Stack"


class PowerRecord(PowerBaseModel):
    """One power as delivered by the upstream parser/enhancement layer."""

    slug: str = Field(alias="id", min_length=1)
    name: str = ""
    nominal_duration: float = Field(0.0, ge=0)
    quantized_duration: float | None = Field(None, gt=0)  # None = derive from nominal
    base_recharge: float = Field(gt=0)
    effective_recharge: float | None = Field(None, gt=0)  # None = resolve from base
    base_value: float = Field(0.0, ge=0)
    resource_cost: float = Field(0.0, ge=0)
    self_buff: SelfBuffRecord | None = None
    is_buff_only: bool = False
    multiplicity_hint: Any = 1  # opaque, passed through untouched
    enhanced_recharge_pct: float = Field(0.0, ge=0)
    is_melee: bool = False
    max_targets: int = Field(1, ge=1)

    @model_validator(mode="after")
    def _check_buff_only(self):
        if self.is_buff_only:
            if self.base_value != 0:
                raise ValueError("buff-only power must have baseValue 0")
            if self.self_buff is None:
                raise ValueError("buff-only power requires a selfBuff")
        return self


@dataclass(frozen=True)
class SelfBuff:
    bonus: float
    duration: float
    stacking: str = "Stack"  # "Stack" or "Replace"


@dataclass(frozen=True)
class ChainPower:
    """A recharge-resolved power, the unit the chain search works on."""

    slug: str
    name: str
    duration: float  # quantized activation time
    effective_recharge: float
    base_value: float
    self_buff: SelfBuff | None = None
    resource_cost: float = 0.0
    base_recharge: float | None = None
    nominal_duration: float = 0.0
    is_buff_only: bool = False
    is_melee: bool = False
    max_targets: int = 1

    @property
    def dpa(self) -> float:
        return self.base_value / self.duration if self.duration > 0 else 0.0

    @property
    def buff_bonus(self) -> float:
        return self.self_buff.bonus if self.self_buff else 0.0
