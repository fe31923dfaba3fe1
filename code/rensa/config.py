from functools import lru_cache

from pydantic import BaseModel, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from rensa.pipeline import constants


class SearchConfig(BaseModel):
    max_chain_length: int = constants.MAX_CHAIN_LENGTH
    top_n: int = constants.TOP_N
    aoe_top_n: int = constants.AOE_TOP_N
    max_combos_per_length: int = constants.MAX_COMBOS_PER_LENGTH
    max_results_per_length: int = constants.MAX_RESULTS_PER_LENGTH
    prune_ratio: float = constants.PRUNE_RATIO
    buff_cap_estimate: float = constants.BUFF_CAP_ESTIMATE
    progress_interval: int = constants.PROGRESS_INTERVAL


class SimulationConfig(BaseModel):
    warmup_cycles: int = constants.WARMUP_CYCLES
    max_wait_ratio: float = constants.MAX_WAIT_RATIO
    overlay_warmup_cycles: int = constants.OVERLAY_WARMUP_CYCLES
    overlay_measure_cycles: int = constants.OVERLAY_MEASURE_CYCLES
    tick_seconds: float = constants.TICK_SECONDS


class PlayerConfig(BaseModel):
    recharge_bonus_pct: float = 0.0  # global recharge bonus, e.g. 85 for +85%
    latency_ms: int = 0  # dead time after every activation
    num_targets: int = 1

    @property
    def latency(self) -> float:
        return self.latency_ms / 1000


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    debug: bool = False
    log_level: str = "INFO"
    search: SearchConfig = SearchConfig()
    simulation: SimulationConfig = SimulationConfig()
    player: PlayerConfig = PlayerConfig()

    @model_validator(mode="after")
    def _check_ranges(self):
        if not 1 <= self.search.max_chain_length <= constants.MAX_CHAIN_LENGTH:
            raise ValueError(
                f"SEARCH__MAX_CHAIN_LENGTH must be between 1 and "
                f"{constants.MAX_CHAIN_LENGTH}"
            )
        if self.search.top_n < 1 or self.search.aoe_top_n < 1:
            raise ValueError("SEARCH__TOP_N and SEARCH__AOE_TOP_N must be >= 1")
        if not 0 < self.search.prune_ratio <= 1:
            raise ValueError("SEARCH__PRUNE_RATIO must be in (0, 1]")
        if self.search.progress_interval < 1:
            raise ValueError("SEARCH__PROGRESS_INTERVAL must be >= 1")
        if self.simulation.warmup_cycles < 0:
            raise ValueError("SIMULATION__WARMUP_CYCLES must be >= 0")
        if self.simulation.overlay_measure_cycles < 1:
            raise ValueError("SIMULATION__OVERLAY_MEASURE_CYCLES must be >= 1")
        if self.player.latency_ms < 0:
            raise ValueError("PLAYER__LATENCY_MS must be >= 0")
        if self.player.num_targets < 1:
            raise ValueError("PLAYER__NUM_TARGETS must be >= 1")
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
