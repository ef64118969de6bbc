from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Literal

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    # Divisor turning logical event time into seconds
    TIME_SCALE: float = Field(default=10.0, gt=0, allow_inf_nan=False)
    # Emitter backend selection: "timers" (one timer per event) or "scheduler"
    EMITTER_BACKEND: Literal["timers", "scheduler"] = "timers"
    # Upper bound for a whole merge, in seconds; None waits forever
    MERGE_TIMEOUT: float | None = Field(default=None, gt=0)
    LOG_JSON: bool = True
    LOG_LEVEL: str = "INFO"

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
