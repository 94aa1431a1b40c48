import os
from pydantic import BaseModel, ConfigDict, Field

ALL_ALGORITHMS = (
    "srk_t",
    "hoffer_q",
    "holladay_1",
    "holladay_2",
    "haigis",
    "barrett_universal_ii",
    "hill_rbf",
    "kane",
)


def _env_list(name: str, default: tuple[str, ...]) -> list[str]:
    raw = os.getenv(name)
    if not raw:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


class Settings(BaseModel):
    model_config = ConfigDict(validate_default=True)

    default_algorithms: list[str] = Field(default_factory=lambda: _env_list("IOL_DEFAULT_ALGORITHMS", ALL_ALGORITHMS))
    fan_out_workers: int = Field(default_factory=lambda: int(os.getenv("IOL_FAN_OUT_WORKERS", "1")), ge=1)
    ranked_formulas: int = Field(default_factory=lambda: int(os.getenv("IOL_RANKED_FORMULAS", "3")), ge=1)
    log_level: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())

settings = Settings()
