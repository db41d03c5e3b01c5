"""Конфигурация приложения."""
import os
from dataclasses import dataclass
from functools import lru_cache


@dataclass(frozen=True)
class Config:
    base_tolerance_diff: float = 200
    tolerance_growth_per_second: float = 10
    tolerance_cap: float = 600
    probe_interval_ms: int = 30000
    outbox_limit: int = 256
    allowed_origins: tuple[str, ...] = ("*",)
    debug: bool = False

    @property
    def probe_interval(self) -> float:
        """Интервал liveness-проб в секундах."""
        return self.probe_interval_ms / 1000


@lru_cache
def get_config() -> Config:
    return Config(
        base_tolerance_diff=float(os.environ.get("MATCH_BASE_TOLERANCE_DIFF", "200")),
        tolerance_growth_per_second=float(os.environ.get("MATCH_TOLERANCE_GROWTH", "10")),
        tolerance_cap=float(os.environ.get("MATCH_TOLERANCE_CAP", "600")),
        probe_interval_ms=int(os.environ.get("PROBE_INTERVAL_MS", "30000")),
        outbox_limit=int(os.environ.get("OUTBOX_LIMIT", "256")),
        allowed_origins=tuple(os.environ.get("ALLOWED_ORIGINS", "*").split(",")),
        debug=os.environ.get("DEBUG", "0").lower() in ("1", "true", "yes"),
    )
