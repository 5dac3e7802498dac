import os
from dataclasses import dataclass, replace
from typing import Tuple


# ---------- Shop defaults ----------

DEFAULT_BARBERS = 1
DEFAULT_CHAIRS = 3
DEFAULT_SERVICE_DURATION = 10.0  # simulated seconds per haircut
DEFAULT_ARRIVAL_RATE = 3.0  # customers per simulated minute
DEFAULT_SPEED = 1.0

# Inclusive ranges accepted by the capacity setters
BARBER_RANGE = (1, 5)
CHAIR_RANGE = (1, 10)

# ---------- Driver ----------

# Wall-clock seconds between two driver ticks. Keep it sub-second so the
# per-step arrival probability stays well below 1.
TICK_INTERVAL = 0.1

LOG_LEVEL = "INFO"


@dataclass(frozen=True)
class ShopConfig:
    default_barbers: int = DEFAULT_BARBERS
    default_chairs: int = DEFAULT_CHAIRS
    service_duration: float = DEFAULT_SERVICE_DURATION
    arrival_rate: float = DEFAULT_ARRIVAL_RATE
    speed: float = DEFAULT_SPEED
    barber_range: Tuple[int, int] = BARBER_RANGE
    chair_range: Tuple[int, int] = CHAIR_RANGE
    tick_interval: float = TICK_INTERVAL
    log_level: str = LOG_LEVEL

    def clamp_barbers(self, count: int) -> int:
        low, high = self.barber_range
        return max(low, min(high, count))

    def clamp_chairs(self, count: int) -> int:
        low, high = self.chair_range
        return max(low, min(high, count))


def _env(name: str, cast, default):
    raw = os.environ.get(f"BARBERSHOP_{name}")
    if raw is None or raw == "":
        return default
    return cast(raw)


def _range(raw: str) -> Tuple[int, int]:
    low, high = raw.split(",")
    return int(low), int(high)


def load_config() -> ShopConfig:
    """
    Build the shop configuration, letting BARBERSHOP_* environment variables
    override the defaults above, e.g. BARBERSHOP_CHAIR_RANGE=1,20.
    """
    base = ShopConfig()
    return replace(
        base,
        default_barbers=_env("BARBERS", int, base.default_barbers),
        default_chairs=_env("CHAIRS", int, base.default_chairs),
        service_duration=_env("SERVICE_DURATION", float, base.service_duration),
        arrival_rate=_env("ARRIVAL_RATE", float, base.arrival_rate),
        speed=_env("SPEED", float, base.speed),
        barber_range=_env("BARBER_RANGE", _range, base.barber_range),
        chair_range=_env("CHAIR_RANGE", _range, base.chair_range),
        tick_interval=_env("TICK_INTERVAL", float, base.tick_interval),
        log_level=_env("LOG_LEVEL", str, base.log_level).upper(),
    )


settings = load_config()
