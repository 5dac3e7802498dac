import random
from typing import Optional, Protocol, Sequence


CUSTOMER_NAMES = (
    "Alex", "Sam", "Jamie", "Taylor", "Jordan",
    "Casey", "Avery", "Riley", "Quinn", "Morgan",
)


class RandomSource(Protocol):
    def random(self) -> float: ...


def arrival_probability(rate_per_minute: float, delta_seconds: float) -> float:
    """
    Chance that one customer walks in during a step of delta_seconds.

    Bernoulli approximation of a Poisson process with rate
    rate_per_minute / 60 per second. Only accurate for small steps: once
    rate * delta reaches a full arrival the probability saturates at 1.
    """
    p = (rate_per_minute / 60.0) * delta_seconds
    return min(1.0, max(0.0, p))


class ArrivalGenerator:
    def __init__(self, source: Optional[RandomSource] = None) -> None:
        self.source = source if source is not None else random.Random()

    def should_arrive(self, rate_per_minute: float, delta_seconds: float) -> bool:
        p = arrival_probability(rate_per_minute, delta_seconds)
        if p <= 0.0:
            return False
        return self.source.random() < p


class NameGenerator:
    """Walk-in names like "Riley 12", the id keeping them unique."""

    def __init__(
        self,
        source: Optional[RandomSource] = None,
        names: Sequence[str] = CUSTOMER_NAMES,
    ) -> None:
        self.source = source if source is not None else random.Random()
        self.names = tuple(names)

    def __call__(self, customer_id: int) -> str:
        index = int(self.source.random() * len(self.names)) % len(self.names)
        return f"{self.names[index]} {customer_id}"
