import logging
import threading
import time
from typing import Callable, Optional

from config import settings
from state import ShopState, shop_state

logger = logging.getLogger(__name__)


class SimulationClock:
    """Turns wall-clock time into simulated time using the speed multiplier."""

    def __init__(self, now: Callable[[], float] = time.monotonic) -> None:
        self._now = now
        self._last = now()

    def reset(self) -> None:
        self._last = self._now()

    def tick(self, speed: float) -> float:
        current = self._now()
        elapsed = max(0.0, current - self._last)
        self._last = current
        return elapsed * speed


class SimulationDriver:
    """
    Background loop that keeps calling ShopState.advance while running.

    Pausing simply stops the calls; the shop itself never waits on anything.
    """

    def __init__(
        self,
        state: ShopState,
        interval: float,
        clock: Optional[SimulationClock] = None,
    ) -> None:
        self.state = state
        self.interval = interval
        self.clock = clock if clock is not None else SimulationClock()
        # Held across the running check, the tick and the advance, so once
        # pause() or reset() returns no step is left half done
        self._lock = threading.Lock()
        self._running = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._running.is_set()

    def start(self) -> None:
        with self._lock:
            if self.running:
                return
            # Re-anchor so the time spent paused is not replayed in one big step
            self.clock.reset()
            self._running.set()
        logger.info("Simulation started")

    def pause(self) -> None:
        with self._lock:
            self._running.clear()
        logger.info("Simulation paused")

    def reset(self) -> None:
        with self._lock:
            self._running.clear()
            snapshot = self.state.snapshot()
            self.state.initialize(len(snapshot.barbers), snapshot.num_chairs)
        logger.info("Simulation reset")

    def step(self) -> None:
        with self._lock:
            if not self.running:
                return
            delta = self.clock.tick(self.state.simulation_speed)
            self.state.advance(delta)

    def _loop(self) -> None:
        while True:
            try:
                self.step()
            except Exception:
                logger.exception("Simulation step failed")
            time.sleep(self.interval)

    def launch(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._loop, name="simulation-driver", daemon=True)
        self._thread.start()


driver = SimulationDriver(shop_state, interval=settings.tick_interval)


def start_simulation_worker(interval: Optional[float] = None) -> SimulationDriver:
    """
    Start the background thread that drives the shared shop.

    - interval: wall-clock seconds between ticks. Each tick advances the
      shop by the elapsed wall-clock time times the simulation speed.

    Example: interval = 0.1 with speed 2.0 advances roughly 0.2 simulated
             seconds per tick.
    """
    if interval is not None:
        driver.interval = interval
    driver.launch()
    return driver
