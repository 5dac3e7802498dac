import copy
import logging
from threading import Lock
from typing import Callable, List, Optional

from arrivals import ArrivalGenerator, NameGenerator
from config import ShopConfig, settings
from models import (
    Barber,
    BarberOut,
    BarberResize,
    BarberState,
    Customer,
    CustomerOut,
    CustomerState,
    InvalidArgument,
    SavedState,
    ShopSnapshot,
    ShopStatistics,
    ShopView,
    SnapshotDelta,
)
import scheduler
from stats import compute_statistics

logger = logging.getLogger(__name__)


class ShopState:
    """
    The one owner of the simulation. Every command and every time step runs
    under self.lock, readers only ever see deep copies taken between steps.
    """

    def __init__(
        self,
        config: ShopConfig = settings,
        arrivals: Optional[ArrivalGenerator] = None,
        names: Optional[Callable[[int], str]] = None,
    ) -> None:
        self.config = config
        self.arrivals = arrivals if arrivals is not None else ArrivalGenerator()
        self.names = names if names is not None else NameGenerator()
        self.lock = Lock()

        self.service_duration = config.service_duration
        self.arrival_rate = config.arrival_rate
        self.simulation_speed = config.speed
        self._shop = self._fresh_shop(config.default_barbers, config.default_chairs)

    # ---------- helpers ----------

    def _fresh_shop(self, num_barbers: int, num_chairs: int) -> ShopSnapshot:
        shop = ShopSnapshot(num_chairs=num_chairs)
        scheduler.resize_barbers(shop, num_barbers)
        return shop

    @staticmethod
    def _require_positive(value: int, what: str) -> None:
        if value <= 0:
            raise InvalidArgument(f"{what} must be positive, got {value}")

    # ---------- commands ----------

    def initialize(self, num_barbers: int, num_chairs: int) -> None:
        self._require_positive(num_barbers, "barber count")
        self._require_positive(num_chairs, "chair count")
        num_barbers = self.config.clamp_barbers(num_barbers)
        num_chairs = self.config.clamp_chairs(num_chairs)
        with self.lock:
            self._shop = self._fresh_shop(num_barbers, num_chairs)
        logger.info("Shop initialized with %d barbers and %d chairs", num_barbers, num_chairs)

    def advance(self, delta_time: float) -> SnapshotDelta:
        with self.lock:
            delta = scheduler.advance(
                self._shop,
                delta_time,
                service_duration=self.service_duration,
                arrival_rate=self.arrival_rate,
                arrivals=self.arrivals,
                names=self.names,
            )
            return copy.deepcopy(delta)

    def add_customer(self, name: str) -> Customer:
        if not name or not name.strip():
            raise InvalidArgument("Please enter a customer name")
        with self.lock:
            customer = scheduler.admit(
                self._shop, name, self._shop.simulated_time, self.service_duration
            )
            return copy.deepcopy(customer)

    def add_random_customers(self, count: int) -> List[Customer]:
        self._require_positive(count, "customer count")
        with self.lock:
            added = []
            for _ in range(count):
                name = self.names(self._shop.next_customer_id)
                added.append(
                    scheduler.admit(
                        self._shop, name, self._shop.simulated_time, self.service_duration
                    )
                )
            logger.info("Added %d new customers to the salon", count)
            return copy.deepcopy(added)

    def set_barber_count(self, count: int) -> BarberResize:
        self._require_positive(count, "barber count")
        count = self.config.clamp_barbers(count)
        with self.lock:
            result = scheduler.resize_barbers(self._shop, count)
        logger.info(
            "Barber count now %d (added %d, removed %d)",
            result.count, result.added, result.removed,
        )
        return result

    def set_chair_count(self, count: int) -> List[Customer]:
        self._require_positive(count, "chair count")
        count = self.config.clamp_chairs(count)
        with self.lock:
            evicted = scheduler.resize_chairs(self._shop, count)
            return copy.deepcopy(evicted)

    def update_parameters(
        self,
        service_duration: Optional[float] = None,
        arrival_rate: Optional[float] = None,
        simulation_speed: Optional[float] = None,
    ) -> None:
        """Change any of the run parameters; all are checked before any is applied."""
        if service_duration is not None and not service_duration > 0:
            raise InvalidArgument(f"service duration must be positive, got {service_duration}")
        if arrival_rate is not None and not arrival_rate >= 0:
            raise InvalidArgument(f"arrival rate must be >= 0, got {arrival_rate}")
        if simulation_speed is not None and not simulation_speed > 0:
            raise InvalidArgument(f"simulation speed must be positive, got {simulation_speed}")
        with self.lock:
            if service_duration is not None:
                self.service_duration = float(service_duration)
            if arrival_rate is not None:
                self.arrival_rate = float(arrival_rate)
            if simulation_speed is not None:
                self.simulation_speed = float(simulation_speed)

    def set_service_duration(self, seconds: float) -> None:
        self.update_parameters(service_duration=seconds)

    def set_arrival_rate(self, per_minute: float) -> None:
        self.update_parameters(arrival_rate=per_minute)

    def set_simulation_speed(self, multiplier: float) -> None:
        self.update_parameters(simulation_speed=multiplier)

    # ---------- readers ----------

    def snapshot(self) -> ShopSnapshot:
        with self.lock:
            return copy.deepcopy(self._shop)

    def statistics(self) -> ShopStatistics:
        with self.lock:
            return compute_statistics(self._shop)

    def view(self) -> ShopView:
        with self.lock:
            return ShopView(
                snapshot=copy.deepcopy(self._shop),
                statistics=compute_statistics(self._shop),
                service_duration=self.service_duration,
                arrival_rate=self.arrival_rate,
                simulation_speed=self.simulation_speed,
            )

    # ---------- save / load ----------

    def export_state(self) -> SavedState:
        with self.lock:
            shop = self._shop
            return SavedState(
                service_duration=self.service_duration,
                arrival_rate=self.arrival_rate,
                simulation_speed=self.simulation_speed,
                num_chairs=shop.num_chairs,
                simulated_time=shop.simulated_time,
                next_customer_id=shop.next_customer_id,
                next_barber_key=shop.next_barber_key,
                barbers=[BarberOut.model_validate(b) for b in shop.barbers],
                waiting=[CustomerOut.model_validate(c) for c in shop.waiting],
                in_service=[CustomerOut.model_validate(c) for c in shop.in_service],
                served=[CustomerOut.model_validate(c) for c in shop.served],
                rejected=[CustomerOut.model_validate(c) for c in shop.rejected],
            )

    def restore_state(self, saved: SavedState) -> None:
        shop = ShopSnapshot(
            num_chairs=saved.num_chairs,
            simulated_time=saved.simulated_time,
            barbers=[Barber(**b.model_dump()) for b in saved.barbers],
            waiting=[Customer(**c.model_dump()) for c in saved.waiting],
            in_service=[Customer(**c.model_dump()) for c in saved.in_service],
            served=[Customer(**c.model_dump()) for c in saved.served],
            rejected=[Customer(**c.model_dump()) for c in saved.rejected],
            next_customer_id=saved.next_customer_id,
            next_barber_key=saved.next_barber_key,
        )
        _check_restorable(shop, self.config)
        shop.reindex_queue()
        with self.lock:
            self._shop = shop
            self.service_duration = saved.service_duration
            self.arrival_rate = saved.arrival_rate
            self.simulation_speed = saved.simulation_speed
        logger.info("Simulation restored at t=%.2f", shop.simulated_time)


def _check_restorable(shop: ShopSnapshot, config: ShopConfig) -> None:
    if not shop.barbers:
        raise InvalidArgument("saved state has no barbers")
    low, high = config.barber_range
    if not low <= len(shop.barbers) <= high:
        raise InvalidArgument(f"saved state has {len(shop.barbers)} barbers, allowed {low}..{high}")
    low, high = config.chair_range
    if not low <= shop.num_chairs <= high:
        raise InvalidArgument(f"saved state has {shop.num_chairs} chairs, allowed {low}..{high}")
    if len(shop.waiting) > shop.num_chairs:
        raise InvalidArgument("saved queue is longer than the number of chairs")

    groups = (
        (shop.waiting, CustomerState.WAITING),
        (shop.in_service, CustomerState.IN_SERVICE),
        (shop.served, CustomerState.SERVED),
        (shop.rejected, CustomerState.REJECTED),
    )
    seen = set()
    for customers, expected in groups:
        for customer in customers:
            if customer.state != expected:
                raise InvalidArgument(f"customer {customer.id} is {customer.state.value}, expected {expected.value}")
            if customer.id in seen:
                raise InvalidArgument(f"customer {customer.id} appears twice")
            if customer.id >= shop.next_customer_id:
                raise InvalidArgument(f"customer {customer.id} is not below next_customer_id")
            seen.add(customer.id)

    keys = [b.key for b in shop.barbers]
    if len(set(keys)) != len(keys) or max(keys) >= shop.next_barber_key:
        raise InvalidArgument("barber keys must be unique and below next_barber_key")
    if sorted(b.id for b in shop.barbers) != list(range(1, len(shop.barbers) + 1)):
        raise InvalidArgument("barber labels must be 1..N")

    in_chair = {c.id: c for c in shop.in_service}
    busy = set()
    for barber in shop.barbers:
        if barber.state == BarberState.WORKING:
            customer = in_chair.get(barber.current_customer_id)
            if customer is None or customer.assigned_barber_key != barber.key:
                raise InvalidArgument(f"barber #{barber.id} is working without a customer")
            busy.add(customer.id)
        elif barber.current_customer_id is not None:
            raise InvalidArgument(f"sleeping barber #{barber.id} holds a customer")
    if busy != set(in_chair):
        raise InvalidArgument("every customer in service needs a working barber")
    # A sleeping barber is only woken by an arrival, so nobody queued would ever be served
    if shop.waiting and any(b.state == BarberState.SLEEPING for b in shop.barbers):
        raise InvalidArgument("customers are waiting while a barber sleeps")


# A single engine instance for the whole app
shop_state = ShopState()
