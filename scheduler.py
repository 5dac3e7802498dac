import logging
from typing import Callable, List

from arrivals import ArrivalGenerator
from models import (
    Barber,
    BarberResize,
    BarberState,
    Customer,
    CustomerState,
    InvalidArgument,
    ShopSnapshot,
    SnapshotDelta,
)

logger = logging.getLogger(__name__)


def admit(snapshot: ShopSnapshot, name: str, now: float, service_duration: float) -> Customer:
    """
    Admission rule shared by walk-ins and manual bookings:
    - a sleeping barber exists: the one with the lowest label takes the
      customer at once (zero wait);
    - otherwise a free chair: the customer joins the tail of the queue;
    - otherwise the customer is turned away.
    """
    customer = Customer(id=snapshot.next_customer_id, name=name, arrival_time=now)
    snapshot.next_customer_id += 1

    sleeping = snapshot.sleeping_barbers()
    if sleeping:
        barber = sleeping[0]
        barber.start_service(customer, now, service_duration)
        snapshot.in_service.append(customer)
        logger.info("%s is getting a haircut from barber #%d", customer.name, barber.id)
    elif len(snapshot.waiting) < snapshot.num_chairs:
        customer.state = CustomerState.WAITING
        customer.queue_position = len(snapshot.waiting)
        snapshot.waiting.append(customer)
        logger.info("%s is waiting (position #%d)", customer.name, customer.queue_position + 1)
    else:
        customer.state = CustomerState.REJECTED
        customer.departure_time = now
        snapshot.rejected.append(customer)
        logger.info("%s was turned away, the waiting area is full", customer.name)
    return customer


def _complete_services(snapshot: ShopSnapshot, new_time: float) -> List[Customer]:
    finished = [c for c in snapshot.in_service if c.service_end_time <= new_time]
    if not finished:
        return []
    finished.sort(key=lambda c: (c.service_end_time, c.assigned_barber_id))

    done_ids = {c.id for c in finished}
    snapshot.in_service = [c for c in snapshot.in_service if c.id not in done_ids]
    for customer in finished:
        customer.state = CustomerState.SERVED
        # Exact end time, not the step boundary, so history does not drift
        customer.departure_time = customer.service_end_time
        snapshot.served.append(customer)

        barber = snapshot.barber_by_key(customer.assigned_barber_key)
        if barber is not None:
            barber.total_served += 1
    return finished


def _reassign_barbers(
    snapshot: ShopSnapshot,
    finished: List[Customer],
    new_time: float,
    service_duration: float,
) -> List[Customer]:
    freed = [snapshot.barber_by_key(c.assigned_barber_key) for c in finished]
    freed = sorted((b for b in freed if b is not None), key=lambda b: b.id)

    started = []
    for barber in freed:
        if snapshot.waiting:
            customer = snapshot.waiting.pop(0)
            barber.start_service(customer, new_time, service_duration)
            snapshot.in_service.append(customer)
            started.append(customer)
            logger.info("Barber #%d is now serving %s", barber.id, customer.name)
        else:
            barber.fall_asleep()
            logger.info("Barber #%d is now sleeping", barber.id)
    if started:
        snapshot.reindex_queue()
    return started


def advance(
    snapshot: ShopSnapshot,
    delta_time: float,
    service_duration: float,
    arrival_rate: float,
    arrivals: ArrivalGenerator,
    names: Callable[[int], str],
) -> SnapshotDelta:
    """
    Move the shop forward by delta_time simulated seconds.

    Finished haircuts are resolved before the step's arrival, so a barber
    freed exactly at the new time can take that arrival straight away.
    """
    # Also catches NaN
    if not delta_time >= 0:
        raise InvalidArgument(f"delta_time must be >= 0, got {delta_time}")

    new_time = snapshot.simulated_time + delta_time

    completed = _complete_services(snapshot, new_time)
    for customer in completed:
        logger.info("%s finished their haircut at %.2f", customer.name, customer.departure_time)
    started = _reassign_barbers(snapshot, completed, new_time, service_duration)

    arrival = None
    if arrivals.should_arrive(arrival_rate, delta_time):
        arrival = admit(snapshot, names(snapshot.next_customer_id), new_time, service_duration)

    snapshot.simulated_time = new_time
    logger.debug(
        "t=%.3f completed=%d started=%d arrival=%s",
        new_time, len(completed), len(started), arrival.name if arrival else None,
    )
    return SnapshotDelta(
        simulated_time=new_time,
        completed=completed,
        started=started,
        arrival=arrival,
    )


def resize_barbers(snapshot: ShopSnapshot, count: int) -> BarberResize:
    """
    Grow or shrink the barber pool towards count.

    Only sleeping barbers are let go, highest label first. When too many are
    busy the shrink stops short and the result says how many actually left.
    """
    current = len(snapshot.barbers)
    result = BarberResize(requested=count, count=current)

    if count > current:
        next_label = max((b.id for b in snapshot.barbers), default=0) + 1
        for offset in range(count - current):
            snapshot.barbers.append(Barber(key=snapshot.next_barber_key, id=next_label + offset))
            snapshot.next_barber_key += 1
        result.added = count - current
    elif count < current:
        to_remove = current - count
        removed_keys = set()
        for barber in sorted(snapshot.barbers, key=lambda b: b.id, reverse=True):
            if len(removed_keys) == to_remove:
                break
            if barber.state == BarberState.SLEEPING:
                removed_keys.add(barber.key)
        snapshot.barbers = [b for b in snapshot.barbers if b.key not in removed_keys]
        result.removed = len(removed_keys)
        if result.removed < to_remove:
            logger.info(
                "Only %d of %d barbers could leave, the rest are busy",
                result.removed, to_remove,
            )
        _relabel_barbers(snapshot)

    result.count = len(snapshot.barbers)
    return result


def _relabel_barbers(snapshot: ShopSnapshot) -> None:
    snapshot.barbers.sort(key=lambda b: b.id)
    in_chair = {c.id: c for c in snapshot.in_service}
    for label, barber in enumerate(snapshot.barbers, start=1):
        barber.id = label
        if barber.current_customer_id is not None:
            customer = in_chair.get(barber.current_customer_id)
            if customer is not None:
                customer.assigned_barber_id = label


def resize_chairs(snapshot: ShopSnapshot, count: int) -> List[Customer]:
    """
    Set the number of waiting chairs. Customers that no longer fit leave
    from the back of the queue; the ones in front keep their order.
    """
    evicted = snapshot.waiting[count:]
    snapshot.waiting = snapshot.waiting[:count]
    snapshot.num_chairs = count

    for customer in evicted:
        customer.state = CustomerState.REJECTED
        customer.departure_time = snapshot.simulated_time
        customer.queue_position = None
        snapshot.rejected.append(customer)
    if evicted:
        snapshot.reindex_queue()
        logger.info("%d waiting customers had to leave due to chair removal", len(evicted))
    return evicted
