from typing import Iterable

import pytest

from arrivals import ArrivalGenerator, NameGenerator
from config import ShopConfig
from models import BarberState, CustomerState, ShopSnapshot
from state import ShopState


class ScriptedSource:
    """Random source replaying fixed draws, cycling when exhausted."""

    def __init__(self, values: Iterable[float]):
        self.values = list(values)
        self.calls = 0

    def random(self) -> float:
        value = self.values[self.calls % len(self.values)]
        self.calls += 1
        return value


def never_arrive() -> ArrivalGenerator:
    # 1.0 is never below a probability, so nobody walks in
    return ArrivalGenerator(ScriptedSource([1.0]))


def always_arrive() -> ArrivalGenerator:
    return ArrivalGenerator(ScriptedSource([0.0]))


def make_shop(barbers=1, chairs=3, service_duration=10.0, arrivals=None, arrival_rate=0.0) -> ShopState:
    config = ShopConfig(
        default_barbers=barbers,
        default_chairs=chairs,
        service_duration=service_duration,
        arrival_rate=arrival_rate,
    )
    return ShopState(
        config=config,
        arrivals=arrivals if arrivals is not None else never_arrive(),
        names=NameGenerator(ScriptedSource([0.0])),
    )


@pytest.fixture
def shop() -> ShopState:
    return make_shop()


def check_invariants(snapshot: ShopSnapshot) -> None:
    assert len(snapshot.waiting) <= snapshot.num_chairs
    assert [c.queue_position for c in snapshot.waiting] == list(range(len(snapshot.waiting)))
    assert [b.id for b in sorted(snapshot.barbers, key=lambda b: b.id)] == list(
        range(1, len(snapshot.barbers) + 1)
    )

    groups = (
        (snapshot.waiting, CustomerState.WAITING),
        (snapshot.in_service, CustomerState.IN_SERVICE),
        (snapshot.served, CustomerState.SERVED),
        (snapshot.rejected, CustomerState.REJECTED),
    )
    seen = []
    for customers, expected in groups:
        for customer in customers:
            assert customer.state == expected
            seen.append(customer.id)
            if customer.service_start_time is not None:
                assert customer.service_start_time >= customer.arrival_time
                assert customer.service_end_time >= customer.service_start_time
            if customer.departure_time is not None:
                assert customer.departure_time >= customer.arrival_time
    # Every customer ever created sits in exactly one place
    assert sorted(seen) == list(range(1, snapshot.next_customer_id))

    in_chair = {c.id: c for c in snapshot.in_service}
    busy = set()
    for barber in snapshot.barbers:
        if barber.state == BarberState.WORKING:
            customer = in_chair[barber.current_customer_id]
            assert customer.assigned_barber_id == barber.id
            assert customer.assigned_barber_key == barber.key
            assert barber.service_end_time == customer.service_end_time
            busy.add(customer.id)
        else:
            assert barber.current_customer_id is None
            assert barber.service_start_time is None
            assert barber.service_end_time is None
    assert busy == set(in_chair)
