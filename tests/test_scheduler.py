import math
import random

import pytest

from arrivals import ArrivalGenerator
from models import BarberState, CustomerState, InvalidArgument

from conftest import always_arrive, check_invariants, make_shop


def test_idle_barber_takes_customer_immediately(shop):
    shop.initialize(1, 3)
    customer = shop.add_customer("X")

    assert customer.state == CustomerState.IN_SERVICE
    assert customer.wait_time == 0
    assert customer.service_end_time == 10.0

    snapshot = shop.snapshot()
    barber = snapshot.barbers[0]
    assert barber.state == BarberState.WORKING
    assert barber.current_customer_id == customer.id
    assert customer.assigned_barber_id == 1
    check_invariants(snapshot)


def test_full_waiting_room_turns_customer_away(shop):
    shop.initialize(1, 1)
    a = shop.add_customer("A")
    b = shop.add_customer("B")
    c = shop.add_customer("C")

    assert a.state == CustomerState.IN_SERVICE
    assert b.state == CustomerState.WAITING
    assert b.queue_position == 0
    assert c.state == CustomerState.REJECTED
    assert c.departure_time == c.arrival_time

    snapshot = shop.snapshot()
    assert len(snapshot.rejected) == 1
    assert snapshot.rejected[0].name == "C"
    check_invariants(snapshot)


def test_finished_haircut_puts_barber_back_to_sleep(shop):
    shop.add_customer("A")
    delta = shop.advance(10)

    assert [c.name for c in delta.completed] == ["A"]
    snapshot = shop.snapshot()
    served = snapshot.served[0]
    assert served.state == CustomerState.SERVED
    assert served.departure_time == 10
    assert snapshot.in_service == []

    barber = snapshot.barbers[0]
    assert barber.state == BarberState.SLEEPING
    assert barber.total_served == 1
    assert barber.service_start_time is None
    check_invariants(snapshot)


def test_departure_uses_exact_service_end():
    shop = make_shop()
    shop.add_customer("A")
    shop.advance(12.5)

    snapshot = shop.snapshot()
    assert snapshot.simulated_time == 12.5
    assert snapshot.served[0].departure_time == 10.0


def test_unfinished_haircut_stays_in_chair(shop):
    shop.add_customer("A")
    delta = shop.advance(9.99)

    assert delta.completed == []
    snapshot = shop.snapshot()
    assert snapshot.barbers[0].total_served == 0
    assert snapshot.in_service[0].name == "A"


def test_head_of_queue_is_promoted(shop):
    shop.initialize(1, 2)
    shop.add_customer("A")
    shop.add_customer("B")
    shop.add_customer("C")
    delta = shop.advance(10)

    assert [c.name for c in delta.started] == ["B"]
    snapshot = shop.snapshot()
    b = snapshot.in_service[0]
    assert b.name == "B"
    assert b.service_start_time == 10
    assert b.service_end_time == 20
    assert b.wait_time == 10
    assert b.queue_position is None
    assert [(c.name, c.queue_position) for c in snapshot.waiting] == [("C", 0)]
    assert snapshot.barbers[0].state == BarberState.WORKING
    assert snapshot.barbers[0].current_customer_id == b.id
    check_invariants(snapshot)


def test_freed_barbers_take_queue_in_label_order(shop):
    shop.initialize(2, 2)
    shop.add_customer("A")
    shop.add_customer("B")
    shop.add_customer("C")
    shop.add_customer("D")
    shop.advance(10)

    snapshot = shop.snapshot()
    pairs = sorted((c.assigned_barber_id, c.name) for c in snapshot.in_service)
    assert pairs == [(1, "C"), (2, "D")]
    assert snapshot.waiting == []
    check_invariants(snapshot)


def test_lowest_sleeping_barber_is_chosen(shop):
    shop.initialize(3, 1)
    first = shop.add_customer("A")
    assert first.assigned_barber_id == 1

    shop.advance(5)
    second = shop.add_customer("B")
    assert second.assigned_barber_id == 2

    # A finishes at 10, barber 1 is free again while 2 is busy and 3 sleeps
    shop.advance(5)
    third = shop.add_customer("C")
    assert third.assigned_barber_id == 1
    check_invariants(shop.snapshot())


def test_completion_frees_barber_for_same_step_arrival():
    shop = make_shop(barbers=1, chairs=1, arrivals=always_arrive(), arrival_rate=6.0)
    shop.add_customer("A")
    delta = shop.advance(10)

    assert [c.name for c in delta.completed] == ["A"]
    arrival = delta.arrival
    assert arrival is not None
    assert arrival.state == CustomerState.IN_SERVICE
    assert arrival.arrival_time == 10
    assert arrival.wait_time == 0
    assert arrival.name == "Alex 2"
    check_invariants(shop.snapshot())


def test_zero_rate_never_generates_arrivals():
    shop = make_shop(arrivals=always_arrive(), arrival_rate=0.0)
    for _ in range(20):
        assert shop.advance(1).arrival is None
    assert shop.snapshot().next_customer_id == 1


@pytest.mark.parametrize("bad", [-0.001, -5, math.nan])
def test_invalid_delta_leaves_state_untouched(shop, bad):
    shop.add_customer("A")
    shop.add_customer("B")
    before = shop.snapshot()

    with pytest.raises(InvalidArgument):
        shop.advance(bad)
    assert shop.snapshot() == before


def test_simulated_time_is_sum_of_deltas(shop):
    deltas = [0.5, 0, 1.25, 3, 0.1, 7.75]
    times = []
    for delta in deltas:
        times.append(shop.advance(delta).simulated_time)

    assert times == sorted(times)
    assert shop.snapshot().simulated_time == pytest.approx(sum(deltas))


def test_customer_ids_are_never_reused(shop):
    shop.initialize(1, 1)
    ids = [shop.add_customer(name).id for name in "ABCDE"]
    assert ids == [1, 2, 3, 4, 5]

    shop.set_chair_count(1)
    assert shop.add_customer("F").id == 6


def test_invariants_hold_through_a_busy_day():
    rng = random.Random(7)
    shop = make_shop(
        barbers=2,
        chairs=4,
        service_duration=6.0,
        arrivals=ArrivalGenerator(random.Random(11)),
        arrival_rate=40.0,
    )

    for step in range(600):
        shop.advance(rng.choice([0.1, 0.25, 0.5]))
        if step % 50 == 25:
            shop.set_barber_count(rng.randint(1, 5))
        if step % 70 == 35:
            shop.set_chair_count(rng.randint(1, 10))
        if step % 40 == 0:
            shop.add_customer(f"walk-in {step}")
        check_invariants(shop.snapshot())

    stats = shop.statistics()
    assert stats.served_count > 0


def test_customer_name_is_kept_as_given(shop):
    customer = shop.add_customer("  X ")
    assert customer.name == "  X "
    assert shop.snapshot().in_service[0].name == "  X "

    for blank in ["", "   "]:
        with pytest.raises(InvalidArgument):
            shop.add_customer(blank)
