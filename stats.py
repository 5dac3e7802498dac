from typing import Iterable

from models import BarberState, Customer, ShopSnapshot, ShopStatistics


def average_wait_time(served: Iterable[Customer]) -> float:
    """Mean time between walking in and sitting in the barber's chair."""
    waits = [c.wait_time for c in served if c.wait_time is not None]
    if not waits:
        return 0.0
    return sum(waits) / len(waits)


def compute_statistics(snapshot: ShopSnapshot) -> ShopStatistics:
    return ShopStatistics(
        served_count=len(snapshot.served),
        waiting_count=len(snapshot.waiting),
        in_service_count=len(snapshot.in_service),
        rejected_count=len(snapshot.rejected),
        average_wait_time=average_wait_time(snapshot.served),
        sleeping_barbers=sum(1 for b in snapshot.barbers if b.state == BarberState.SLEEPING),
        barber_totals={b.id: b.total_served for b in snapshot.barbers},
    )


def format_time(seconds: float) -> str:
    # m:ss, the way the shop clock is displayed
    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes}:{secs:02d}"
