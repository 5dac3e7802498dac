from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class InvalidArgument(ValueError):
    """Raised for command input the engine refuses; state is left untouched."""


class CustomerState(str, Enum):
    WAITING = "waiting"
    IN_SERVICE = "in_service"
    SERVED = "served"
    REJECTED = "rejected"


class BarberState(str, Enum):
    SLEEPING = "sleeping"
    WORKING = "working"


# ---------- Domain models (in-memory) ----------

@dataclass
class Customer:
    id: int
    name: str
    arrival_time: float
    state: CustomerState = CustomerState.WAITING
    service_start_time: Optional[float] = None
    service_end_time: Optional[float] = None
    departure_time: Optional[float] = None
    # Label of the barber at assignment time. Follows relabelling only while
    # the customer is still in the chair.
    assigned_barber_id: Optional[int] = None
    assigned_barber_key: Optional[int] = None
    queue_position: Optional[int] = None

    @property
    def wait_time(self) -> Optional[float]:
        if self.service_start_time is None:
            return None
        return self.service_start_time - self.arrival_time


@dataclass
class Barber:
    key: int  # stable identity, never reused
    id: int  # display label, contiguous 1..N
    state: BarberState = BarberState.SLEEPING
    current_customer_id: Optional[int] = None
    service_start_time: Optional[float] = None
    service_end_time: Optional[float] = None
    total_served: int = 0

    def start_service(self, customer: Customer, now: float, duration: float) -> None:
        self.state = BarberState.WORKING
        self.current_customer_id = customer.id
        self.service_start_time = now
        self.service_end_time = now + duration

        customer.state = CustomerState.IN_SERVICE
        customer.service_start_time = now
        customer.service_end_time = now + duration
        customer.assigned_barber_id = self.id
        customer.assigned_barber_key = self.key
        customer.queue_position = None

    def fall_asleep(self) -> None:
        self.state = BarberState.SLEEPING
        self.current_customer_id = None
        self.service_start_time = None
        self.service_end_time = None


@dataclass
class ShopSnapshot:
    """
    Complete engine state. Only ShopState mutates it; everybody else gets
    a deep copy.
    """
    num_chairs: int
    simulated_time: float = 0.0
    barbers: List[Barber] = field(default_factory=list)
    waiting: List[Customer] = field(default_factory=list)
    in_service: List[Customer] = field(default_factory=list)
    served: List[Customer] = field(default_factory=list)
    rejected: List[Customer] = field(default_factory=list)
    next_customer_id: int = 1
    next_barber_key: int = 1

    def sleeping_barbers(self) -> List[Barber]:
        return sorted(
            (b for b in self.barbers if b.state == BarberState.SLEEPING),
            key=lambda b: b.id,
        )

    def barber_by_key(self, key: int) -> Optional[Barber]:
        for barber in self.barbers:
            if barber.key == key:
                return barber
        return None

    def reindex_queue(self) -> None:
        for position, customer in enumerate(self.waiting):
            customer.queue_position = position


@dataclass
class SnapshotDelta:
    simulated_time: float
    completed: List[Customer] = field(default_factory=list)
    started: List[Customer] = field(default_factory=list)
    arrival: Optional[Customer] = None


@dataclass
class BarberResize:
    requested: int
    count: int
    added: int = 0
    removed: int = 0


@dataclass
class ShopStatistics:
    served_count: int
    waiting_count: int
    in_service_count: int
    rejected_count: int
    average_wait_time: float
    sleeping_barbers: int
    barber_totals: Dict[int, int] = field(default_factory=dict)


@dataclass
class ShopView:
    """Snapshot, statistics and run parameters read in one go between steps."""
    snapshot: ShopSnapshot
    statistics: ShopStatistics
    service_duration: float
    arrival_rate: float
    simulation_speed: float


# ---------- Pydantic models for API ----------

class CustomerOut(BaseModel):
    id: int
    name: str
    state: CustomerState
    arrival_time: float
    service_start_time: Optional[float] = None
    service_end_time: Optional[float] = None
    departure_time: Optional[float] = None
    assigned_barber_id: Optional[int] = None
    assigned_barber_key: Optional[int] = None
    queue_position: Optional[int] = None

    class Config:
        from_attributes = True


class BarberOut(BaseModel):
    key: int
    id: int
    state: BarberState
    current_customer_id: Optional[int] = None
    service_start_time: Optional[float] = None
    service_end_time: Optional[float] = None
    total_served: int = 0

    class Config:
        from_attributes = True


class ParametersOut(BaseModel):
    num_barbers: int
    num_chairs: int
    service_duration: float
    arrival_rate: float
    simulation_speed: float


class StatisticsOut(BaseModel):
    served_count: int
    waiting_count: int
    in_service_count: int
    rejected_count: int
    average_wait_time: float
    sleeping_barbers: int
    barber_totals: Dict[int, int]

    class Config:
        from_attributes = True


class SimulationOut(BaseModel):
    running: bool
    simulated_time: float
    clock: str
    parameters: ParametersOut
    statistics: StatisticsOut
    barbers: List[BarberOut]
    waiting: List[CustomerOut]
    in_service: List[CustomerOut]
    served: List[CustomerOut]
    rejected: List[CustomerOut]


class SavedState(BaseModel):
    """Everything needed to bring a simulation back exactly where it was."""
    service_duration: float = Field(..., gt=0)
    arrival_rate: float = Field(..., ge=0)
    simulation_speed: float = Field(..., gt=0)
    num_chairs: int = Field(..., ge=1)
    simulated_time: float = Field(..., ge=0)
    next_customer_id: int = Field(..., ge=1)
    next_barber_key: int = Field(..., ge=1)
    barbers: List[BarberOut]
    waiting: List[CustomerOut] = []
    in_service: List[CustomerOut] = []
    served: List[CustomerOut] = []
    rejected: List[CustomerOut] = []


class InitializeIn(BaseModel):
    num_barbers: int = Field(..., description="Barber count, clamped to the configured range")
    num_chairs: int = Field(..., description="Chair count, clamped to the configured range")


class AdvanceIn(BaseModel):
    # Simulated seconds; negative deltas are refused by the engine
    delta_time: float


class AdvanceOut(BaseModel):
    simulated_time: float
    completed: List[CustomerOut]
    started: List[CustomerOut]
    arrival: Optional[CustomerOut] = None


class CustomerIn(BaseModel):
    name: str = Field(..., min_length=1)


class RandomCustomersIn(BaseModel):
    count: int = Field(1, ge=1, le=50)


class CountIn(BaseModel):
    count: int


class BarberResizeOut(BaseModel):
    requested: int
    count: int
    added: int
    removed: int


class ChairResizeOut(BaseModel):
    count: int
    evicted: List[CustomerOut]


class SettingsIn(BaseModel):
    service_duration: Optional[float] = None
    arrival_rate: Optional[float] = None
    simulation_speed: Optional[float] = None
