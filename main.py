import logging
from typing import List

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from config import settings
from models import (
    AdvanceIn,
    AdvanceOut,
    BarberOut,
    BarberResizeOut,
    ChairResizeOut,
    CountIn,
    CustomerIn,
    CustomerOut,
    InitializeIn,
    InvalidArgument,
    ParametersOut,
    RandomCustomersIn,
    SavedState,
    SettingsIn,
    SimulationOut,
    StatisticsOut,
)
from simulation import driver, start_simulation_worker
from state import shop_state
from stats import format_time

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Sleeping Barber Simulator",
    description=(
        "Simulates a barber shop with a bounded waiting room: barbers sleep "
        "until customers arrive, customers wait in chairs or leave when the "
        "waiting room is full. An educational take on the classic "
        "producer/consumer synchronization problem."
    ),
)


@app.on_event("startup")
def startup_event() -> None:
    # The driver thread idles until /simulation/start is called
    start_simulation_worker(interval=settings.tick_interval)


@app.exception_handler(InvalidArgument)
def invalid_argument_handler(request: Request, exc: InvalidArgument) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


def _customers(customers) -> List[CustomerOut]:
    return [CustomerOut.model_validate(c) for c in customers]


@app.get("/simulation", response_model=SimulationOut)
def get_simulation():
    view = shop_state.view()
    snapshot = view.snapshot
    return SimulationOut(
        running=driver.running,
        simulated_time=snapshot.simulated_time,
        clock=format_time(snapshot.simulated_time),
        parameters=ParametersOut(
            num_barbers=len(snapshot.barbers),
            num_chairs=snapshot.num_chairs,
            service_duration=view.service_duration,
            arrival_rate=view.arrival_rate,
            simulation_speed=view.simulation_speed,
        ),
        statistics=StatisticsOut.model_validate(view.statistics),
        barbers=[BarberOut.model_validate(b) for b in snapshot.barbers],
        waiting=_customers(snapshot.waiting),
        in_service=_customers(snapshot.in_service),
        served=_customers(snapshot.served),
        rejected=_customers(snapshot.rejected),
    )


@app.post("/simulation/initialize", response_model=SimulationOut)
def initialize_simulation(body: InitializeIn):
    driver.pause()
    shop_state.initialize(body.num_barbers, body.num_chairs)
    return get_simulation()


@app.post("/simulation/start", response_model=SimulationOut)
def start_simulation():
    driver.start()
    return get_simulation()


@app.post("/simulation/pause", response_model=SimulationOut)
def pause_simulation():
    driver.pause()
    return get_simulation()


@app.post("/simulation/reset", response_model=SimulationOut)
def reset_simulation():
    driver.reset()
    return get_simulation()


@app.post("/simulation/advance", response_model=AdvanceOut)
def advance_simulation(body: AdvanceIn):
    delta = shop_state.advance(body.delta_time)
    return AdvanceOut(
        simulated_time=delta.simulated_time,
        completed=_customers(delta.completed),
        started=_customers(delta.started),
        arrival=CustomerOut.model_validate(delta.arrival) if delta.arrival else None,
    )


@app.get("/statistics", response_model=StatisticsOut)
def get_statistics():
    return StatisticsOut.model_validate(shop_state.statistics())


@app.get("/barbers", response_model=List[BarberOut])
def list_barbers():
    return [BarberOut.model_validate(b) for b in shop_state.snapshot().barbers]


@app.post("/customers", response_model=CustomerOut)
def book_customer(body: CustomerIn):
    return CustomerOut.model_validate(shop_state.add_customer(body.name))


@app.post("/customers/random", response_model=List[CustomerOut])
def add_random_customers(body: RandomCustomersIn):
    return _customers(shop_state.add_random_customers(body.count))


@app.get("/history", response_model=List[CustomerOut])
def customer_history():
    snapshot = shop_state.snapshot()
    history = sorted(
        snapshot.served + snapshot.rejected,
        key=lambda c: (c.departure_time, c.id),
    )
    return _customers(history)


@app.put("/settings/barbers", response_model=BarberResizeOut)
def set_barbers(body: CountIn):
    result = shop_state.set_barber_count(body.count)
    return BarberResizeOut(
        requested=result.requested,
        count=result.count,
        added=result.added,
        removed=result.removed,
    )


@app.put("/settings/chairs", response_model=ChairResizeOut)
def set_chairs(body: CountIn):
    evicted = shop_state.set_chair_count(body.count)
    return ChairResizeOut(
        count=shop_state.snapshot().num_chairs,
        evicted=_customers(evicted),
    )


@app.patch("/settings", response_model=ParametersOut)
def update_settings(body: SettingsIn):
    shop_state.update_parameters(
        service_duration=body.service_duration,
        arrival_rate=body.arrival_rate,
        simulation_speed=body.simulation_speed,
    )
    return get_simulation().parameters


@app.get("/simulation/export", response_model=SavedState)
def export_simulation():
    return shop_state.export_state()


@app.post("/simulation/import", response_model=SimulationOut)
def import_simulation(saved: SavedState):
    driver.pause()
    shop_state.restore_state(saved)
    return get_simulation()
