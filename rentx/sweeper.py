"""Periodic reconciliation of vehicle availability and booking status against
the calendar date."""
import logging
import threading
from dataclasses import dataclass, field
from datetime import date

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from .booking_engine import vehicle_busy_on
from .config import settings
from .database import session_scope
from .models import Booking, Vehicle


log = logging.getLogger("rentx.sweeper")


@dataclass
class SweepResult:
    availability_changed: list[str] = field(default_factory=list)
    started: int = 0
    completed: int = 0

    @property
    def changes(self) -> int:
        return len(self.availability_changed) + self.started + self.completed


def sweep_once(db: Session, today: date | None = None) -> SweepResult:
    today = today or date.today()
    result = SweepResult()

    for vehicle in db.query(Vehicle).order_by(Vehicle.created_at.asc()).all():
        should_be_unavailable = vehicle_busy_on(db, vehicle.id, today)
        if vehicle.availability == should_be_unavailable:
            vehicle.availability = not should_be_unavailable
            result.availability_changed.append(str(vehicle.id))
            log.info("vehicle %s (%s) availability -> %s", vehicle.id, vehicle.name, vehicle.availability)

    result.started = (
        db.query(Booking)
        .filter(Booking.booking_status == "confirmed", Booking.start_date <= today)
        .update({Booking.booking_status: "ongoing"}, synchronize_session=False)
    )
    result.completed = (
        db.query(Booking)
        .filter(Booking.booking_status == "ongoing", Booking.end_date < today)
        .update({Booking.booking_status: "completed"}, synchronize_session=False)
    )
    db.flush()
    if result.changes:
        log.info(
            "sweep %s: availability=%d started=%d completed=%d",
            today.isoformat(), len(result.availability_changed), result.started, result.completed,
        )
    return result


def run_sweep(today: date | None = None) -> SweepResult | None:
    """One scheduled tick. Store failures are logged and left for the next tick."""
    try:
        with session_scope() as db:
            return sweep_once(db, today)
    except OperationalError as e:
        log.warning("database unavailable, skipping availability sweep: %s", e.orig if hasattr(e, "orig") else e)
    except Exception:
        log.exception("availability sweep failed")
    return None


class AvailabilitySweeper:
    """Runs ``run_sweep`` after an initial delay and then on a fixed interval."""

    def __init__(self, interval_secs: float | None = None, initial_delay_secs: float | None = None):
        self.interval_secs = max(0.05, interval_secs if interval_secs is not None else settings.SWEEPER_INTERVAL_SECS)
        self.initial_delay_secs = max(0, initial_delay_secs if initial_delay_secs is not None else settings.SWEEPER_INITIAL_DELAY_SECS)
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="rentx-sweeper", daemon=True)
        self._thread.start()
        log.info("availability sweeper started (interval=%ss)", self.interval_secs)

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _loop(self) -> None:
        if self._stop.wait(self.initial_delay_secs):
            return
        while not self._stop.is_set():
            run_sweep()
            if self._stop.wait(self.interval_secs):
                return
