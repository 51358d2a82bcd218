import logging
import re
import secrets
import string
import time
from uuid import UUID

from sqlalchemy.orm import Session

from ..models import Booking, SequenceCounter


log = logging.getLogger("rentx.ids")

INVOICE_PREFIX = "INV"
BOOKING_PREFIX = "BID"

_COLUMNS = {
    INVOICE_PREFIX: Booking.invoice_number,
    BOOKING_PREFIX: Booking.booking_code,
}
_ALPHABET = string.ascii_uppercase + string.digits


def as_uuid(value):
    try:
        return UUID(str(value))
    except Exception:
        return value


def fallback_number(prefix: str) -> str:
    """Non-sequential but collision-resistant id: PREFIX-<epoch millis>-<3 chars>."""
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(3))
    return f"{prefix}-{int(time.time() * 1000)}-{suffix}"


def _highest_existing(db: Session, prefix: str) -> int:
    column = _COLUMNS[prefix]
    pattern = re.compile(rf"^{prefix}(\d+)$")
    highest = 0
    for (value,) in db.query(column).filter(column.like(f"{prefix}%")).all():
        m = pattern.match(value or "")
        if m:
            highest = max(highest, int(m.group(1)))
    return highest


def next_number(db: Session, prefix: str) -> str:
    """Increment-and-get on the per-prefix counter row.

    The counter row is locked for the rest of the transaction, so concurrent
    bookings queue on it instead of computing the same number. A missing row is
    seeded from the highest number already present on bookings.
    """
    row = (
        db.query(SequenceCounter)
        .filter(SequenceCounter.name == prefix)
        .with_for_update()
        .one_or_none()
    )
    if row is None:
        row = SequenceCounter(name=prefix, value=_highest_existing(db, prefix))
        db.add(row)
    row.value = int(row.value or 0) + 1
    db.flush()
    return f"{prefix}{row.value:03d}"


def assign_numbers(db: Session) -> tuple[str, str]:
    """Invoice and booking numbers for a new booking.

    Each counter runs in its own savepoint so a failed lookup only discards the
    counter work and the booking itself can still be written with a fallback.
    """
    numbers = []
    for prefix in (INVOICE_PREFIX, BOOKING_PREFIX):
        try:
            with db.begin_nested():
                number = next_number(db, prefix)
        except Exception as e:
            log.warning("sequence %s unavailable, using fallback: %s", prefix, e)
            number = fallback_number(prefix)
        numbers.append(number)
    return numbers[0], numbers[1]
