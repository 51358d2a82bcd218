import json
import logging
from typing import Any, Dict

import redis

from .config import settings


log = logging.getLogger("rentx.notifications")


def _redis_client() -> redis.Redis | None:
    try:
        return redis.from_url(settings.REDIS_URL) if settings.REDIS_URL else None
    except Exception:
        return None


def notify(event: str, payload: Dict[str, Any]) -> None:
    """Publish an event for the mailer/document workers. Never raises."""
    try:
        if settings.NOTIFY_MODE == "redis":
            cli = _redis_client()
            if cli is None:
                log.warning("notify(redis): no client available; falling back to log")
            else:
                try:
                    cli.publish(settings.NOTIFY_REDIS_CHANNEL, json.dumps({"event": event, "data": payload}, default=str))
                    return
                except Exception as e:
                    log.warning("notify(redis) failed: %s", e)
        log.info("event=%s payload=%s", event, json.dumps(payload, default=str))
    except Exception:
        log.exception("notify failed for event=%s", event)


def booking_payload(booking) -> Dict[str, Any]:
    user = booking.user
    vehicle = booking.vehicle
    return {
        "booking_id": str(booking.id),
        "booking_code": booking.booking_code,
        "invoice_number": booking.invoice_number,
        "status": booking.booking_status,
        "start_date": booking.start_date.isoformat(),
        "end_date": booking.end_date.isoformat(),
        "total_amount": booking.total_amount,
        "payment_method": booking.payment_method,
        "payment_status": booking.payment_status,
        "renter_email": user.email if user else None,
        "renter_name": user.name if user else None,
        "vehicle_name": vehicle.name if vehicle else None,
    }
