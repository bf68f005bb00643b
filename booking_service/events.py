import json
import uuid
from datetime import datetime, timezone

SOURCE = "booking-service"

BOOKING_REQUESTED = "booking.requested"
BOOKING_ACCEPTED = "booking.accepted"
BOOKING_DECLINED = "booking.declined"
BOOKING_WORK_UPDATED = "booking.work_updated"
PAYMENT_METHOD_SELECTED = "payment.method_selected"
PAYMENT_CARD_PAID = "payment.card_paid"


def build_event(event_type: str, data: dict) -> dict:
    return {
        "event_id": str(uuid.uuid4()),
        "event_type": event_type,
        "source": SOURCE,
        "occurred_at": datetime.now(timezone.utc).isoformat(),
        "data": data,
    }


def booking_event(event_type: str, booking, **extra) -> dict:
    data = {
        "booking_id": booking.booking_id,
        "customer_id": booking.customer_id,
        "labor_id": booking.labor_id,
        "decision": booking.decision,
        "status": booking.status,
        "work_status": booking.work_status,
        "payment_method": booking.payment_method,
        "payment_status": booking.payment_status,
    }
    data.update(extra)
    return build_event(event_type, data)


def to_json(event: dict) -> str:
    # datetimes in payloads go out as their str() form
    return json.dumps(event, separators=(",", ":"), ensure_ascii=False, default=str)
