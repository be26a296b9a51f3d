"""
backend/marketplace/services/events.py

Event emitter: pushes booking events to a Redis queue for notification
consumers (tenant inbox, e-mail, push).

Queue:
- events:p2p: instant delivery to the customer / tenant involved

Emitting is best effort: the booking state is already committed when an
event is pushed, so a Redis outage is logged and never fails the request.
"""

import json
import time
import logging

from redis.exceptions import RedisError

from ..config import settings
from ..redis_client import redis_client

logger = logging.getLogger(__name__)

P2P_QUEUE = "events:p2p"


def emit_event(event_type: str, payload: dict) -> None:
    """
    Emit a p2p event (instant delivery).

    Pushed to Redis list `events:p2p` for the consumer loop.
    """
    if not settings.events_enabled:
        return

    event = {
        "type": event_type,
        **payload,
        "ts": int(time.time()),
    }
    try:
        redis_client.rpush(P2P_QUEUE, json.dumps(event))
        logger.info(f"Event emitted: {event_type} → {P2P_QUEUE}")
    except RedisError as e:
        logger.error(f"Failed to emit event {event_type}: {e}")
