from typing import Any, Optional

from logging_config import get_logger
from signaling.registry import ConnectionRegistry

logger = get_logger(__name__)

SIGNAL_TYPES = ("offer", "answer", "ice-candidate")


class SignalRouter:
    """Delivers addressed events to a single live connection.

    Envelopes are opaque: only their `type` is read, and only for logging.
    """

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    def forward(self, event: str, payload: dict, to_id: str) -> bool:
        connection = self.registry.get(to_id)
        if connection is None:
            logger.debug(f"Dropping {event} for unknown connection {to_id}")
            return False
        return connection.deliver(event, payload)

    def relay(self, envelope: Any, to_id: str, from_id: str) -> bool:
        signal_type = _signal_type(envelope)
        if signal_type not in SIGNAL_TYPES:
            logger.debug(f"Relaying signal of unrecognised type {signal_type!r} from {from_id}")
        delivered = self.forward("receive-signal", {"signal": envelope, "from": from_id}, to_id)
        if delivered:
            logger.debug(f"Relayed {signal_type} from {from_id} to {to_id}")
        return delivered


def _signal_type(envelope: Any) -> Optional[str]:
    if isinstance(envelope, dict):
        return envelope.get("type")
    return None
