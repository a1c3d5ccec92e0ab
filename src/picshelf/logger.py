import json
import logging
from datetime import UTC, datetime


class StructuredLogger:
    """Emits gallery lifecycle events (uploads, rollbacks, deletes) as JSON
    lines through the standard logging system, so they go wherever the
    configured handlers send the rest of the application log.
    """

    def __init__(self, name: str = "picshelf.events"):
        self._logger = logging.getLogger(name)

    def log_event(self, event: str, level: int = logging.INFO, **kwargs) -> None:
        """Emit a structured event, e.g.

        logger.log_event("image_deleted", key="uploads/abc-cat.png", extra={"row_deleted": True})
        """
        payload = {"timestamp": datetime.now(UTC).isoformat(), "event": event}

        # Keys of an `extra` dict are merged at top level
        for k, v in kwargs.items():
            if k == "extra" and isinstance(v, dict):
                payload.update(v)
            else:
                payload[k] = v

        try:
            message = json.dumps(payload, default=str)
        except (TypeError, ValueError):
            self._logger.log(level, "%s %s", event, kwargs)
            return
        self._logger.log(level, message)


event_logger = StructuredLogger()

__all__ = ["event_logger", "StructuredLogger"]
