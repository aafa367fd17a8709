# backend/core/logging.py
import json
import logging
from typing import Any

from core.request_id import current_request_id

# attributes every LogRecord carries; anything else was passed via `extra=`
_RESERVED = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        req_id = current_request_id()
        if req_id:
            payload["request_id"] = req_id
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        # optional extra fields
        for key, val in record.__dict__.items():
            if key in _RESERVED or key.startswith("_"):
                continue
            payload[key] = val
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_json_logging(level: int | str = logging.INFO, json_logs: bool = True):
    root = logging.getLogger()
    root.handlers.clear()
    h = logging.StreamHandler()
    if json_logs:
        h.setFormatter(JsonFormatter())
    else:
        h.setFormatter(logging.Formatter("[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"))
    root.addHandler(h)
    root.setLevel(level)
