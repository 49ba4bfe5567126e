from __future__ import annotations

import json
import logging
import os
import sys
import threading
import time
from typing import Any, Dict, MutableMapping, Optional, Tuple, Union


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line:
      { "t": 169, "lvl": "INFO", "name": "heatmap.layer", "thread": "tile-3",
        "msg": "text", "extra": {"layer": "...", "path": "..."} }

    "thread" is omitted on the main thread.
    """

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "t": int(record.created * 1000),
            "lvl": record.levelname,
            "name": record.name,
        }
        if record.threadName and record.threadName != "MainThread":
            payload["thread"] = record.threadName
        payload["msg"] = record.getMessage()
        fields = getattr(record, "extra", None)
        if isinstance(fields, dict) and fields:
            payload["extra"] = fields
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        # numpy scalars, tuples of Sector bounds etc. fall back to str()
        return json.dumps(payload, ensure_ascii=False, default=str)


class ContextAdapter(logging.LoggerAdapter):
    """
    Logger bound to fixed fields (layer name, cache key). Bound fields are
    merged under the call's own `extra={"extra": {...}}`; call fields win.
    """

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        outer = dict(kwargs.get("extra") or {})
        fields = dict(self.extra or {})
        fields.update(outer.get("extra") or {})
        outer["extra"] = fields
        kwargs["extra"] = outer
        return msg, kwargs


_setup_lock = threading.Lock()


def _parse_level(name: Optional[str]) -> int:
    lvl = logging.getLevelName((name or "INFO").upper())
    return lvl if isinstance(lvl, int) else logging.INFO


def setup_logging(level: Optional[str] = None, force: bool = False) -> None:
    """
    Configure the root logger once with JSON lines on stdout.
    Level precedence: explicit `level`, then env LOG_LEVEL, then INFO.
    `force=True` re-applies on an already configured root (the CLI and the
    server call it after reading the YAML config).
    """
    with _setup_lock:
        root = logging.getLogger()
        if getattr(root, "_heatmap_configured", False) and not force:
            return

        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JsonFormatter())

        root.handlers.clear()
        root.addHandler(handler)
        root.setLevel(_parse_level(level or os.environ.get("LOG_LEVEL")))
        root._heatmap_configured = True  # type: ignore[attr-defined]


def get_logger(name: str, **context: Any) -> Union[logging.Logger, ContextAdapter]:
    """
    Module logger; configures the root on first use. With keyword context,
    returns a ContextAdapter that stamps those fields on every record.
    """
    setup_logging()
    logger = logging.getLogger(name)
    if context:
        return ContextAdapter(logger, context)
    return logger
