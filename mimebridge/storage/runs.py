from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from threading import Lock
from typing import Any

from mimebridge.models import utc_now_iso

_LEVEL_ORDER = {"debug": 10, "info": 20, "warning": 30, "error": 40}


@dataclass
class StructuredLogger:
    path: Path
    run_id: str
    min_level: str = "info"

    def __post_init__(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = Lock()
        self._threshold = _LEVEL_ORDER[self.min_level.lower()]

    def log(
        self,
        *,
        level: str,
        event: str,
        stage: str,
        status: str = "ok",
        error_type: str | None = None,
        error_message: str | None = None,
        **extra: Any,
    ) -> None:
        if _LEVEL_ORDER[level.lower()] < self._threshold:
            return
        payload: dict[str, Any] = {
            "timestamp": utc_now_iso(),
            "level": level.lower(),
            "event": event,
            "run_id": self.run_id,
            "stage": stage,
            "status": status,
            "error_type": error_type,
            "error_message": error_message,
        }
        payload.update(extra)
        with self._lock:
            with self.path.open("a", encoding="utf-8") as f:
                f.write(json.dumps(payload, ensure_ascii=True) + "\n")

    def debug(self, event: str, stage: str, **kwargs: Any) -> None:
        self.log(level="debug", event=event, stage=stage, **kwargs)

    def info(self, event: str, stage: str, **kwargs: Any) -> None:
        self.log(level="info", event=event, stage=stage, **kwargs)

    def warning(self, event: str, stage: str, **kwargs: Any) -> None:
        self.log(level="warning", event=event, stage=stage, **kwargs)

    def error(self, event: str, stage: str, **kwargs: Any) -> None:
        self.log(level="error", event=event, stage=stage, status="error", **kwargs)


def read_events(path: Path) -> list[dict[str, Any]]:
    if not path.exists():
        return []
    with path.open("r", encoding="utf-8") as f:
        return [json.loads(line) for line in f if line.strip()]
