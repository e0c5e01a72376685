"""JSONL trace of rate resolution and hidden dependency expansion."""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from ..config import TRACE_FILE


@dataclass
class TraceLogger:
    """Append-only JSONL trace writer; safe to share between worker threads."""

    path: Path
    enabled: bool = True
    _initialized: bool = field(default=False, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def _ensure_parent(self) -> None:
        if self._initialized:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._initialized = True

    def log(
        self,
        phase: str,
        payload: Dict[str, Any],
        *,
        resource_id: Optional[str] = None,
        resource_type: Optional[str] = None,
    ) -> None:
        if not self.enabled:
            return

        event: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "phase": phase,
            "payload": payload,
        }
        if resource_id:
            event["resource_id"] = resource_id
        if resource_type:
            event["resource_type"] = resource_type

        line = json.dumps(event, ensure_ascii=False, default=str) + "\n"
        with self._lock:
            self._ensure_parent()
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(line)


def build_trace_logger(path: Path | str, enabled: bool = True) -> TraceLogger:
    return TraceLogger(Path(path), enabled=enabled)


def trace_from_config() -> Optional[TraceLogger]:
    """Trace logger for COST_ENGINE_TRACE_FILE, or None when tracing is off."""
    if not TRACE_FILE:
        return None
    return build_trace_logger(TRACE_FILE)


__all__ = ["TraceLogger", "build_trace_logger", "trace_from_config"]
