from __future__ import annotations

import json
import logging
import sys
import time
from dataclasses import dataclass, field
from importlib import import_module
from typing import Any, Dict, List

from arenacontent.core.runtime.settings import Settings

log = logging.getLogger("arenacontent.core.observability")


class MetricsSink:
    """Optional metrics sink.

    Users can provide a module via ARENA_METRICS_MODULE exposing METRICS: MetricsSink.
    This gives production users a stable hook point without forcing a
    dependency on any metrics stack.
    """

    def on_resolve_start(self, *, source: str) -> None:  # pragma: no cover
        return None

    def on_backend_end(self, *, source: str, backend: str, outcome: str, duration_ms: int) -> None:  # pragma: no cover
        return None

    def on_resolve_end(self, *, source: str, summary: dict) -> None:  # pragma: no cover
        return None


def load_metrics_sink(settings: Settings) -> MetricsSink:
    mod = settings.metrics_module
    if not mod:
        return MetricsSink()
    m = import_module(mod)
    sink = getattr(m, "METRICS", None)
    if sink is None:
        raise AttributeError(f"{mod} must expose METRICS")
    return sink


def _now_ms() -> int:
    return int(time.time() * 1000)


def _dur_ms(t0: float, t1: float) -> int:
    return int((t1 - t0) * 1000)


def log_event(logger: logging.Logger, *, settings: Settings, level: int, event: str, **fields: Any) -> None:
    """Emit an event log.

    - text format: one-liner `event key=value ...`
    - json format: one JSON object per line
    """
    if settings.log_format.lower() == "json":
        payload = {"ts_ms": _now_ms(), "event": event, **fields}
        logger.log(level, json.dumps(payload, ensure_ascii=False, default=str))
        return

    # text
    parts = [event]
    for k, v in fields.items():
        parts.append(f"{k}={v}")
    logger.log(level, " ".join(parts))


def configure_logging(settings: Settings) -> None:
    """Root handler for the CLI and server entrypoints (library code never calls this)."""
    logging.basicConfig(
        level=getattr(logging, str(settings.log_level).upper(), logging.INFO),
        stream=sys.stderr,
        format="%(message)s" if settings.log_format.lower() == "json" else "%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@dataclass
class BackendAttempt:
    backend: str
    outcome: str
    duration_ms: int
    detail: str | None = None


@dataclass
class ResolveSummary:
    source: str
    backend: str | None
    duration_ms: int
    attempts: List[BackendAttempt] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "source": self.source,
            "backend": self.backend,
            "duration_ms": self.duration_ms,
            "attempts": [
                {
                    "backend": a.backend,
                    "outcome": a.outcome,
                    "duration_ms": a.duration_ms,
                    "detail": a.detail,
                }
                for a in self.attempts
            ],
        }


class ResolveObserver:
    """Collects per-backend timings for one resolution and emits a summary."""

    def __init__(self, *, settings: Settings, logger: logging.Logger, source: str):
        self.settings = settings
        self.logger = logger
        self.source = source
        self._t0: float | None = None
        self._backend_t0: Dict[str, float] = {}
        self._attempts: List[BackendAttempt] = []
        try:
            self.metrics = load_metrics_sink(settings)
        except Exception:
            log.warning("failed loading metrics module %s; metrics disabled", settings.metrics_module, exc_info=True)
            self.metrics = MetricsSink()

    def resolve_start(self) -> None:
        self._t0 = time.perf_counter()
        try:
            self.metrics.on_resolve_start(source=self.source)
        except Exception:
            # Metrics must never break a request.
            log.warning("ResolveObserver.resolve_start failed", exc_info=True)

    def backend_start(self, backend: str) -> None:
        self._backend_t0[backend] = time.perf_counter()

    def backend_end(self, backend: str, *, outcome: str, detail: str | None = None) -> None:
        t0 = self._backend_t0.pop(backend, None)
        dur = _dur_ms(t0, time.perf_counter()) if t0 is not None else 0
        self._attempts.append(BackendAttempt(backend=backend, outcome=outcome, duration_ms=dur, detail=detail))
        level = logging.WARNING if outcome == "error" else logging.DEBUG
        log_event(self.logger, settings=self.settings, level=level, event="backend_attempt", source=self.source, backend=backend, outcome=outcome, duration_ms=dur, detail=detail)
        try:
            self.metrics.on_backend_end(source=self.source, backend=backend, outcome=outcome, duration_ms=dur)
        except Exception:
            log.warning("ResolveObserver.backend_end failed", exc_info=True)

    def resolve_end(self, *, backend: str | None) -> ResolveSummary:
        dur = _dur_ms(self._t0, time.perf_counter()) if self._t0 is not None else 0
        summary = ResolveSummary(source=self.source, backend=backend, duration_ms=dur, attempts=list(self._attempts))
        log_event(self.logger, settings=self.settings, level=logging.INFO, event="resolve_summary", **summary.as_dict())
        try:
            self.metrics.on_resolve_end(source=self.source, summary=summary.as_dict())
        except Exception:
            log.warning("ResolveObserver.resolve_end failed", exc_info=True)
        return summary
