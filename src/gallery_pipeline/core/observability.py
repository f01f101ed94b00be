"""Observability utilities: per-asset log context and per-asset timings."""

import uuid
from collections import Counter
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from .models import AssetResult, AssetState


@dataclass(frozen=True)
class LogContext:
    """Correlation data attached to every log line of one asset's pass.

    Derived contexts share the ``correlation_id`` so all lines of a pass can
    be grepped together, also when assets interleave across workers.
    """

    correlation_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    operation: str = ""
    asset: str = ""
    backend: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    def with_operation(self, operation: str) -> "LogContext":
        return replace(self, operation=operation, metadata=dict(self.metadata))

    def with_backend(self, backend: str) -> "LogContext":
        return replace(self, backend=backend, metadata=dict(self.metadata))

    def with_metadata(self, **kwargs) -> "LogContext":
        return replace(self, metadata={**self.metadata, **kwargs})


def format_message(message: str, context: Optional[LogContext] = None, **kwargs) -> str:
    """Render ``[operation] [id] asset: message (backend=..., k=v)``."""
    extras: Dict[str, Any] = {}
    if context is not None:
        if context.asset:
            message = f"{context.asset}: {message}"
        message = f"[{context.correlation_id}] {message}"
        if context.operation:
            message = f"[{context.operation}] {message}"
        if context.backend:
            extras["backend"] = context.backend
        extras.update(context.metadata)
    extras.update(kwargs)

    if not extras:
        return message
    return f"{message} ({', '.join(f'{k}={v}' for k, v in extras.items())})"


@dataclass
class AssetTiming:
    """Time one asset spent in its worker, and how it ended."""

    relative_path: str
    duration: float
    state: AssetState
    backend: Optional[str] = None
    error_type: Optional[str] = None

    @property
    def duration_ms(self) -> float:
        return self.duration * 1000


class MetricsCollector:
    """Collects one ``AssetTiming`` per processed asset.

    Timings come from the returned ``AssetResult``, so assets processed in
    worker processes are counted like any other.
    """

    def __init__(self):
        self._timings: List[AssetTiming] = []

    def record(self, result: AssetResult) -> AssetTiming:
        timing = AssetTiming(
            relative_path=result.relative_path,
            duration=result.processing_time,
            state=result.state,
            backend=result.backend or None,
            error_type=result.error_type or None,
        )
        self._timings.append(timing)
        return timing

    def get_timings(self, state: Optional[AssetState] = None) -> List[AssetTiming]:
        """Get recorded timings, optionally only those ending in ``state``."""
        if state is not None:
            return [t for t in self._timings if t.state == state]
        return self._timings.copy()

    def get_summary(self) -> Dict[str, Any]:
        """Counts per final state and backend, plus duration statistics."""
        if not self._timings:
            return {}

        durations = [t.duration for t in self._timings]
        states = Counter(t.state.value for t in self._timings)
        backends = Counter(t.backend for t in self._timings if t.backend)

        return {
            "total_assets": len(self._timings),
            "states": dict(states),
            "backends": dict(backends),
            "avg_duration": sum(durations) / len(durations),
            "max_duration": max(durations),
            "total_duration": sum(durations),
        }

    def clear(self):
        self._timings.clear()
