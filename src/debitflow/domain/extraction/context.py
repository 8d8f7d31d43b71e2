"""Immutable per-request extraction context.

Stages never mutate shared state: each one receives the current context and
returns a new one with its step appended. The final context is stored in the
extraction log so a run can be replayed step by step.
"""

import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Optional, Tuple


@dataclass(frozen=True)
class ContextEntry:
    """One recorded pipeline step."""

    step: str
    status: str
    elapsed_ms: int
    details: Tuple[Tuple[str, Any], ...] = ()

    def to_dict(self) -> dict:
        return {
            "step": self.step,
            "status": self.status,
            "elapsed_ms": self.elapsed_ms,
            **{key: value for key, value in self.details},
        }


@dataclass(frozen=True)
class ExtractionContext:
    """Accumulates pipeline steps for one document.

    Attributes:
        document_name: Uploaded filename
        started_at: Wall-clock start (UTC)
        started_monotonic: perf_counter() value at start, used for durations
        entries: Recorded steps in order
    """

    document_name: str
    started_at: datetime
    started_monotonic: float
    entries: Tuple[ContextEntry, ...] = field(default_factory=tuple)

    @classmethod
    def start(cls, document_name: str, clock=time.perf_counter) -> "ExtractionContext":
        return cls(
            document_name=document_name,
            started_at=datetime.now(timezone.utc),
            started_monotonic=clock(),
        )

    def elapsed_ms(self, clock=time.perf_counter) -> int:
        return int((clock() - self.started_monotonic) * 1000)

    def record(self, step: str, status: str = "ok", clock=time.perf_counter, **details: Any) -> "ExtractionContext":
        """Return a new context with one more step.

        Args:
            step: Stage name (e.g. "layout", "model_call", "reconcile")
            status: "ok", "failed", "skipped" ...
            **details: JSON-serialisable step data

        Returns:
            ExtractionContext: Copy with the entry appended
        """
        entry = ContextEntry(
            step=step,
            status=status,
            elapsed_ms=self.elapsed_ms(clock),
            details=tuple(sorted(details.items())),
        )
        return replace(self, entries=self.entries + (entry,))

    def last(self, step: str) -> Optional[ContextEntry]:
        for entry in reversed(self.entries):
            if entry.step == step:
                return entry
        return None

    def to_list(self) -> list:
        return [entry.to_dict() for entry in self.entries]
