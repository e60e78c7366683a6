"""
TraceContext - per-request tracing.

The current trace lives in a ContextVar so the logger can stamp every record
with its trace_id without passing it around.
"""

import time
import uuid
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

_current_trace: ContextVar[Optional["TraceContext"]] = ContextVar("current_trace", default=None)


@dataclass
class TraceEvent:
    """Single stage within a trace"""
    stage: str                    # t0_request, t1_build_complete, t2_response
    timestamp_mono: float
    timestamp_wall: str
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def now(cls, stage: str, **data) -> "TraceEvent":
        return cls(
            stage=stage,
            timestamp_mono=time.monotonic(),
            timestamp_wall=datetime.now(timezone.utc).isoformat(),
            data=data,
        )


@dataclass
class TraceContext:
    """Trace of one inbound action request"""
    trace_id: str
    method: str
    path: str
    action: Optional[str] = None
    account: Optional[str] = None
    events: list = field(default_factory=list)

    t0: Optional[float] = None    # request received
    t1: Optional[float] = None    # transaction built
    t2: Optional[float] = None    # response ready

    status: Optional[int] = None

    @classmethod
    def start(cls, method: str, path: str) -> "TraceContext":
        """Create a trace and bind it to the current context"""
        ctx = cls(
            trace_id=str(uuid.uuid4())[:12],
            method=method,
            path=path,
            t0=time.monotonic(),
        )
        ctx.add_event("t0_request", method=method, path=path)
        _current_trace.set(ctx)
        return ctx

    def add_event(self, stage: str, **data) -> None:
        self.events.append(TraceEvent.now(stage, **data))

    def mark_build_complete(self, action: str, account: str, **details) -> None:
        self.t1 = time.monotonic()
        self.action = action
        self.account = account
        self.add_event("t1_build_complete", action=action, **details)

    def mark_response(self, status: int) -> None:
        self.t2 = time.monotonic()
        self.status = status
        self.add_event("t2_response", status=status)

    def finish(self) -> None:
        """Unbind the trace from the current context"""
        _current_trace.set(None)

    @property
    def build_latency_ms(self) -> Optional[float]:
        if self.t0 and self.t1:
            return (self.t1 - self.t0) * 1000
        return None

    @property
    def total_latency_ms(self) -> Optional[float]:
        if self.t0 and self.t2:
            return (self.t2 - self.t0) * 1000
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trace_id": self.trace_id,
            "method": self.method,
            "path": self.path,
            "action": self.action,
            "account": self.account,
            "status": self.status,
            "latency": {
                "build_ms": self.build_latency_ms,
                "total_ms": self.total_latency_ms,
            },
            "events": [
                {"stage": e.stage, "timestamp": e.timestamp_wall, "data": e.data}
                for e in self.events
            ],
        }


def get_current_trace() -> Optional[TraceContext]:
    return _current_trace.get()


def get_trace_id() -> Optional[str]:
    """Current trace_id, for the logger"""
    ctx = _current_trace.get()
    return ctx.trace_id if ctx else None
