"""Domain Events raised at each request-governance decision point.

Examples include events for when calls are deferred by the rate limiter,
retried after throttling, batched, queued or downloaded.
"""

from dataclasses import dataclass, field
import time
from typing import Optional


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


# --- Rate limiting / retry events ---

@dataclass
class RequestDeferred(DomainEvent):
    """Event triggered when the rate limiter suspends a caller for quota."""
    wait_time_seconds: float
    requests_in_window: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class ThrottleCooldown(DomainEvent):
    """Event triggered when a call is delayed proactively after recent throttling."""
    url: str
    delay_seconds: float
    throttle_count: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class RetryScheduled(DomainEvent):
    """Event triggered when a throttled call is scheduled for another attempt."""
    url: str
    attempt_number: int
    delay_seconds: float
    retry_after_seconds: Optional[float] = None  # Server-provided delay, if any
    timestamp: float = field(default_factory=time.time)


@dataclass
class RateLimitExhausted(DomainEvent):
    """Event triggered when the retry ceiling is reached."""
    url: str
    attempts: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class RateLimitTelemetry(DomainEvent):
    """Event carrying rate-limit headers observed on a response."""
    url: str
    remaining: Optional[str] = None
    reset: Optional[str] = None
    timestamp: float = field(default_factory=time.time)


# --- Batch resolution events ---

@dataclass
class BatchStarted(DomainEvent):
    batch_index: int
    batch_count: int
    size: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class BatchCompleted(DomainEvent):
    batch_index: int
    batch_count: int
    resolved: int  # Entries with a usable URL
    timestamp: float = field(default_factory=time.time)


# --- Queue events ---

@dataclass
class TaskAdmitted(DomainEvent):
    """Event triggered when the queue starts running a task."""
    task_id: int
    running: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class TaskCompleted(DomainEvent):
    """Event triggered when a queued task settles (either way)."""
    task_id: int
    running: int
    succeeded: bool
    timestamp: float = field(default_factory=time.time)


# --- Download events ---

@dataclass
class NodeUnexportable(DomainEvent):
    node_id: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class DownloadSucceeded(DomainEvent):
    node_id: str
    file_path: str
    size: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class DownloadFailed(DomainEvent):
    node_id: str
    error_message: str
    timestamp: float = field(default_factory=time.time)
