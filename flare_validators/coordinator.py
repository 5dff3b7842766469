"""Cache coordinator — owns the current snapshot and decides when to refresh.

States::

    EMPTY       no snapshot yet
    READY       a snapshot is being served
    REFRESHING  an upstream fetch is in flight (entered from EMPTY or READY)

Refreshes are single-flight: a timer tick or forced refresh that arrives
while one is already running joins it and receives the same
``RefreshOutcome``.  A failed refresh leaves the previous snapshot in place
(serve-stale) and is recorded for ``status()``.  Readers call
``current_snapshot()``, which never waits on a refresh.
"""

from __future__ import annotations

import asyncio
import enum
import threading
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

import structlog

from flare_validators.flare_client import FetchError, TransientFetchError
from flare_validators.models import RawValidatorRecord, Snapshot
from flare_validators.snapshot import build

log = structlog.get_logger(__name__)


class CoordinatorState(enum.Enum):
    EMPTY = "EMPTY"
    READY = "READY"
    REFRESHING = "REFRESHING"


class ValidatorSource(Protocol):
    def fetch(self) -> Awaitable[Sequence[RawValidatorRecord]]: ...


@dataclass(frozen=True)
class RefreshOutcome:
    """Result shared by the caller that started a refresh and every joiner.

    ``snapshot`` is what readers see once the refresh settles: the new
    snapshot on success, the previous one (or ``None``) on failure.
    """

    ok: bool
    snapshot: Snapshot | None
    error: FetchError | None = None


@dataclass(frozen=True)
class SnapshotReading:
    """A snapshot together with its age and staleness, taken in one read."""

    snapshot: Snapshot | None
    age_seconds: float | None
    stale: bool


@dataclass(frozen=True)
class CoordinatorStatus:
    state: CoordinatorState
    taken_at: datetime | None
    age_seconds: float | None
    stale: bool
    last_error: str | None
    last_attempt_at: datetime | None
    last_success_at: datetime | None
    consecutive_failures: int
    refresh_count: int
    validator_count: int


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CacheCoordinator:
    """Single-flight refresh coordinator with a background timer.

    Parameters
    ----------
    source:
        Anything with an async ``fetch()`` returning raw records, normally a
        ``FlareClient``.
    refresh_interval:
        Seconds between timer-driven refreshes.  A forced refresh resets the
        countdown.
    fetch_timeout:
        Deadline in seconds for one upstream fetch.  Exceeding it counts as a
        transient failure.
    clock:
        Returns the current UTC time.  Injected for tests.
    """

    def __init__(
        self,
        source: ValidatorSource,
        refresh_interval: float,
        fetch_timeout: float,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if refresh_interval <= 0:
            raise ValueError("refresh_interval must be positive")
        if fetch_timeout <= 0:
            raise ValueError("fetch_timeout must be positive")

        self._source = source
        self.refresh_interval = refresh_interval
        self.fetch_timeout = fetch_timeout
        self._clock = clock

        # Guards every field below.  Never held across an await.
        self._lock = threading.Lock()
        self._snapshot: Snapshot | None = None
        self._in_flight: asyncio.Future[RefreshOutcome] | None = None
        self._last_error: FetchError | None = None
        self._last_attempt_at: datetime | None = None
        self._last_success_at: datetime | None = None
        self._consecutive_failures = 0
        self._refresh_count = 0

        self._refresh_task: asyncio.Task | None = None
        self._timer_task: asyncio.Task | None = None
        self._stop_event = asyncio.Event()

    # -- Read path ---------------------------------------------------------

    def current_snapshot(self) -> Snapshot | None:
        """Return the latest completed snapshot, or ``None`` before the first success."""
        with self._lock:
            return self._snapshot

    @property
    def state(self) -> CoordinatorState:
        with self._lock:
            return self._state_locked()

    def _state_locked(self) -> CoordinatorState:
        if self._in_flight is not None:
            return CoordinatorState.REFRESHING
        if self._snapshot is not None:
            return CoordinatorState.READY
        return CoordinatorState.EMPTY

    def read_snapshot(self) -> SnapshotReading:
        """Current snapshot with its age and ``stale`` flag from a single locked read."""
        now = self._clock()
        with self._lock:
            snapshot = self._snapshot
            return SnapshotReading(
                snapshot=snapshot,
                age_seconds=snapshot.age_seconds(now) if snapshot else None,
                stale=snapshot is not None and self._last_error is not None,
            )

    def status(self) -> CoordinatorStatus:
        """Point-in-time view of the cache, including snapshot age."""
        now = self._clock()
        with self._lock:
            snapshot = self._snapshot
            return CoordinatorStatus(
                state=self._state_locked(),
                taken_at=snapshot.taken_at if snapshot else None,
                age_seconds=snapshot.age_seconds(now) if snapshot else None,
                stale=snapshot is not None and self._last_error is not None,
                last_error=str(self._last_error) if self._last_error else None,
                last_attempt_at=self._last_attempt_at,
                last_success_at=self._last_success_at,
                consecutive_failures=self._consecutive_failures,
                refresh_count=self._refresh_count,
                validator_count=len(snapshot.validators) if snapshot else 0,
            )

    # -- Refresh path ------------------------------------------------------

    async def refresh(self, reason: str = "forced") -> RefreshOutcome:
        """Start a refresh, or join the one already in flight, and await its outcome.

        Never raises for upstream or build failures; those are reported in
        the returned outcome.  Cancelling the awaiting caller does not
        cancel the shared fetch.
        """
        with self._lock:
            future = self._in_flight
            joined = future is not None
            if future is None:
                future = asyncio.get_running_loop().create_future()
                self._in_flight = future

        if joined:
            log.info("refresh_joined", reason=reason)
        else:
            self._refresh_task = asyncio.create_task(self._run_refresh(future, reason))

        return await asyncio.shield(future)

    async def _run_refresh(self, future: asyncio.Future[RefreshOutcome], reason: str) -> None:
        started = self._clock()
        with self._lock:
            had_snapshot = self._snapshot is not None
            self._last_attempt_at = started
        log.info("refresh_started", reason=reason, had_snapshot=had_snapshot)

        error: FetchError | None = None
        new_snapshot: Snapshot | None = None
        try:
            records = await asyncio.wait_for(self._source.fetch(), timeout=self.fetch_timeout)
            new_snapshot = build(records, self._clock())
        except asyncio.TimeoutError:
            error = TransientFetchError(f"Upstream fetch exceeded {self.fetch_timeout:.1f}s deadline")
        except FetchError as exc:
            error = exc
        except asyncio.CancelledError:
            with self._lock:
                self._in_flight = None
            future.cancel()
            raise
        except Exception as exc:
            log.exception("refresh_unexpected_error", reason=reason)
            error = FetchError(f"Unexpected refresh failure: {exc!r}")

        with self._lock:
            self._refresh_count += 1
            if new_snapshot is not None:
                self._snapshot = new_snapshot
                self._last_error = None
                self._last_success_at = new_snapshot.taken_at
                self._consecutive_failures = 0
            else:
                self._last_error = error
                self._consecutive_failures += 1
            outcome = RefreshOutcome(ok=new_snapshot is not None, snapshot=self._snapshot, error=error)
            failures = self._consecutive_failures
            self._in_flight = None

        elapsed = (self._clock() - started).total_seconds()
        if error is None:
            log.info(
                "refresh_succeeded",
                reason=reason,
                validators=len(new_snapshot.validators),
                elapsed_seconds=round(elapsed, 3),
            )
        elif error.retryable:
            log.warning(
                "refresh_failed",
                reason=reason,
                error=str(error),
                retryable=True,
                serving_stale=outcome.snapshot is not None,
                consecutive_failures=failures,
            )
        else:
            log.error(
                "refresh_failed",
                reason=reason,
                error=str(error),
                retryable=False,
                serving_stale=outcome.snapshot is not None,
                consecutive_failures=failures,
            )

        future.set_result(outcome)

    # -- Timer -------------------------------------------------------------

    def _seconds_until_due(self) -> float:
        with self._lock:
            last = self._last_attempt_at
        if last is None:
            return 0.0
        elapsed = (self._clock() - last).total_seconds()
        return max(0.0, self.refresh_interval - elapsed)

    async def _run_timer(self) -> None:
        """Refresh on every interval until ``stop()``.  The loop never dies on error."""
        log.info("refresh_loop_started", interval_seconds=self.refresh_interval)

        while not self._stop_event.is_set():
            delay = self._seconds_until_due()
            if delay > 0:
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
                    break
                except asyncio.TimeoutError:
                    pass
                # A forced refresh may have reset the countdown meanwhile.
                if self._seconds_until_due() > 0:
                    continue

            try:
                await self.refresh(reason="timer")
            except asyncio.CancelledError:
                raise
            except Exception:
                log.exception("refresh_loop_error")

        log.info("refresh_loop_stopped")

    def start(self) -> None:
        """Launch the background timer.  The first refresh runs immediately."""
        if self._timer_task is not None and not self._timer_task.done():
            return
        self._stop_event.clear()
        self._timer_task = asyncio.create_task(self._run_timer())

    async def stop(self) -> None:
        """Stop the timer and cancel any refresh still in flight."""
        self._stop_event.set()
        for task in (self._timer_task, self._refresh_task):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._timer_task = None
        self._refresh_task = None

        # A refresh task cancelled before its first step never reaches its
        # own cleanup, so release the single-flight marker here.
        with self._lock:
            future = self._in_flight
            self._in_flight = None
        if future is not None and not future.done():
            future.cancel()
