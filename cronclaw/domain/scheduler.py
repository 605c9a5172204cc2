"""Cron scheduling engine — one cancellable asyncio task per enabled job.

Jobs live in a JobStorePort (source of truth across restarts); this module
keeps the in-memory side consistent with it:

    Loaded/Added -> Running -> [Fired -> Running]* -> Cancelled | Exhausted

Fire events are fanned out through a shared CallbackRegistry.
"""

from __future__ import annotations

import asyncio
import sys
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Awaitable, Callable, Dict, List, Optional

from croniter import CroniterBadDateError, croniter
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from cronclaw.domain.callbacks import CallbackRegistry, SendCallback
from cronclaw.domain.models import Job

if TYPE_CHECKING:
    from cronclaw.ports.outbound import JobStorePort

CRON_FIELDS = "minute hour day month weekday"

NextFire = Callable[[str, datetime, str], Optional[datetime]]


def _log(msg: str):
    print(msg, file=sys.stderr)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InvalidScheduleError(ValueError):
    """Cron expression rejected before any store mutation."""


def validate_cron(schedule: str) -> None:
    """Raise InvalidScheduleError unless ``schedule`` is a valid 5-field cron string."""
    if len(schedule.split()) != 5:
        raise InvalidScheduleError(
            f"Invalid cron format '{schedule}' - needs 5 fields ({CRON_FIELDS})"
        )
    if not croniter.is_valid(schedule):
        raise InvalidScheduleError(f"Invalid cron expression '{schedule}'")


def next_fire_time(schedule: str, after: datetime, tz: str = "UTC") -> Optional[datetime]:
    """Next occurrence of ``schedule`` strictly after ``after``, in UTC.

    The expression is evaluated in ``tz`` so "0 9 * * *" means 09:00 local.
    Returns None when the expression has no future occurrence.
    """
    base = after.astimezone(ZoneInfo(tz))
    try:
        nxt = croniter(schedule, base).get_next(datetime)
    except CroniterBadDateError:
        return None
    return nxt.astimezone(timezone.utc)


class ScheduledTimer:
    """Cancellable sleep/fire loop bound to one job id.

    ``next_wake(after)`` returns the next due instant or None once the
    schedule is exhausted; ``fire()`` is awaited on every due instant.
    ``on_exit(timer, exhausted)`` runs when the loop ends on its own; it is
    not called when the timer is cancelled.
    """

    def __init__(
        self,
        job_id: int,
        next_wake: Callable[[datetime], Optional[datetime]],
        fire: Callable[[], Awaitable[None]],
        on_exit: Optional[Callable[["ScheduledTimer", bool], None]] = None,
        first_due: Optional[datetime] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.job_id = job_id
        self._next_wake = next_wake
        self._fire = fire
        self._on_exit = on_exit
        self._first_due = first_due
        self._clock = clock
        self._task: Optional[asyncio.Task] = None
        self.fire_count = 0

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name=f"cron-job-{self.job_id}")

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def done(self) -> bool:
        return self._task is not None and self._task.done()

    async def wait(self) -> None:
        """Wait for the loop to finish (exhausted, failed or cancelled)."""
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            if not self._task.cancelled():
                raise

    async def _run(self):
        exhausted = False
        try:
            due = self._first_due or self._next_wake(self._clock())
            while due is not None:
                delay = (due - self._clock()).total_seconds()
                if delay > 0:
                    await asyncio.sleep(delay)
                await self._fire()
                self.fire_count += 1
                # Never hand back the occurrence that just fired
                due = self._next_wake(max(self._clock(), due))
            exhausted = True
        except Exception as e:
            _log(f"[scheduler] job #{self.job_id} timer failed: {e}")
        if self._on_exit:
            self._on_exit(self, exhausted)


class CronScheduler:
    """Owns the live timers and keeps them in step with the job store."""

    def __init__(
        self,
        store: JobStorePort,
        registry: Optional[CallbackRegistry] = None,
        tz: str = "UTC",
        next_fire: NextFire = next_fire_time,
        clock: Callable[[], datetime] = _utcnow,
        disable_exhausted: bool = True,
    ):
        try:
            ZoneInfo(tz)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Invalid timezone: {tz!r}")
        self._store = store
        self._registry = registry if registry is not None else CallbackRegistry()
        self._tz = tz
        self._next_fire = next_fire
        self._clock = clock
        self._disable_exhausted = disable_exhausted
        self._timers: Dict[int, ScheduledTimer] = {}

    @property
    def registry(self) -> CallbackRegistry:
        return self._registry

    @property
    def timezone(self) -> str:
        return self._tz

    # -- callback registration --

    def set_send_callback(self, callback: SendCallback) -> None:
        """Replace every consumer with ``callback``."""
        self._registry.set_exclusive(callback)

    def add_send_callback(self, callback: SendCallback) -> bool:
        """Append ``callback`` unless the same object is already registered."""
        return self._registry.add(callback)

    # -- job lifecycle --

    async def load_jobs(self) -> int:
        """Arm every enabled job in the store. Returns the number armed.

        A job whose schedule no longer parses is logged and skipped.
        """
        jobs = self._store.list_enabled()
        armed = 0
        for job in jobs:
            try:
                if self._schedule_job(job):
                    armed += 1
            except Exception as e:
                _log(f"[scheduler] failed to load job #{job.id}: {e}")
        _log(f"[scheduler] loaded {armed}/{len(jobs)} cron job(s) from store")
        return armed

    async def add_job(self, schedule: str, task: str, message: str) -> int:
        """Validate, persist and arm a new job. Returns the store-assigned id.

        A schedule with no future occurrence (e.g. "0 0 30 2 *") is rejected
        with InvalidScheduleError before anything is stored.
        """
        schedule = schedule.strip()
        validate_cron(schedule)
        first_due = self._next_fire(schedule, self._clock(), self._tz)
        if first_due is None:
            raise InvalidScheduleError(f"Cron expression '{schedule}' never fires")
        job_id = self._store.add(schedule, task, message)
        job = Job(id=job_id, schedule=schedule, task=task, message=message)
        self._schedule_job(job, first_due)
        _log(f"[scheduler] added cron job #{job_id}: {task!r} ({schedule})")
        return job_id

    async def cancel_job(self, job_id: int) -> bool:
        """Disable the job in the store and abort its timer.

        Returns the store's answer: False when the job was missing or
        already disabled.
        """
        found = self._store.disable(job_id)
        timer = self._timers.pop(job_id, None)
        if timer is not None:
            timer.cancel()
        if found:
            _log(f"[scheduler] cancelled cron job #{job_id}")
        return found

    def list_jobs(self) -> List[Job]:
        return self._store.list_enabled()

    def active_job_ids(self) -> List[int]:
        return sorted(self._timers)

    def is_running(self, job_id: int) -> bool:
        timer = self._timers.get(job_id)
        return timer is not None and not timer.done()

    def timer(self, job_id: int) -> Optional[ScheduledTimer]:
        return self._timers.get(job_id)

    def stop(self) -> None:
        """Abort every live timer. Store records are left untouched."""
        timers = list(self._timers.values())
        self._timers.clear()
        for timer in timers:
            timer.cancel()
        if timers:
            _log(f"[scheduler] stopped {len(timers)} timer(s)")

    # -- internals --

    def _schedule_job(self, job: Job, first_due: Optional[datetime] = None) -> bool:
        """Arm a timer for ``job``. Returns False if the schedule is exhausted."""
        validate_cron(job.schedule)

        def next_wake(after: datetime) -> Optional[datetime]:
            return self._next_fire(job.schedule, after, self._tz)

        async def fire():
            _log(f"[scheduler] cron job #{job.id} triggered: {job.task!r}")
            await self._registry.dispatch(job.message, source=f"cron #{job.id}")

        if first_due is None:
            first_due = next_wake(self._clock())
        previous = self._timers.pop(job.id, None)
        if previous is not None:
            previous.cancel()
        if first_due is None:
            _log(f"[scheduler] cron job #{job.id} has no future fire time")
            self._handle_exhausted(job.id)
            return False

        timer = ScheduledTimer(
            job.id,
            next_wake=next_wake,
            fire=fire,
            on_exit=self._on_timer_exit,
            first_due=first_due,
            clock=self._clock,
        )
        self._timers[job.id] = timer
        timer.start()
        return True

    def _on_timer_exit(self, timer: ScheduledTimer, exhausted: bool) -> None:
        if self._timers.get(timer.job_id) is timer:
            del self._timers[timer.job_id]
        if exhausted:
            _log(f"[scheduler] cron job #{timer.job_id} exhausted after {timer.fire_count} fire(s)")
            self._handle_exhausted(timer.job_id)

    def _handle_exhausted(self, job_id: int) -> None:
        if not self._disable_exhausted:
            return
        try:
            self._store.disable(job_id)
        except Exception as e:
            _log(f"[scheduler] failed to disable exhausted job #{job_id}: {e}")
