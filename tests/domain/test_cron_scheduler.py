"""Tests for CronScheduler — validation, arming, fan-out, cancellation, exhaustion."""

import asyncio
import tempfile
from datetime import datetime, timedelta, timezone

import pytest

from cronclaw.adapters.storage import JsonJobStore, JsonStorage
from cronclaw.domain.scheduler import (
    CronScheduler,
    InvalidScheduleError,
    next_fire_time,
    validate_cron,
)


@pytest.fixture
def tmp_dir():
    with tempfile.TemporaryDirectory() as d:
        yield d


@pytest.fixture
def store(tmp_dir):
    return JsonJobStore(JsonStorage(tmp_dir))


def limited_next_fire(occurrences: int, step_ms: int = 10):
    """Fake schedule: ``occurrences`` fire times a few ms apart, then exhausted."""
    remaining = [occurrences]

    def _next(schedule, after, tz):
        if remaining[0] <= 0:
            return None
        remaining[0] -= 1
        return after + timedelta(milliseconds=step_ms)

    return _next


# ---------------------------------------------------------------------------
# Cron helpers
# ---------------------------------------------------------------------------

class TestValidateCron:
    def test_valid(self):
        validate_cron("0 9 * * *")
        validate_cron("*/5 * * * 1-5")

    @pytest.mark.parametrize("expr", ["0 9 * *", "0 9 * * * *", ""])
    def test_wrong_field_count(self, expr):
        with pytest.raises(InvalidScheduleError, match="needs 5 fields"):
            validate_cron(expr)

    def test_out_of_range(self):
        with pytest.raises(InvalidScheduleError):
            validate_cron("61 * * * *")

    def test_is_value_error(self):
        with pytest.raises(ValueError):
            validate_cron("nonsense")


class TestNextFireTime:
    def test_utc(self):
        after = datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)
        assert next_fire_time("0 9 * * *", after) == datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)

    def test_strictly_after(self):
        after = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)
        assert next_fire_time("0 9 * * *", after) == datetime(2024, 1, 2, 9, 0, tzinfo=timezone.utc)

    def test_evaluated_in_timezone(self):
        # 08:00 UTC is 17:00 in Seoul, so the next 09:00 local is 00:00 UTC tomorrow
        after = datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)
        nxt = next_fire_time("0 9 * * *", after, "Asia/Seoul")
        assert nxt == datetime(2024, 1, 2, 0, 0, tzinfo=timezone.utc)
        assert nxt.tzinfo == timezone.utc


# ---------------------------------------------------------------------------
# Scheduler
# ---------------------------------------------------------------------------

class TestConstruction:
    def test_invalid_timezone(self, store):
        with pytest.raises(ValueError, match="Invalid timezone"):
            CronScheduler(store, tz="Mars/Olympus")

    def test_timezone_property(self, store):
        assert CronScheduler(store, tz="Europe/Berlin").timezone == "Europe/Berlin"


class TestAddJob:
    @pytest.mark.asyncio
    async def test_add_persists_and_arms(self, store):
        scheduler = CronScheduler(store)
        job_id = await scheduler.add_job(" 0 9 * * * ", "Greet", "Say hi")
        try:
            assert job_id == 1
            job = store.get(job_id)
            assert job.schedule == "0 9 * * *"
            assert job.enabled is True
            assert scheduler.is_running(job_id)
            assert [j.id for j in scheduler.list_jobs()] == [job_id]
        finally:
            scheduler.stop()

    @pytest.mark.asyncio
    async def test_invalid_schedule_leaves_store_untouched(self, store):
        scheduler = CronScheduler(store)
        with pytest.raises(InvalidScheduleError):
            await scheduler.add_job("every morning", "t", "m")
        assert store.list_all() == []
        assert scheduler.active_job_ids() == []

    @pytest.mark.asyncio
    async def test_ids_are_distinct(self, store):
        scheduler = CronScheduler(store)
        try:
            a = await scheduler.add_job("0 9 * * *", "a", "a")
            b = await scheduler.add_job("0 10 * * *", "b", "b")
            assert a != b
            assert scheduler.active_job_ids() == [a, b]
        finally:
            scheduler.stop()


class TestFanOut:
    @pytest.mark.asyncio
    async def test_additive_consumers_in_order(self, store):
        scheduler = CronScheduler(store, next_fire=limited_next_fire(1))
        seen = []

        async def first(msg):
            seen.append(("first", msg))

        def second(msg):
            seen.append(("second", msg))

        scheduler.add_send_callback(first)
        scheduler.add_send_callback(second)
        job_id = await scheduler.add_job("* * * * *", "ping", "ping!")
        await scheduler.timer(job_id).wait()

        assert seen == [("first", "ping!"), ("second", "ping!")]

    @pytest.mark.asyncio
    async def test_set_send_callback_is_exclusive(self, store):
        scheduler = CronScheduler(store, next_fire=limited_next_fire(1))
        dropped, kept = [], []
        scheduler.add_send_callback(dropped.append)
        scheduler.set_send_callback(kept.append)
        job_id = await scheduler.add_job("* * * * *", "t", "msg")
        await scheduler.timer(job_id).wait()

        assert dropped == []
        assert kept == ["msg"]

    @pytest.mark.asyncio
    async def test_fires_each_occurrence(self, store):
        scheduler = CronScheduler(store, next_fire=limited_next_fire(3))
        seen = []
        scheduler.set_send_callback(seen.append)
        job_id = await scheduler.add_job("* * * * *", "t", "tick")
        timer = scheduler.timer(job_id)
        await timer.wait()

        assert seen == ["tick", "tick", "tick"]
        assert timer.fire_count == 3

    @pytest.mark.asyncio
    async def test_failing_consumer_keeps_timer_alive(self, store):
        scheduler = CronScheduler(store, next_fire=limited_next_fire(2))
        seen = []

        def boom(msg):
            raise RuntimeError("nope")

        scheduler.add_send_callback(boom)
        scheduler.add_send_callback(seen.append)
        job_id = await scheduler.add_job("* * * * *", "t", "m")
        await scheduler.timer(job_id).wait()
        assert seen == ["m", "m"]

    @pytest.mark.asyncio
    async def test_no_consumers_logs_drop(self, store, capsys):
        scheduler = CronScheduler(store, next_fire=limited_next_fire(1))
        job_id = await scheduler.add_job("* * * * *", "t", "unheard")
        await scheduler.timer(job_id).wait()
        assert "no send callbacks registered" in capsys.readouterr().err


class TestCancel:
    @pytest.mark.asyncio
    async def test_cancel_before_first_fire(self, store):
        scheduler = CronScheduler(store)
        seen = []
        scheduler.set_send_callback(seen.append)
        job_id = await scheduler.add_job("*/5 * * * *", "t", "m")
        timer = scheduler.timer(job_id)

        assert await scheduler.cancel_job(job_id) is True
        await timer.wait()

        assert seen == []
        assert timer.done()
        assert not scheduler.is_running(job_id)
        assert store.get(job_id).enabled is False
        assert scheduler.list_jobs() == []

    @pytest.mark.asyncio
    async def test_cancel_during_fan_out(self, store):
        scheduler = CronScheduler(store, next_fire=limited_next_fire(2))
        entered = asyncio.Event()
        release = asyncio.Event()
        later = []

        async def slow(msg):
            entered.set()
            await release.wait()

        scheduler.add_send_callback(slow)
        scheduler.add_send_callback(later.append)
        job_id = await scheduler.add_job("* * * * *", "t", "m")
        timer = scheduler.timer(job_id)
        await asyncio.wait_for(entered.wait(), timeout=5)

        assert await scheduler.cancel_job(job_id) is True
        await timer.wait()
        release.set()
        await asyncio.sleep(0.05)

        assert later == []
        assert timer.fire_count == 0
        assert timer.done()
        assert job_id not in scheduler.active_job_ids()
        assert store.get(job_id).enabled is False

    @pytest.mark.asyncio
    async def test_cancel_twice(self, store):
        scheduler = CronScheduler(store)
        job_id = await scheduler.add_job("0 9 * * *", "t", "m")
        assert await scheduler.cancel_job(job_id) is True
        assert await scheduler.cancel_job(job_id) is False

    @pytest.mark.asyncio
    async def test_cancel_unknown(self, store):
        scheduler = CronScheduler(store)
        assert await scheduler.cancel_job(42) is False

    @pytest.mark.asyncio
    async def test_stop_keeps_store_records(self, store):
        scheduler = CronScheduler(store)
        job_id = await scheduler.add_job("0 9 * * *", "t", "m")
        timer = scheduler.timer(job_id)
        scheduler.stop()
        await timer.wait()
        assert scheduler.active_job_ids() == []
        assert store.get(job_id).enabled is True


class TestLoadJobs:
    @pytest.mark.asyncio
    async def test_invalid_stored_schedule_skipped(self, store, capsys):
        bad = store.add("not a cron", "broken", "x")
        good = store.add("0 9 * * *", "fine", "y")
        scheduler = CronScheduler(store)
        try:
            armed = await scheduler.load_jobs()
            assert armed == 1
            assert scheduler.active_job_ids() == [good]
            assert f"failed to load job #{bad}" in capsys.readouterr().err
        finally:
            scheduler.stop()

    @pytest.mark.asyncio
    async def test_disabled_jobs_not_armed(self, store):
        job_id = store.add("0 9 * * *", "t", "m")
        store.disable(job_id)
        scheduler = CronScheduler(store)
        assert await scheduler.load_jobs() == 0
        assert scheduler.active_job_ids() == []

    @pytest.mark.asyncio
    async def test_reload_replaces_timer(self, store):
        store.add("0 9 * * *", "t", "m")
        scheduler = CronScheduler(store)
        try:
            await scheduler.load_jobs()
            first = scheduler.timer(1)
            await scheduler.load_jobs()
            await first.wait()
            assert first.done()
            assert scheduler.is_running(1)
        finally:
            scheduler.stop()


class TestExhaustion:
    @pytest.mark.asyncio
    async def test_exhausted_job_is_disabled(self, store):
        scheduler = CronScheduler(store, next_fire=limited_next_fire(2))
        seen = []
        scheduler.set_send_callback(seen.append)
        job_id = await scheduler.add_job("* * * * *", "t", "m")
        await scheduler.timer(job_id).wait()

        assert len(seen) == 2
        assert not scheduler.is_running(job_id)
        assert scheduler.timer(job_id) is None
        assert store.get(job_id).enabled is False

    @pytest.mark.asyncio
    async def test_never_firing_schedule_rejected(self, store):
        scheduler = CronScheduler(store)
        with pytest.raises(InvalidScheduleError, match="never fires"):
            await scheduler.add_job("0 0 30 2 *", "t", "m")
        assert store.list_all() == []
        assert scheduler.active_job_ids() == []

    @pytest.mark.asyncio
    async def test_stored_job_without_future_time_disabled_on_load(self, store):
        job_id = store.add("* * * * *", "t", "m")
        scheduler = CronScheduler(store, next_fire=limited_next_fire(0))
        assert await scheduler.load_jobs() == 0
        assert not scheduler.is_running(job_id)
        assert store.get(job_id).enabled is False

    @pytest.mark.asyncio
    async def test_exhausted_kept_when_disabled_flag_off(self, store):
        scheduler = CronScheduler(store, next_fire=limited_next_fire(1), disable_exhausted=False)
        job_id = await scheduler.add_job("* * * * *", "t", "m")
        await scheduler.timer(job_id).wait()
        assert store.get(job_id).enabled is True
