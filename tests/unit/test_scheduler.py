"""Scheduler: due-job polling, admission control and rescheduling."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from fieldflow.application.actions.registry import ActionContext, ActionHandler, ActionRegistry
from fieldflow.application.dtos.automation import ExecutionLogCreate, ScheduledJobCreate
from fieldflow.application.services.scheduler import FALLBACK_DELAY, Scheduler
from fieldflow.application.services.workflow_engine import WorkflowEngine
from tests.fakes import InMemoryAutomationStore, make_workflow

NOW = datetime(2026, 4, 6, 9, 0, tzinfo=UTC)


class Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class CountingHandler(ActionHandler):
    action_type = "count"

    def __init__(self) -> None:
        self.calls: list[dict] = []

    async def execute(self, config, context: ActionContext) -> dict:
        self.calls.append(context.trigger)
        return {}


@pytest.fixture
def clock() -> Clock:
    return Clock(NOW)


@pytest.fixture
def handler() -> CountingHandler:
    return CountingHandler()


@pytest.fixture
def scheduler(store: InMemoryAutomationStore, clock: Clock) -> Scheduler:
    return Scheduler(store, poll_interval_seconds=60, batch_size=10, clock=clock)


@pytest.fixture
def engine(
    store: InMemoryAutomationStore, scheduler: Scheduler, handler: CountingHandler
) -> WorkflowEngine:
    registry = ActionRegistry()
    registry.register(handler)
    return WorkflowEngine(store, registry, scheduler=scheduler)


async def _run_row(store: InMemoryAutomationStore, workflow_id: str, started_at: datetime) -> None:
    await store.insert_log(
        ExecutionLogCreate(
            execution_id=f"exec-{started_at.isoformat()}",
            status="completed",
            workflow_id=workflow_id,
            started_at=started_at,
            completed_at=started_at,
        )
    )


async def test_one_shot_delayed_job_fires_once(
    store: InMemoryAutomationStore,
    scheduler: Scheduler,
    engine: WorkflowEngine,
    handler: CountingHandler,
    clock: Clock,
) -> None:
    workflow = store.add_workflow(
        make_workflow(actions=[{"id": "later", "action_type": "count", "delay_minutes": 30}])
    )
    await engine.execute_workflow(workflow.id, {"entity_type": "quote", "entity_id": "q-1"})
    assert handler.calls == []
    scheduler._engine = engine

    clock.now = NOW + timedelta(minutes=29)
    assert await scheduler.poll() == 0

    clock.now = NOW + timedelta(minutes=30, seconds=5)
    assert await scheduler.poll() == 1
    assert len(handler.calls) == 1
    job = next(iter(store.jobs.values()))
    assert job.is_active is False
    assert job.last_run_at == clock.now

    assert await scheduler.poll() == 0
    assert len(handler.calls) == 1


async def test_cooldown_skips_but_advances_recurring_job(
    store: InMemoryAutomationStore,
    scheduler: Scheduler,
    engine: WorkflowEngine,
    handler: CountingHandler,
) -> None:
    workflow = store.add_workflow(
        make_workflow(
            cooldown_minutes=60,
            triggers=[{"id": "t1", "trigger_type": "schedule", "config": {"cron": "0 * * * *"}}],
            actions=[{"action_type": "count"}],
        )
    )
    await _run_row(store, workflow.id, NOW - timedelta(minutes=10))
    job = await store.create_scheduled_job(
        ScheduledJobCreate(
            workflow_id=workflow.id,
            trigger_id="t1",
            next_run_at=NOW,
            cron_expression="0 * * * *",
        )
    )
    scheduler._engine = engine

    decision = await scheduler.check_cooldown(workflow.id)
    assert decision.allowed is False
    assert decision.reason.startswith("Cooldown active until")

    assert await scheduler.poll() == 1
    assert handler.calls == []
    updated = store.jobs[job.id]
    assert updated.is_active is True
    assert updated.next_run_at == NOW + timedelta(hours=1)
    assert updated.last_run_at is None


async def test_denied_one_shot_job_stays_due(
    store: InMemoryAutomationStore, scheduler: Scheduler, engine: WorkflowEngine
) -> None:
    workflow = store.add_workflow(make_workflow(cooldown_minutes=30))
    await _run_row(store, workflow.id, NOW - timedelta(minutes=5))
    job = await store.create_scheduled_job(
        ScheduledJobCreate(workflow_id=workflow.id, trigger_id=None, next_run_at=NOW)
    )
    scheduler._engine = engine
    await scheduler.poll()
    assert store.jobs[job.id].next_run_at == NOW
    assert store.jobs[job.id].is_active is True


async def test_daily_cap_counts_runs_since_utc_midnight(
    store: InMemoryAutomationStore, scheduler: Scheduler
) -> None:
    workflow = store.add_workflow(make_workflow(max_executions_per_day=2))
    await _run_row(store, workflow.id, NOW - timedelta(days=1))
    await _run_row(store, workflow.id, NOW - timedelta(hours=2))
    assert (await scheduler.check_cooldown(workflow.id)).allowed is True

    await _run_row(store, workflow.id, NOW - timedelta(hours=1))
    decision = await scheduler.check_cooldown(workflow.id)
    assert decision.allowed is False
    assert decision.reason == "Max executions per day reached (2/2)"


async def test_zero_limits_disable_admission_checks(
    store: InMemoryAutomationStore, scheduler: Scheduler
) -> None:
    workflow = store.add_workflow(make_workflow(max_executions_per_day=0, cooldown_minutes=0))
    for minutes in range(5):
        await _run_row(store, workflow.id, NOW - timedelta(minutes=minutes))
    assert (await scheduler.check_cooldown(workflow.id)).allowed is True


async def test_inactive_workflow_denied(
    store: InMemoryAutomationStore, scheduler: Scheduler
) -> None:
    workflow = store.add_workflow(make_workflow(deleted_at=NOW))
    decision = await scheduler.check_cooldown(workflow.id)
    assert (decision.allowed, decision.reason) == (False, "Workflow not found or inactive")


async def test_scheduled_context_carries_job_metadata(
    store: InMemoryAutomationStore,
    scheduler: Scheduler,
    engine: WorkflowEngine,
    handler: CountingHandler,
) -> None:
    workflow = store.add_workflow(
        make_workflow(
            triggers=[{"id": "t1", "trigger_type": "schedule", "config": {"cron": "*/5 * * * *"}}],
            actions=[{"action_type": "count"}],
        )
    )
    job = await store.create_scheduled_job(
        ScheduledJobCreate(
            workflow_id=workflow.id,
            trigger_id="t1",
            next_run_at=NOW - timedelta(minutes=1),
            cron_expression="*/5 * * * *",
        )
    )
    scheduler._engine = engine
    await scheduler.poll()
    context = handler.calls[0]
    assert context["scheduled_job_id"] == job.id
    assert context["trigger_id"] == "t1"
    assert context["is_scheduled_execution"] is True
    assert context["executed_at"] == NOW.isoformat()
    assert store.jobs[job.id].next_run_at == NOW + timedelta(minutes=5)
    run_rows = [r for r in store.logs_for(workflow.id) if r.action_id is None]
    assert run_rows[0].trigger_type == "schedule"


async def test_unparseable_cron_falls_back_to_next_day(
    store: InMemoryAutomationStore, scheduler: Scheduler, engine: WorkflowEngine
) -> None:
    workflow = store.add_workflow(make_workflow())
    job = await store.create_scheduled_job(
        ScheduledJobCreate(
            workflow_id=workflow.id, trigger_id=None, next_run_at=NOW, cron_expression="bogus"
        )
    )
    scheduler._engine = engine
    await scheduler.poll()
    assert store.jobs[job.id].next_run_at == NOW + FALLBACK_DELAY


async def test_job_errors_become_failed_rows(
    store: InMemoryAutomationStore, scheduler: Scheduler
) -> None:
    workflow = store.add_workflow(make_workflow())
    await store.create_scheduled_job(
        ScheduledJobCreate(workflow_id=workflow.id, trigger_id="t9", next_run_at=NOW)
    )
    broken = AsyncMock()
    broken.execute_workflow = AsyncMock(side_effect=RuntimeError("engine exploded"))
    scheduler._engine = broken
    assert await scheduler.poll() == 1
    [row] = store.logs
    assert row.status == "failed"
    assert row.trigger_type == "schedule"
    assert row.trigger_id == "t9"
    assert row.error_message == "engine exploded"


class FlakyMarkStore(InMemoryAutomationStore):
    """mark_job_run fails the first `failures` times it is called."""

    def __init__(self, failures: int = 1) -> None:
        super().__init__()
        self.failures = failures

    async def mark_job_run(self, job_id, ran_at, next_run_at) -> None:
        if self.failures:
            self.failures -= 1
            raise RuntimeError("database went away")
        await super().mark_job_run(job_id, ran_at, next_run_at)


async def test_one_shot_job_never_runs_twice_when_bookkeeping_fails(
    clock: Clock, handler: CountingHandler
) -> None:
    store = FlakyMarkStore()
    scheduler = Scheduler(store, poll_interval_seconds=60, batch_size=10, clock=clock)
    registry = ActionRegistry()
    registry.register(handler)
    scheduler._engine = WorkflowEngine(store, registry, scheduler=scheduler)
    workflow = store.add_workflow(
        make_workflow(actions=[{"id": "later", "action_type": "count", "delay_minutes": 30}])
    )
    job = await store.create_scheduled_job(
        ScheduledJobCreate(
            workflow_id=workflow.id,
            trigger_id=None,
            next_run_at=NOW,
            payload={"deferred_action_id": "later", "trigger_context": {}},
        )
    )

    assert await scheduler.poll() == 1
    assert handler.calls == []
    assert [log.error_message for log in store.logs] == ["database went away"]
    assert store.jobs[job.id].is_active is True

    assert await scheduler.poll() == 1
    assert len(handler.calls) == 1
    assert store.jobs[job.id].is_active is False

    assert await scheduler.poll() == 0
    assert len(handler.calls) == 1


async def test_recurring_job_advances_even_when_run_fails(
    store: InMemoryAutomationStore, scheduler: Scheduler
) -> None:
    workflow = store.add_workflow(make_workflow())
    job = await store.create_scheduled_job(
        ScheduledJobCreate(
            workflow_id=workflow.id,
            trigger_id="t1",
            next_run_at=NOW,
            cron_expression="0 * * * *",
        )
    )
    broken = AsyncMock()
    broken.execute_workflow = AsyncMock(side_effect=RuntimeError("engine exploded"))
    scheduler._engine = broken

    assert await scheduler.poll() == 1
    updated = store.jobs[job.id]
    assert updated.next_run_at == NOW + timedelta(hours=1)
    assert updated.last_run_at == NOW
    assert [log.status for log in store.logs] == ["failed"]


async def test_due_jobs_are_batched_oldest_first(
    store: InMemoryAutomationStore, clock: Clock, engine: WorkflowEngine
) -> None:
    scheduler = Scheduler(store, batch_size=3, clock=clock)
    workflow = store.add_workflow(make_workflow())
    for minutes in (5, 1, 4, 2, 3):
        await store.create_scheduled_job(
            ScheduledJobCreate(
                workflow_id=workflow.id,
                trigger_id=None,
                next_run_at=NOW - timedelta(minutes=minutes),
            )
        )
    due = await store.list_due_jobs(NOW, scheduler.batch_size)
    assert [NOW - j.next_run_at for j in due] == [
        timedelta(minutes=5),
        timedelta(minutes=4),
        timedelta(minutes=3),
    ]
    scheduler._engine = engine
    assert await scheduler.poll() == 3
    assert sum(1 for j in store.jobs.values() if j.is_active) == 2


async def test_sync_cron_triggers_creates_one_job_per_trigger(
    store: InMemoryAutomationStore, scheduler: Scheduler
) -> None:
    store.add_workflow(
        make_workflow(
            triggers=[
                {
                    "id": "daily",
                    "trigger_type": "schedule",
                    "config": {"cron_expression": "0 8 * * *"},
                },
                {"id": "no-cron", "trigger_type": "schedule"},
                {"id": "event", "trigger_type": "quote_sent"},
            ]
        )
    )
    assert await scheduler.sync_cron_triggers() == 1
    assert await scheduler.sync_cron_triggers() == 0
    [job] = store.jobs.values()
    assert job.trigger_id == "daily"
    assert job.next_run_at == datetime(2026, 4, 7, 8, 0, tzinfo=UTC)


async def test_poll_without_engine_is_a_noop(scheduler: Scheduler) -> None:
    assert await scheduler.poll() == 0


async def test_start_twice_and_stop_are_idempotent(
    scheduler: Scheduler, engine: WorkflowEngine
) -> None:
    scheduler.start(engine)
    first_task = scheduler._task
    scheduler.start(engine)
    assert scheduler._task is first_task
    assert scheduler.status() == {
        "is_running": True,
        "poll_interval_seconds": 60,
        "batch_size": 10,
        "has_workflow_engine": True,
    }
    await scheduler.stop()
    await scheduler.stop()
    assert scheduler.is_running is False
