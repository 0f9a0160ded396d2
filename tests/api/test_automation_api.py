"""Automation HTTP API over the in-memory runtime."""

from httpx import AsyncClient

from fieldflow.core.automation import AutomationRuntime
from fieldflow.main import app
from tests.fakes import (
    InMemoryAutomationStore,
    InMemoryEntityGateway,
    RecordingSmsSender,
    make_workflow,
)


class TestEvents:
    async def test_emit_then_duplicate_skipped(self, client: AsyncClient) -> None:
        payload = {"event_type": "quote_sent", "entity_data": {"id": "q-1"}}
        first = await client.post("/api/v1/events", json=payload)
        assert first.status_code == 202
        assert first.json()["emitted"] is True
        assert first.json()["event_id"]

        second = await client.post("/api/v1/events", json=payload)
        assert second.status_code == 202
        assert second.json() == {
            "emitted": False,
            "event_id": None,
            "skipped": True,
            "reason": "idempotency",
        }

    async def test_emit_runs_matching_workflow(
        self,
        client: AsyncClient,
        store: InMemoryAutomationStore,
        sms_sender: RecordingSmsSender,
    ) -> None:
        store.add_workflow(
            make_workflow(
                "Crew on the way",
                triggers=[{"trigger_type": "job_started"}],
                actions=[
                    {"action_type": "send_sms", "config": {"template_id": "crew_on_the_way"}}
                ],
            )
        )
        response = await client.post(
            "/api/v1/events",
            json={
                "event_type": "job_started",
                "entity_data": {"id": "job-3", "phone": "555-010-4444", "eta": "10:30"},
            },
        )
        assert response.status_code == 202
        [sent] = sms_sender.sent
        assert sent["to"] == "+15550104444"
        assert "ETA: 10:30" in sent["body"]

    async def test_missing_event_type_is_422(self, client: AsyncClient) -> None:
        response = await client.post("/api/v1/events", json={"entity_data": {}})
        assert response.status_code == 422
        assert response.json()["error"] == "VALIDATION_ERROR"

    async def test_stats(self, client: AsyncClient) -> None:
        await client.post("/api/v1/events", json={"event_type": "lead_created"})
        response = await client.get("/api/v1/events/stats")
        assert response.status_code == 200
        data = response.json()
        assert data["idempotency_records_count"] == 1
        assert data["total_listeners"] == 1
        assert data["listener_counts"]["lead_created"] == 0


class TestWorkflowExecute:
    async def test_manual_run(
        self, client: AsyncClient, store: InMemoryAutomationStore
    ) -> None:
        workflow = store.add_workflow(
            make_workflow(
                "Follow up",
                triggers=[{"trigger_type": "quote_sent"}],
                actions=[{"action_type": "create_task", "config": {"title": "Call back"}}],
            )
        )
        response = await client.post(
            f"/api/v1/workflows/{workflow.id}/execute",
            json={"entity_type": "quote", "entity_data": {"id": "q-5"}, "triggered_by": "ops"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["workflow_name"] == "Follow up"
        assert [r["status"] for r in data["results"]] == ["completed"]
        [task] = store.follow_ups
        assert task.entity_id == "q-5"
        run_row = next(log for log in store.logs if log.action_id is None)
        assert run_row.trigger_type == "manual"

    async def test_unknown_workflow_is_404(self, client: AsyncClient) -> None:
        response = await client.post("/api/v1/workflows/nope/execute", json={})
        assert response.status_code == 404
        assert response.json()["error"] == "WORKFLOW_NOT_FOUND"

    async def test_error_body_carries_request_id(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/v1/workflows/nope/execute", json={}, headers={"X-Request-ID": "op-42"}
        )
        assert response.json()["request_id"] == "op-42"
        assert response.headers["X-Request-ID"] == "op-42"


class TestAutomationLogs:
    async def _seed(self, client: AsyncClient, store: InMemoryAutomationStore) -> str:
        workflow = store.add_workflow(
            make_workflow(
                actions=[
                    {"action_type": "create_reminder", "config": {"title": "Check in"}},
                    {"action_type": "update_lead_stage", "config": {"new_stage": "won"}},
                ]
            )
        )
        response = await client.post(
            f"/api/v1/workflows/{workflow.id}/execute",
            json={"entity_type": "lead", "entity_id": "lead-missing"},
        )
        return response.json()["execution_id"]

    async def test_list_and_filter(
        self, client: AsyncClient, store: InMemoryAutomationStore
    ) -> None:
        await self._seed(client, store)
        response = await client.get("/api/v1/automation-logs")
        assert response.status_code == 200
        assert len(response.json()) == len(store.logs)

        failed = await client.get("/api/v1/automation-logs", params={"status": "failed"})
        assert [row["action_type"] for row in failed.json()] == ["update_lead_stage"]

        page = await client.get("/api/v1/automation-logs", params={"skip": 1, "limit": 1})
        assert len(page.json()) == 1

    async def test_limit_bounds(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/automation-logs", params={"limit": 501})
        assert response.status_code == 422

    async def test_execution_summary(
        self, client: AsyncClient, store: InMemoryAutomationStore
    ) -> None:
        execution_id = await self._seed(client, store)
        response = await client.get(f"/api/v1/automation-logs/{execution_id}")
        assert response.status_code == 200
        data = response.json()
        assert data["execution_id"] == execution_id
        assert data["status"] == "completed"
        assert data["entity_id"] == "lead-missing"
        assert len(data["logs"]) == len(store.logs)

    async def test_execution_not_found(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/automation-logs/does-not-exist")
        assert response.status_code == 404
        assert response.json()["details"]["resource_type"] == "Execution"

    async def test_stats(self, client: AsyncClient, store: InMemoryAutomationStore) -> None:
        await self._seed(client, store)
        response = await client.get("/api/v1/automation-logs/stats", params={"days": 7})
        assert response.status_code == 200
        data = response.json()
        assert data["period_days"] == 7
        assert data["overall"]["total"] == len(store.logs)
        assert data["overall"]["failed"] == 1
        by_type = {row["action_type"]: row for row in data["by_action_type"]}
        assert by_type["create_reminder"]["completed"] == 1
        assert by_type["update_lead_stage"]["failed"] == 1


class TestScheduler:
    async def test_status_and_poll(self, client: AsyncClient, runtime: AutomationRuntime) -> None:
        status = await client.get("/api/v1/scheduler/status")
        assert status.json()["is_running"] is False
        assert status.json()["has_workflow_engine"] is False

        runtime.scheduler._engine = runtime.engine
        poll = await client.post("/api/v1/scheduler/poll")
        assert poll.status_code == 200
        assert poll.json() == {"processed_jobs": 0}


class TestJobs:
    async def test_transition_flow(
        self, client: AsyncClient, gateway: InMemoryEntityGateway
    ) -> None:
        gateway.put("job", {"id": "job-1", "status": "draft"})
        allowed = await client.get("/api/v1/jobs/job-1/allowed-transitions")
        assert "scheduled" in allowed.json()["allowed_states"]

        response = await client.post(
            "/api/v1/jobs/job-1/transitions",
            json={"to_state": "scheduled", "changed_by": "dispatcher"},
        )
        assert response.status_code == 201
        data = response.json()
        assert data["job"]["status"] == "scheduled"
        assert data["event"]["emitted"] is True

    async def test_illegal_transition_is_409(
        self, client: AsyncClient, gateway: InMemoryEntityGateway
    ) -> None:
        gateway.put("job", {"id": "job-2", "status": "paid"})
        response = await client.post(
            "/api/v1/jobs/job-2/transitions", json={"to_state": "draft"}
        )
        assert response.status_code == 409
        assert response.json()["details"] == {
            "job_id": "job-2",
            "from_state": "paid",
            "to_state": "draft",
        }

    async def test_unknown_job_is_404(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/jobs/ghost/allowed-transitions")
        assert response.status_code == 404


async def test_endpoints_503_without_runtime(client: AsyncClient) -> None:
    app.state.automation = None
    response = await client.post("/api/v1/events", json={"event_type": "quote_sent"})
    assert response.status_code == 503
    assert response.json()["error"] == "SERVICE_UNAVAILABLE"
