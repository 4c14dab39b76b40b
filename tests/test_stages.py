"""API tests for stage endpoints."""

import pytest

from kanban.services.notification_service import drain_background_tasks


@pytest.fixture
def stage_ids(project) -> dict:
    return {s.stage_name: str(s.id) for s in project.stages}


class TestListStages:

    @pytest.mark.asyncio
    async def test_in_order(self, client, project, member_headers):
        response = await client.get(f"/api/projects/{project.id}/stages", headers=member_headers)

        assert response.status_code == 200
        body = response.json()
        assert [s["order"] for s in body] == list(range(6))
        assert body[0]["stage_name"] == "NOT_STARTED"
        assert body[-1]["stage_name"] == "FINISHED"

    @pytest.mark.asyncio
    async def test_outsider_forbidden(self, client, project, outsider_headers):
        response = await client.get(f"/api/projects/{project.id}/stages", headers=outsider_headers)

        assert response.status_code == 403


class TestCompleteEndpoint:

    @pytest.mark.asyncio
    async def test_complete(self, client, project, owner_headers, stage_ids):
        response = await client.post(f"/api/stages/{stage_ids['NOT_STARTED']}/complete", headers=owner_headers)

        assert response.status_code == 200
        assert response.json()["status"] == "COMPLETED"

        project_body = (await client.get(f"/api/projects/{project.id}", headers=owner_headers)).json()
        assert project_body["current_stage"] == "BUSINESS_MODELING"
        statuses = {s["stage_name"]: s["status"] for s in project_body["stages"]}
        assert statuses["BUSINESS_MODELING"] == "IN_PROGRESS"

    @pytest.mark.asyncio
    async def test_complete_pending_is_rejected(self, client, project, owner_headers, stage_ids):
        response = await client.post(f"/api/stages/{stage_ids['DEVELOPMENT']}/complete", headers=owner_headers)

        assert response.status_code == 400
        body = response.json()
        assert body["statusCode"] == 400
        assert body["message"] == "Only the active stage can be completed"
        assert body["details"]["current_stage"] == "NOT_STARTED"

    @pytest.mark.asyncio
    async def test_operator_lacks_permission(self, client, project, member_headers, stage_ids):
        response = await client.post(f"/api/stages/{stage_ids['NOT_STARTED']}/complete", headers=member_headers)

        assert response.status_code == 403
        assert response.json()["details"] == {"required": ["stages.complete"]}

    @pytest.mark.asyncio
    async def test_unknown_stage(self, client, owner_headers):
        response = await client.post(
            "/api/stages/00000000-0000-0000-0000-000000000000/complete",
            headers=owner_headers,
        )

        assert response.status_code == 404
        assert response.json()["message"] == "Stage not found"

    @pytest.mark.asyncio
    async def test_unauthenticated(self, client, stage_ids):
        response = await client.post(f"/api/stages/{stage_ids['NOT_STARTED']}/complete")

        assert response.status_code == 401
        assert response.json()["statusCode"] == 401


class TestBlockEndpoints:

    @pytest.mark.asyncio
    async def test_block_and_unblock(self, client, owner_headers, owner_user, stage_ids):
        stage_id = stage_ids["NOT_STARTED"]

        response = await client.post(
            f"/api/stages/{stage_id}/block",
            json={"reason": "Waiting on legal"},
            headers=owner_headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "BLOCKED"
        assert body["block_reason"] == "Waiting on legal"
        assert body["blocked_by_id"] == str(owner_user.id)

        response = await client.post(f"/api/stages/{stage_id}/unblock", headers=owner_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "IN_PROGRESS"
        assert body["block_reason"] is None

    @pytest.mark.asyncio
    async def test_empty_reason(self, client, owner_headers, stage_ids):
        response = await client.post(
            f"/api/stages/{stage_ids['NOT_STARTED']}/block",
            json={"reason": ""},
            headers=owner_headers,
        )

        assert response.status_code == 422
        assert response.json()["details"] == {"field": "reason"}

    @pytest.mark.asyncio
    async def test_missing_body_reason(self, client, owner_headers, stage_ids):
        response = await client.post(
            f"/api/stages/{stage_ids['NOT_STARTED']}/block",
            json={},
            headers=owner_headers,
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_unblock_active_stage(self, client, owner_headers, stage_ids):
        response = await client.post(f"/api/stages/{stage_ids['NOT_STARTED']}/unblock", headers=owner_headers)

        assert response.status_code == 400
        assert response.json()["message"] == "Stage is not blocked"


class TestPlannedDatesEndpoint:

    @pytest.mark.asyncio
    async def test_set_dates(self, client, owner_headers, stage_ids):
        response = await client.put(
            f"/api/stages/{stage_ids['DEVELOPMENT']}",
            json={"planned_start_date": "2026-11-01T00:00:00", "planned_end_date": "2026-11-30T00:00:00"},
            headers=owner_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["planned_start_date"] == "2026-11-01T00:00:00"
        assert body["planned_end_date"] == "2026-11-30T00:00:00"

    @pytest.mark.asyncio
    async def test_aware_dates_are_stored_as_utc(self, client, owner_headers, stage_ids):
        response = await client.put(
            f"/api/stages/{stage_ids['DEVELOPMENT']}",
            json={"planned_start_date": "2026-11-01T02:00:00+02:00"},
            headers=owner_headers,
        )

        assert response.status_code == 200
        assert response.json()["planned_start_date"] == "2026-11-01T00:00:00"

    @pytest.mark.asyncio
    async def test_start_after_end(self, client, owner_headers, stage_ids):
        response = await client.put(
            f"/api/stages/{stage_ids['DEVELOPMENT']}",
            json={"planned_start_date": "2026-12-01T00:00:00", "planned_end_date": "2026-11-01T00:00:00"},
            headers=owner_headers,
        )

        assert response.status_code == 422
        assert response.json()["message"] == "Planned start date must not be after planned end date"

    @pytest.mark.asyncio
    async def test_bad_date_format(self, client, owner_headers, stage_ids):
        response = await client.put(
            f"/api/stages/{stage_ids['DEVELOPMENT']}",
            json={"planned_start_date": "next tuesday"},
            headers=owner_headers,
        )

        assert response.status_code == 422
        assert response.json()["message"] == "Validation failed"


class TestMoveEndpoint:

    @pytest.mark.asyncio
    async def test_move_back_without_justification(self, client, project, owner_headers, stage_ids):
        await client.post(f"/api/stages/{stage_ids['NOT_STARTED']}/complete", headers=owner_headers)

        response = await client.post(
            f"/api/projects/{project.id}/move",
            json={"target_stage": "NOT_STARTED"},
            headers=owner_headers,
        )

        assert response.status_code == 400
        assert response.json()["message"] == "A justification is required to move back"

    @pytest.mark.asyncio
    async def test_move_back_with_justification(self, client, project, owner_headers, stage_ids, notifier):
        await client.post(f"/api/stages/{stage_ids['NOT_STARTED']}/complete", headers=owner_headers)

        response = await client.post(
            f"/api/projects/{project.id}/move",
            json={"target_stage": "NOT_STARTED", "justification": "Budget not approved"},
            headers=owner_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["current_stage"] == "NOT_STARTED"
        statuses = {s["stage_name"]: s["status"] for s in body["stages"]}
        assert statuses["NOT_STARTED"] == "IN_PROGRESS"
        assert statuses["BUSINESS_MODELING"] == "PENDING"

        await drain_background_tasks(timeout=5)
        events = notifier.of_kind("project_moved")
        assert [e.justification for e in events] == ["Budget not approved"]
        assert events[0].recipient_emails == ["member@example.com"]

    @pytest.mark.asyncio
    async def test_owner_skip_rejected(self, client, project, owner_headers):
        response = await client.post(
            f"/api/projects/{project.id}/move",
            json={"target_stage": "HOMOLOGATION", "justification": "Please"},
            headers=owner_headers,
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Skipping stages requires elevated privilege"

    @pytest.mark.asyncio
    async def test_admin_skip(self, client, project, admin_headers):
        response = await client.post(
            f"/api/projects/{project.id}/move",
            json={"target_stage": "HOMOLOGATION", "justification": "Legacy project imported mid-flight"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["current_stage"] == "HOMOLOGATION"
        statuses = [s["status"] for s in body["stages"]]
        assert statuses == ["COMPLETED", "COMPLETED", "COMPLETED", "COMPLETED", "IN_PROGRESS", "PENDING"]

    @pytest.mark.asyncio
    async def test_unknown_target(self, client, project, admin_headers):
        response = await client.post(
            f"/api/projects/{project.id}/move",
            json={"target_stage": "ARCHIVED", "justification": "x"},
            headers=admin_headers,
        )

        assert response.status_code == 422
