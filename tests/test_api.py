"""End-to-end tests through the HTTP layer against SQLite."""

from uuid import uuid4

from sqlalchemy import select

from deskcore.access.infrastructure import SQLAlchemyGrantRepository
from deskcore.access.infrastructure.models import ProfileModel
from deskcore.core import RepositoryException
from deskcore.infrastructure.database import get_session_context
from deskcore.routing.infrastructure.models import NotificationModel, TicketModel


def _ticket_payload(seeded, **overrides):
    payload = {
        "title": "Laptop will not boot",
        "description": "Black screen after the latest firmware update.",
        "category": "hardware",
        "priority": "high",
        "department_ids": [str(seeded.it)],
        "assigned_to": "auto-assign",
    }
    payload.update(overrides)
    return payload


class TestService:

    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert "X-Correlation-ID" in response.headers

    async def test_health_reports_request_metrics(self, client):
        await client.get("/")
        await client.get("/access/permissions")

        metrics = (await client.get("/health")).json()["metrics"]

        assert metrics["requests"] == 2
        assert metrics["by_status"] == {"2xx": 1, "4xx": 1}

    async def test_correlation_id_is_echoed(self, client):
        response = await client.get("/health", headers={"X-Correlation-ID": "abc-123"})
        assert response.headers["X-Correlation-ID"] == "abc-123"

    async def test_root_lists_modules(self, client):
        response = await client.get("/")
        assert set(response.json()["modules"]) == {"access", "routing"}


class TestIdentity:

    async def test_missing_header(self, client, seeded):
        response = await client.get("/access/permissions")
        assert response.status_code == 401

    async def test_malformed_header(self, client, seeded):
        response = await client.get("/access/permissions", headers={"X-User-Id": "not-a-uuid"})
        assert response.status_code == 401

    async def test_unknown_user(self, client, seeded):
        response = await client.get("/access/permissions", headers={"X-User-Id": str(uuid4())})
        assert response.status_code == 401

    async def test_profile_without_recognised_role(self, client, seeded):
        async with get_session_context() as session:
            result = await session.execute(select(ProfileModel.id).where(ProfileModel.role == "intern"))
            intern_id = result.scalar_one()

        response = await client.get("/access/permissions", headers={"X-User-Id": str(intern_id)})

        assert response.status_code == 403
        assert response.json()["detail"] == "Your account has no role assigned."


class TestPermissionChecks:

    async def test_scoped_grant_is_honoured(self, client, seeded):
        response = await client.get("/access/permissions", headers=seeded.headers("it_agent"))

        permissions = response.json()["permissions"]
        assert permissions["create_tickets"] is True
        assert permissions["edit_ticket_properties"] is True
        assert permissions["manage_roles"] is False

    async def test_scoped_grant_denies_other_department(self, client, seeded):
        response = await client.get(
            "/access/check",
            params={"permission": "edit_ticket_properties"},
            headers=seeded.headers("finance_agent"),
        )
        assert response.json() == {"permission": "edit_ticket_properties", "granted": False}

    async def test_unknown_permission_key_denies(self, client, seeded):
        response = await client.get(
            "/access/check",
            params={"permission": "launch_rockets"},
            headers=seeded.headers("ceo"),
        )
        assert response.status_code == 200
        assert response.json()["granted"] is False

    async def test_superuser_holds_every_key(self, client, seeded):
        response = await client.get("/access/permissions", headers=seeded.headers("ceo"))

        body = response.json()
        assert body["is_superuser"] is True
        assert all(body["permissions"].values())


class TestGrantAdministration:

    async def test_replacement_expands_all_and_department_lists(self, client, seeded):
        response = await client.put(
            "/access/grants",
            headers=seeded.headers("admin"),
            json={
                "roles": ["agent"],
                "grants": [
                    {"role": "agent", "permission": "view_task_board", "departments": "ALL"},
                    {
                        "role": "agent",
                        "permission": "access_crm_tickets",
                        "departments": [str(seeded.it), str(seeded.finance)],
                    },
                ],
            },
        )

        assert response.status_code == 200
        assert response.json() == {"roles": ["agent"], "deleted": 2, "inserted": 3}

        listed = await client.get(
            "/access/grants", params={"role": "agent"}, headers=seeded.headers("admin")
        )
        rows = {
            (g["permission"], g["department_id"]) for g in listed.json()["grants"]
        }
        assert rows == {
            ("view_task_board", None),
            ("access_crm_tickets", str(seeded.it)),
            ("access_crm_tickets", str(seeded.finance)),
        }

    async def test_agent_lost_replaced_permission(self, client, seeded):
        await client.put(
            "/access/grants",
            headers=seeded.headers("admin"),
            json={"roles": ["agent"], "grants": []},
        )

        response = await client.post(
            "/tickets", headers=seeded.headers("it_agent"), json=_ticket_payload(seeded)
        )
        assert response.status_code == 403

    async def test_failed_insert_rolls_back_to_previous_grants(self, client, seeded, monkeypatch):
        async def failing_insert(self, grants):
            raise RepositoryException("connection reset during insert")

        monkeypatch.setattr(SQLAlchemyGrantRepository, "insert_grants", failing_insert)

        response = await client.put(
            "/access/grants",
            headers=seeded.headers("admin"),
            json={
                "roles": ["agent"],
                "grants": [{"role": "agent", "permission": "view_task_board", "departments": "ALL"}],
            },
        )

        assert response.status_code == 500
        assert response.json()["error"] == "PermissionLockoutException"
        assert "agent" in response.json()["detail"]

        listed = await client.get(
            "/access/grants", params={"role": "agent"}, headers=seeded.headers("admin")
        )
        assert {g["permission"] for g in listed.json()["grants"]} == {
            "create_tickets",
            "edit_ticket_properties",
        }

    async def test_requires_manage_roles(self, client, seeded):
        response = await client.put(
            "/access/grants",
            headers=seeded.headers("it_agent"),
            json={"roles": ["agent"], "grants": []},
        )

        assert response.status_code == 403
        assert response.json()["details"]["permission"] == "manage_roles"

    async def test_unknown_role_filter(self, client, seeded):
        response = await client.get(
            "/access/grants", params={"role": "janitor"}, headers=seeded.headers("admin")
        )
        assert response.status_code == 422


class TestTickets:

    async def test_auto_assign_stores_head_and_department_policy(self, client, seeded):
        response = await client.post(
            "/tickets", headers=seeded.headers("it_agent"), json=_ticket_payload(seeded)
        )

        assert response.status_code == 201
        ticket = response.json()
        assert ticket["assigned_to"] == str(seeded.users["it_head"])
        assert ticket["sla_policy_id"] == str(seeded.it_high_policy)

        fetched = await client.get(f"/tickets/{ticket['id']}", headers=seeded.headers("it_agent"))
        assert fetched.json()["department_ids"] == [str(seeded.it)]

        async with get_session_context() as session:
            result = await session.execute(select(NotificationModel))
            notifications = result.scalars().all()
        assert [n.user_id for n in notifications] == [seeded.users["it_head"]]

    async def test_other_department_falls_back(self, client, seeded):
        response = await client.post(
            "/tickets",
            headers=seeded.headers("it_agent"),
            json=_ticket_payload(seeded, department_ids=[str(seeded.finance), str(seeded.it)]),
        )

        ticket = response.json()
        assert ticket["assigned_to"] == str(seeded.users["finance_head"])
        assert ticket["sla_policy_id"] == str(seeded.high_fallback_policy)
        assert ticket["department_ids"] == [str(seeded.finance), str(seeded.it)]

    async def test_rejects_malformed_assignee(self, client, seeded):
        response = await client.post(
            "/tickets",
            headers=seeded.headers("it_agent"),
            json=_ticket_payload(seeded, assigned_to="somebody"),
        )
        assert response.status_code == 422

    async def test_update_replans(self, client, seeded):
        created = await client.post(
            "/tickets", headers=seeded.headers("it_agent"), json=_ticket_payload(seeded)
        )
        ticket_id = created.json()["id"]

        response = await client.put(
            f"/tickets/{ticket_id}",
            headers=seeded.headers("it_agent"),
            json={"priority": "low"},
        )

        assert response.status_code == 200
        assert response.json()["sla_policy_id"] is None
        assert response.json()["assigned_to"] == str(seeded.users["it_head"])

    async def test_update_missing_ticket(self, client, seeded):
        response = await client.put(
            f"/tickets/{uuid4()}", headers=seeded.headers("it_agent"), json={"title": "x"}
        )
        assert response.status_code == 404

    async def test_edit_cannot_hand_off_without_assign_tickets(self, client, seeded):
        created = await client.post(
            "/tickets", headers=seeded.headers("it_agent"), json=_ticket_payload(seeded)
        )
        ticket_id = created.json()["id"]

        response = await client.put(
            f"/tickets/{ticket_id}",
            headers=seeded.headers("it_agent"),
            json={"assigned_to": str(seeded.users["finance_agent"]), "status": "closed"},
        )

        assert response.status_code == 403
        assert response.json()["details"]["permission"] == "assign_tickets"

        fetched = (await client.get(f"/tickets/{ticket_id}", headers=seeded.headers("it_agent"))).json()
        assert fetched["assigned_to"] == str(seeded.users["it_head"])
        assert fetched["status"] == "open"

        async with get_session_context() as session:
            result = await session.execute(select(NotificationModel.user_id))
            assert result.scalars().all() == [seeded.users["it_head"]]

    async def test_edit_leaves_status_alone(self, client, seeded):
        created = await client.post(
            "/tickets", headers=seeded.headers("it_agent"), json=_ticket_payload(seeded)
        )

        response = await client.put(
            f"/tickets/{created.json()['id']}",
            headers=seeded.headers("it_agent"),
            json={"title": "Laptop still will not boot", "status": "closed"},
        )

        assert response.status_code == 200
        assert response.json()["title"] == "Laptop still will not boot"
        assert response.json()["status"] == "open"

    async def test_create_with_unknown_assignee(self, client, seeded):
        response = await client.post(
            "/tickets",
            headers=seeded.headers("it_agent"),
            json=_ticket_payload(seeded, assigned_to=str(uuid4())),
        )

        assert response.status_code == 404

        async with get_session_context() as session:
            assert (await session.execute(select(TicketModel))).scalars().all() == []
            assert (await session.execute(select(NotificationModel))).scalars().all() == []

    async def test_preview_plan(self, client, seeded):
        response = await client.post(
            "/tickets/plan",
            headers=seeded.headers("it_agent"),
            json={"priority": "high", "department_ids": [str(seeded.it)], "assigned_to": "auto-assign"},
        )
        assert response.json() == {
            "assigned_to": str(seeded.users["it_head"]),
            "sla_policy_id": str(seeded.it_high_policy),
        }


class TestReassignment:

    async def _create(self, client, seeded):
        response = await client.post(
            "/tickets", headers=seeded.headers("it_agent"), json=_ticket_payload(seeded)
        )
        return response.json()["id"]

    async def test_head_assigns_within_department(self, client, seeded):
        ticket_id = await self._create(client, seeded)

        response = await client.patch(
            f"/tickets/{ticket_id}/assignee",
            headers=seeded.headers("it_head"),
            json={"assigned_to": str(seeded.users["it_agent"])},
        )

        assert response.status_code == 200
        assert response.json()["assigned_to"] == str(seeded.users["it_agent"])

    async def test_head_cannot_assign_outside_department(self, client, seeded):
        ticket_id = await self._create(client, seeded)

        response = await client.patch(
            f"/tickets/{ticket_id}/assignee",
            headers=seeded.headers("it_head"),
            json={"assigned_to": str(seeded.users["finance_agent"])},
        )

        assert response.status_code == 403
        fetched = await client.get(f"/tickets/{ticket_id}", headers=seeded.headers("it_head"))
        assert fetched.json()["assigned_to"] == str(seeded.users["it_head"])


class TestStatusAndDeletion:

    async def _create(self, client, seeded):
        response = await client.post(
            "/tickets", headers=seeded.headers("it_agent"), json=_ticket_payload(seeded)
        )
        return response.json()["id"]

    async def test_creator_changes_status(self, client, seeded):
        ticket_id = await self._create(client, seeded)

        response = await client.patch(
            f"/tickets/{ticket_id}/status",
            headers=seeded.headers("it_agent"),
            json={"status": "resolved"},
        )

        assert response.status_code == 200
        assert response.json()["status"] == "resolved"

    async def test_status_change_needs_permission_when_not_creator(self, client, seeded):
        ticket_id = await self._create(client, seeded)

        denied = await client.patch(
            f"/tickets/{ticket_id}/status",
            headers=seeded.headers("finance_agent"),
            json={"status": "closed"},
        )
        assert denied.status_code == 403
        assert denied.json()["details"]["permission"] == "change_ticket_status"

        allowed = await client.patch(
            f"/tickets/{ticket_id}/status",
            headers=seeded.headers("finance_head"),
            json={"status": "closed"},
        )
        assert allowed.json()["status"] == "closed"

    async def test_unknown_status(self, client, seeded):
        ticket_id = await self._create(client, seeded)

        response = await client.patch(
            f"/tickets/{ticket_id}/status",
            headers=seeded.headers("it_agent"),
            json={"status": "archived"},
        )
        assert response.status_code == 422

    async def test_creator_deletes(self, client, seeded):
        ticket_id = await self._create(client, seeded)

        denied = await client.delete(f"/tickets/{ticket_id}", headers=seeded.headers("finance_agent"))
        assert denied.status_code == 403

        deleted = await client.delete(f"/tickets/{ticket_id}", headers=seeded.headers("it_agent"))
        assert deleted.status_code == 204

        fetched = await client.get(f"/tickets/{ticket_id}", headers=seeded.headers("it_agent"))
        assert fetched.status_code == 404

    async def test_delete_tickets_holder_deletes(self, client, seeded):
        ticket_id = await self._create(client, seeded)

        response = await client.delete(f"/tickets/{ticket_id}", headers=seeded.headers("finance_head"))

        assert response.status_code == 204
        missing = await client.delete(f"/tickets/{ticket_id}", headers=seeded.headers("finance_head"))
        assert missing.status_code == 404


class TestReferenceData:

    async def test_create_department(self, client, seeded):
        response = await client.post(
            "/departments", headers=seeded.headers("ceo"), json={"name": "Legal"}
        )
        assert response.status_code == 201

        duplicate = await client.post(
            "/departments", headers=seeded.headers("ceo"), json={"name": "Legal"}
        )
        assert duplicate.status_code == 409

        listed = await client.get("/departments", headers=seeded.headers("it_agent"))
        assert [d["name"] for d in listed.json()] == ["Finance", "IT", "Legal"]

    async def test_sla_policy_lifecycle(self, client, seeded):
        payload = {
            "name": "Finance high",
            "priority": "high",
            "department_id": str(seeded.finance),
            "response_time_minutes": 20,
            "resolution_time_minutes": 200,
        }
        created = await client.post("/sla-policies", headers=seeded.headers("ceo"), json=payload)
        assert created.status_code == 201
        policy_id = created.json()["id"]

        duplicate = await client.post("/sla-policies", headers=seeded.headers("ceo"), json=payload)
        assert duplicate.status_code == 409

        updated = await client.put(
            f"/sla-policies/{policy_id}",
            headers=seeded.headers("ceo"),
            json={**payload, "is_active": False},
        )
        assert updated.json()["is_active"] is False

        deleted = await client.delete(f"/sla-policies/{policy_id}", headers=seeded.headers("ceo"))
        assert deleted.status_code == 204

        missing = await client.delete(f"/sla-policies/{policy_id}", headers=seeded.headers("ceo"))
        assert missing.status_code == 404

    async def test_fallback_conflict(self, client, seeded):
        response = await client.post(
            "/sla-policies",
            headers=seeded.headers("ceo"),
            json={
                "name": "Another high",
                "priority": "high",
                "response_time_minutes": 5,
                "resolution_time_minutes": 50,
            },
        )
        assert response.status_code == 409

    async def test_policy_writes_require_permission(self, client, seeded):
        response = await client.delete(
            f"/sla-policies/{seeded.it_high_policy}", headers=seeded.headers("it_agent")
        )
        assert response.status_code == 403
