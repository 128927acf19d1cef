"""Tests for the resolvers and the assignment planner."""

import logging
from uuid import UUID, uuid4

import pytest

from deskcore.config import Priority, Role
from deskcore.routing.application import (
    DepartmentHeadResolver,
    SlaPolicyResolver,
    TicketAssignmentPlanner,
)
from deskcore.routing.domain import AssignmentPlan, RequestedAssignee, SlaPolicy

from fakes import FakeProfile, InMemoryProfiles, InMemorySlaPolicyRepository

D1 = uuid4()
D2 = uuid4()
HEAD_D1 = uuid4()


def _policy(priority, department_id=None):
    return SlaPolicy(
        id=uuid4(),
        name=f"{priority.value} {'fallback' if department_id is None else 'department'}",
        priority=priority,
        response_time_minutes=60,
        resolution_time_minutes=480,
        department_id=department_id,
    )


HIGH_D1 = _policy(Priority.HIGH, D1)
HIGH_FALLBACK = _policy(Priority.HIGH)


@pytest.fixture
def profiles():
    return InMemoryProfiles([
        FakeProfile(HEAD_D1, Role.DEPARTMENT_HEAD.value, D1),
        FakeProfile(uuid4(), Role.AGENT.value, D1),
        FakeProfile(uuid4(), Role.AGENT.value, D2),
    ])


@pytest.fixture
def policies():
    return InMemorySlaPolicyRepository([HIGH_D1, HIGH_FALLBACK])


@pytest.fixture
def planner(profiles, policies):
    return TicketAssignmentPlanner(
        DepartmentHeadResolver(profiles),
        SlaPolicyResolver(policies),
    )


class TestDepartmentHeadResolver:

    async def test_finds_head(self, profiles):
        assert await DepartmentHeadResolver(profiles).resolve_head(D1) == HEAD_D1

    async def test_department_without_head(self, profiles):
        assert await DepartmentHeadResolver(profiles).resolve_head(D2) is None

    async def test_no_department(self, profiles):
        assert await DepartmentHeadResolver(profiles).resolve_head(None) is None

    async def test_deactivated_head_is_ignored(self, profiles):
        profiles.profiles[HEAD_D1].deleted = True
        assert await DepartmentHeadResolver(profiles).resolve_head(D1) is None

    async def test_lookup_failure_degrades_to_none(self, caplog):
        resolver = DepartmentHeadResolver(InMemoryProfiles(fail=True))

        with caplog.at_level(logging.WARNING):
            assert await resolver.resolve_head(D1) is None

        assert "Department head lookup failed" in caplog.text

    async def test_several_heads_pick_lowest_and_warn(self, caplog):
        low = UUID("00000000-0000-0000-0000-00000000000a")
        high = UUID("00000000-0000-0000-0000-00000000000b")
        profiles = InMemoryProfiles([
            FakeProfile(high, Role.DEPARTMENT_HEAD.value, D1),
            FakeProfile(low, Role.DEPARTMENT_HEAD.value, D1),
        ])

        with caplog.at_level(logging.WARNING):
            assert await DepartmentHeadResolver(profiles).resolve_head(D1) == low

        assert "more than one head" in caplog.text


class TestSlaPolicyResolver:

    async def test_department_policy_wins(self, policies):
        assert await SlaPolicyResolver(policies).resolve_policy(Priority.HIGH, D1) == HIGH_D1.id

    async def test_fallback_for_other_department(self, policies):
        assert await SlaPolicyResolver(policies).resolve_policy(Priority.HIGH, D2) == HIGH_FALLBACK.id

    async def test_no_policy_for_priority(self, policies):
        assert await SlaPolicyResolver(policies).resolve_policy(Priority.LOW, D1) is None

    async def test_lookup_failure_degrades_to_none(self):
        resolver = SlaPolicyResolver(InMemorySlaPolicyRepository(fail=True))
        assert await resolver.resolve_policy(Priority.HIGH, D1) is None


class TestPlanner:

    async def test_auto_assign_picks_primary_department_head(self, planner):
        plan = await planner.plan(Priority.HIGH, [D1, D2], RequestedAssignee(auto=True))
        assert plan == AssignmentPlan(assigned_to=HEAD_D1, sla_policy_id=HIGH_D1.id)

    async def test_only_primary_department_counts(self, planner):
        plan = await planner.plan(Priority.HIGH, [D2, D1], RequestedAssignee(auto=True))
        assert plan == AssignmentPlan(assigned_to=None, sla_policy_id=HIGH_FALLBACK.id)

    async def test_auto_assign_without_head_leaves_unassigned(self, planner):
        plan = await planner.plan(Priority.HIGH, [D2], RequestedAssignee.parse("auto-assign"))
        assert plan.assigned_to is None

    async def test_auto_assign_without_departments(self, planner):
        plan = await planner.plan(Priority.HIGH, [], RequestedAssignee(auto=True))
        assert plan == AssignmentPlan(assigned_to=None, sla_policy_id=HIGH_FALLBACK.id)

    async def test_explicit_assignee_is_kept(self, planner):
        user_id = uuid4()
        plan = await planner.plan(Priority.HIGH, [D1], RequestedAssignee(user_id=user_id))
        assert plan.assigned_to == user_id

    async def test_no_assignee_requested(self, planner):
        plan = await planner.plan(Priority.HIGH, [D1], RequestedAssignee())
        assert plan == AssignmentPlan(assigned_to=None, sla_policy_id=HIGH_D1.id)

    async def test_plan_is_idempotent(self, planner):
        requested = RequestedAssignee(auto=True)
        first = await planner.plan(Priority.HIGH, [D1], requested)
        second = await planner.plan(Priority.HIGH, [D1], requested)
        assert first == second

    async def test_never_raises_when_every_lookup_fails(self):
        planner = TicketAssignmentPlanner(
            DepartmentHeadResolver(InMemoryProfiles(fail=True)),
            SlaPolicyResolver(InMemorySlaPolicyRepository(fail=True)),
        )
        plan = await planner.plan(Priority.CRITICAL, [D1], RequestedAssignee(auto=True))
        assert plan == AssignmentPlan()


class TestAssignmentChanged:

    def test_no_signal_when_assignee_unchanged(self):
        plan = AssignmentPlan(assigned_to=HEAD_D1)
        assert TicketAssignmentPlanner.assignment_changed(uuid4(), HEAD_D1, plan) is None

    def test_signal_carries_both_assignees(self):
        ticket_id, previous = uuid4(), uuid4()
        signal = TicketAssignmentPlanner.assignment_changed(
            ticket_id, previous, AssignmentPlan(assigned_to=HEAD_D1)
        )
        assert (signal.ticket_id, signal.previous_assignee, signal.new_assignee) == (
            ticket_id, previous, HEAD_D1
        )
