"""Tests for the pure routing rules and the requested-assignee value."""

from uuid import UUID, uuid4

import pytest

from deskcore.config import Priority
from deskcore.routing.domain import RequestedAssignee, RoutingRules, SlaPolicy

D1 = uuid4()
D2 = uuid4()


def _policy(priority=Priority.HIGH, department_id=None, is_active=True, policy_id=None):
    return SlaPolicy(
        id=policy_id or uuid4(),
        name="policy",
        priority=priority,
        response_time_minutes=30,
        resolution_time_minutes=240,
        department_id=department_id,
        is_active=is_active,
    )


class TestRequestedAssignee:

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_empty_means_nobody(self, raw):
        requested = RequestedAssignee.parse(raw)
        assert not requested.auto
        assert requested.user_id is None

    def test_sentinel_means_auto(self):
        assert RequestedAssignee.parse("auto-assign") == RequestedAssignee(auto=True)

    def test_user_id_is_explicit(self):
        user_id = uuid4()
        requested = RequestedAssignee.parse(str(user_id))
        assert requested.is_explicit
        assert requested.user_id == user_id

    @pytest.mark.parametrize("raw", ["auto", "AUTO-ASSIGN", "someone@example.com"])
    def test_garbage_is_rejected(self, raw):
        with pytest.raises(ValueError):
            RequestedAssignee.parse(raw)


class TestPickDepartmentHead:

    def test_no_candidates(self):
        assert RoutingRules.pick_department_head([]) == (None, 0)

    def test_lowest_id_wins_regardless_of_order(self):
        low = UUID("00000000-0000-0000-0000-000000000001")
        high = UUID("ffffffff-0000-0000-0000-000000000000")

        assert RoutingRules.pick_department_head([high, low]) == (low, 2)
        assert RoutingRules.pick_department_head([low, high]) == (low, 2)


class TestSlaPolicySelection:

    def test_department_policy_beats_fallback(self):
        fallback = _policy(department_id=None)
        specific = _policy(department_id=D1)

        policy, _ = RoutingRules.pick_sla_policy([fallback, specific], Priority.HIGH, D1)

        assert policy == specific

    def test_fallback_when_department_has_none(self):
        fallback = _policy(department_id=None)
        other = _policy(department_id=D2)

        policy, _ = RoutingRules.pick_sla_policy([fallback, other], Priority.HIGH, D1)

        assert policy == fallback

    def test_no_department_uses_fallback_only(self):
        specific = _policy(department_id=D1)

        assert RoutingRules.pick_sla_policy([specific], Priority.HIGH, None) == (None, 0)

    def test_priority_must_match(self):
        policies = [_policy(priority=Priority.LOW), _policy(priority=Priority.LOW, department_id=D1)]

        assert RoutingRules.pick_sla_policy(policies, Priority.HIGH, D1) == (None, 0)

    def test_inactive_policies_are_skipped(self):
        inactive = _policy(department_id=D1, is_active=False)
        fallback = _policy(department_id=None)

        policy, _ = RoutingRules.pick_sla_policy([inactive, fallback], Priority.HIGH, D1)

        assert policy == fallback

    def test_tie_breaks_on_smallest_id(self):
        a = _policy(department_id=D1, policy_id=UUID("10000000-0000-0000-0000-000000000000"))
        b = _policy(department_id=D1, policy_id=UUID("20000000-0000-0000-0000-000000000000"))

        assert RoutingRules.pick_sla_policy([b, a], Priority.HIGH, D1) == (a, 2)
