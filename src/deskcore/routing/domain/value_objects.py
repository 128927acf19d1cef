"""
Routing Value Objects
======================

The requested-assignee value and the pure selection rules behind the
department-head and SLA-policy resolvers.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple, Union
from uuid import UUID

from deskcore.config import AUTO_ASSIGN, Priority
from deskcore.routing.domain.entities import SlaPolicy


@dataclass(frozen=True)
class RequestedAssignee:
    """
    What the caller asked for in the assignee field.

    Exactly one of: auto-assign, an explicit user, or nobody.
    """

    auto: bool = False
    user_id: Optional[UUID] = None

    @classmethod
    def parse(cls, value: Union[str, UUID, None]) -> "RequestedAssignee":
        """
        Parse the raw field.

        Raises:
            ValueError: value is neither the sentinel, empty, nor a UUID
        """
        if value is None:
            return cls()
        if isinstance(value, UUID):
            return cls(user_id=value)

        value = value.strip()
        if not value:
            return cls()
        if value == AUTO_ASSIGN:
            return cls(auto=True)
        return cls(user_id=UUID(value))

    @property
    def is_explicit(self) -> bool:
        return self.user_id is not None


class RoutingRules:
    """
    Pure functions for routing decisions.

    Stateless: the resolvers fetch candidates, these rules pick among them.
    """

    @staticmethod
    def pick_department_head(candidate_ids: Iterable[UUID]) -> Tuple[Optional[UUID], int]:
        """
        Pick the head among the matching profiles.

        More than one head is a data anomaly; the lowest ID wins so the
        choice is stable between calls.

        Returns:
            Tuple of (chosen user ID or None, number of candidates)
        """
        candidates = sorted(set(candidate_ids), key=str)
        if not candidates:
            return None, 0
        return candidates[0], len(candidates)

    @staticmethod
    def rank_sla_policies(
        policies: Iterable[SlaPolicy],
        priority: Priority,
        department_id: Optional[UUID]
    ) -> List[SlaPolicy]:
        """
        Order the applicable policies, best first.

        Candidates share the priority and are either specific to the
        department or the fallback. Department-specific policies come first,
        ties break on the smallest ID.
        """
        candidates = [
            p for p in policies
            if p.is_active
            and p.priority == priority
            and (p.department_id is None or (department_id is not None and p.department_id == department_id))
        ]
        return sorted(candidates, key=lambda p: (p.is_fallback, str(p.id)))

    @staticmethod
    def pick_sla_policy(
        policies: Iterable[SlaPolicy],
        priority: Priority,
        department_id: Optional[UUID]
    ) -> Tuple[Optional[SlaPolicy], int]:
        """
        Pick the governing policy.

        Returns:
            Tuple of (policy or None, number of candidates at the winning tier)
        """
        ranked = RoutingRules.rank_sla_policies(policies, priority, department_id)
        if not ranked:
            return None, 0
        best = ranked[0]
        same_tier = sum(1 for p in ranked if p.is_fallback == best.is_fallback)
        return best, same_tier
