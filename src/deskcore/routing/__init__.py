"""
Ticket Routing Module
=====================

Bounded Context for deciding who owns a ticket and which SLA policy governs it.

Responsibilities:
- Resolve the head of a department for auto-assignment
- Resolve the SLA policy for a priority/department pair
- Plan {assigned_to, sla_policy_id} for ticket create/update flows
- Persist tickets and signal assignment changes to the notification collaborator
- Maintain departments and SLA policies
"""
