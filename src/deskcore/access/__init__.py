"""
Access Module
=============

Bounded Context for authorization.

Responsibilities:
- Resolve the acting user's context (role, department) per request
- Decide whether a context holds a capability (one shared engine for UI
  gating and server-side enforcement)
- Replace role grants in bulk and seed the default matrix
"""
