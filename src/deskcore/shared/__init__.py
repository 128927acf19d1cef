"""
Shared Kernel Module
====================

Shared infrastructure used across the bounded contexts (access and routing).

Architecture Pattern: Modular Monolith
- Each module (access, routing) is a bounded context
- Shared kernel contains only generic infrastructure

DO NOT add authorization or routing rules to the shared kernel.
"""
