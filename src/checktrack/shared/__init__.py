"""
Shared Kernel Module
====================

Shared infrastructure used across all bounded contexts
(checks, SLA, escalation, digest).

Architecture Pattern: Modular Monolith
- Each module is a bounded context
- Shared kernel contains only generic infrastructure

DO NOT add lifecycle business logic to the shared kernel.
"""
