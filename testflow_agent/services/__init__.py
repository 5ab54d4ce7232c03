"""Service Layer — orchestration of auth, tool catalog, and the agent loop.

Invariants:
    - Services depend on core/ and infrastructure/, never on api/
    - Tool-level failures are absorbed here; auth/backend failures propagate

Design Decisions:
    - One class per component (catalog, executor, conversation, facade) (ADR: no god objects)
"""
