"""Infrastructure Layer — external service clients and cross-cutting concerns.

Invariants:
    - Infrastructure never imports from services/ or api/
    - Every httpx failure is mapped to a core/errors.py type before leaving this layer

Design Decisions:
    - Thin wrappers over httpx.AsyncClient: transport injectable for tests (ADR: single responsibility)
"""
