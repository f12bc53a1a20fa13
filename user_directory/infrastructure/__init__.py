"""Infrastructure Layer — database, external service clients and cross-cutting concerns.

Invariants:
    - Infrastructure implements the protocols declared in core/repository_protocols.py
    - External calls are bounded by timeouts and their failures mapped before leaving

Design Decisions:
    - Resilient wrappers over raw clients (ADR: ExMA single responsibility)
"""
