"""Services Layer — the user directory workflow.

Invariants:
    - Services orchestrate IO (repositories, lookup gateway) around pure core logic
    - Expected outcomes are returned as values, never raised

Design Decisions:
    - One service class per aggregate (ADR: ExMA no god objects)
"""
