"""Core Layer — pure domain logic: records, rules, pagination, statistics.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - Functions are pure and deterministic; protocols describe the IO the shell provides

Design Decisions:
    - Functional core separated from imperative shell (ADR: ExMA impureim sandwich)
"""
