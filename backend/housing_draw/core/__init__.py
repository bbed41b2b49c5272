"""Core Layer — pure membership consistency rules, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, infrastructure/, models/ or db/
    - All functions are pure and deterministic: snapshots in, decisions out

Design Decisions:
    - Functional core separated from the transactional shell in services/
"""
