"""Shell Layer — transactional services that load snapshots, call core/, and persist.

Invariants:
    - Public write methods (create, update, destroy, ...) are one transaction each
    - stage_* methods run inside the caller's transaction and never commit
"""
