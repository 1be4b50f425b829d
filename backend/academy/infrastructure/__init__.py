"""Infrastructure Layer — database sessions and cross-cutting concerns.

Invariants:
    - Infrastructure never imports from core/ domain rules (errors excepted)
    - All storage failures mapped to typed errors at this boundary
"""
