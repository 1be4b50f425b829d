"""Core Layer — pure enrollment rules, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, models/ or db/
    - All functions are pure and deterministic (time is passed in, never read)

Design Decisions:
    - Functional core separated from imperative shell: services/ loads rows,
      asks core/ for a Transition, applies it inside one transaction
"""
