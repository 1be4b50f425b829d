"""Service Layer — imperative shell around the pure enrollment rules.

Invariants:
    - Services own IO: they load rows, call core/ planners, apply the result
    - Every mutating operation runs inside run_in_transaction (one commit or none)
    - Only capacity_manager.py writes Batch.current_students
"""
