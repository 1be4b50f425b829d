"""Pydantic Schemas — request/response validation for API endpoints.

Invariants:
    - Schemas validate at system boundary (request bodies, API responses)
    - Domain limits (proof and notes length) come from core/, not duplicated

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence
"""
