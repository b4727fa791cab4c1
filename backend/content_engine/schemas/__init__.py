"""Pydantic Schemas — request/response validation for API endpoints.

Invariants:
    - Schemas validate envelopes at the system boundary; per-attribute payload
      checks belong to core/payload.py because attribute lists are runtime data

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence
"""
