"""Services Layer — query engine, formatter, uniqueness validator, document service.

Invariants:
    - Services receive their stores through constructors (no module-level state)
    - Only DocumentService commits; everything below it flushes

Design Decisions:
    - One class per component for locality; DocumentService composes them
"""
