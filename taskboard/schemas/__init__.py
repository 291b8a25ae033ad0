"""Pydantic Schemas — request body shapes for API endpoints.

Invariants:
    - Schemas only map JSON keys (camelCase aliases) to Python names
    - Value checks live in core/validate_entities.py so every violation is
      reported together in one InvalidArgumentError

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence
"""
