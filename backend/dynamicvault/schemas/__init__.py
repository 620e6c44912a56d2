"""Pydantic Schemas — request validation for API endpoints.

Invariants:
    - Schemas validate at the system boundary (request bodies)
    - JSON keys are camelCase on the wire, snake_case in Python
    - Wallet addresses leave validation lowercase

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence
"""
