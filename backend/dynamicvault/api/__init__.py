"""API Layer — FastAPI routes, request dependencies, and error handlers.

Invariants:
    - Routes registered explicitly in main.py (no auto-discovery)
    - All endpoints return camelCase JSON bodies

Design Decisions:
    - Thin routes delegate to services; serializers.py owns the wire shape
"""
