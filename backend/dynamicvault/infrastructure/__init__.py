"""Infrastructure Layer — database session management and logging setup.

Invariants:
    - Infrastructure depends on core/ only for the error hierarchy
    - Driver exceptions are mapped to DatabaseError before leaving this layer
"""
