"""Services — async use cases over the ORM, one class per resource.

Invariants:
    - Every service takes an AsyncSession in __init__ and never creates its own
    - Services raise DynamicVaultError subclasses; routes never build error bodies
    - Writes commit inside the service method that owns the use case

Design Decisions:
    - Pure rules (pricing math, health transitions, role checks) live in core/;
      services load rows, call core, persist
"""
