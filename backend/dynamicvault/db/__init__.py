"""Database Infrastructure — declarative Base and non-request session helpers.

Invariants:
    - Single async engine per process for request handling (infrastructure/database.py)
    - All sessions are async (AsyncSession)

Design Decisions:
    - asyncpg driver for PostgreSQL in production, aiosqlite for local dev and tests
"""
