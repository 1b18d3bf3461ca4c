"""
PropDesk Backend — Application Package Initializer
===================================================

What: Marks the `propdesk` directory as a Python package.
Why:  Enables module imports like `from propdesk.config import settings`.
Who:  Used implicitly by Python's import system and explicitly by Alembic, pytest, and uvicorn.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   PropertyService (Business Logic)  │  ← Validation, coercion, orchestration
    ├──────────────────┬──────────────────┤
    │  PropertyStore   │   ObjectStore    │  ← Record store / blob store adapters
    ├──────────────────┼──────────────────┤
    │ PostgreSQL(JSONB)│  S3 / local disk │  ← Opaque backing services
    └──────────────────┴──────────────────┘

    Backing-store handles are opened once in the lifespan and injected into
    each request; no layer reaches for a module-level connection.
"""

__version__ = "1.0.0"
