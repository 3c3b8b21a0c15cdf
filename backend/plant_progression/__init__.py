"""
Plant Progression Backend — Application Package
================================================

What: REST backend for tracking plants and their photo timelines.
Who:  Served by uvicorn via `plant_progression.main:create_app`.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns, auth gate
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← Ownership, uploads, tokens
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
