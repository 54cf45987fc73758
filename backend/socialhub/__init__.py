"""
SocialHub Backend — Application Package
=========================================

A social-media API: accounts, posts with media stored in the author's Google
Drive, comments, follows and notifications, with a best-effort copy of
activity into a Google spreadsheet.

Layers:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← counters, notifications,
    │                                     │    mirror, drive, workflows
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
