"""
CellSync Backend — Application Package
========================================

Collaborative-spreadsheet REST backend built around an append-only edit log
with live fan-out of new edits to subscribed clients.

Layers:

    ┌─────────────────────────────────────┐
    │      Routes (HTTP + WebSocket)      │  ← request parsing, auth
    ├─────────────────────────────────────┤
    │   Services (edit log, notifier,     │  ← validation, ordering,
    │   spreadsheets, permissions, auth)  │    fan-out, access checks
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
