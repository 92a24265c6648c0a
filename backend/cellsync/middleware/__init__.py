"""
CellSync Backend — Middleware Package
=======================================

Middleware Chain (HTTP requests only; WebSocket upgrades pass through):
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    The order is reversed for responses, so the request ID set on the way in
    is available to the access log and is added to every response header.
"""
