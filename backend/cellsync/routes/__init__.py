"""
CellSync Backend — API Routes Package
=======================================

Route Inventory:
    - realtime.py:     POST /api/realtime/edits
                       GET  /api/realtime/history/{spreadsheet_id}
                       WS   /api/realtime/ws/{spreadsheet_id}
    - spreadsheets.py: /api/spreadsheets[...] and /api/permissions/{id}
    - health.py:       GET  /health

Routes are thin: they parse the request, resolve the caller, call one
service method, and return its result. Errors propagate to the global
handlers in main.py.
"""
