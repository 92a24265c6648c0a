"""
CellSync Backend — Services Layer
===================================

Service Inventory:
    - EditStore:          append/range-read access to realtime_edits
    - EditLogService:     validates, appends and replays edits
    - ChangeNotifier:     in-process fan-out of new edits to subscribers
    - SpreadsheetService: spreadsheet CRUD and access checks
    - PermissionService:  per-spreadsheet permission management
    - AuthService:        bearer-token verification against the auth provider

Services take an AsyncSession per call and hold no per-request state; each
module exposes a singleton instance used by the routes.
"""
