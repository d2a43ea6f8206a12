"""
SmartQuery Backend: API Routes Package
======================================

Route Inventory:
    - auth.py:     POST /api/register, POST /api/login
    - queries.py:  GET/POST /api/queries, GET /api/queries/{id},
                   POST /api/queries/update/{id}, DELETE /api/queries/{id},
                   POST /api/queries/share/{id}
    - history.py:  GET /api/history, DELETE /api/history/all,
                   DELETE /api/history/{id}
    - share.py:    GET /api/share/{token} (JSON), GET /share/{token} (HTML)
    - ai.py:       POST /api/ai/{action}
    - health.py:   GET /health

Routes stay thin: read the request, call a service with the owner id from
the Auth Gate, shape the response. Errors are raised as application
exceptions and rendered by the global handlers in main.py.
"""
