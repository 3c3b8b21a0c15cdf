"""
Plant Progression Backend — API Routes Package
===============================================

Route Inventory:
    - auth.py:     POST /auth/register, POST /auth/login
    - plants.py:   /api/plants (list, create), /api/plants/{id} (get, patch, delete),
                   /api/plants/{id}/progress[/{progress_id}]
    - health.py:   GET /health
    - frontend.py: GET /<path> (SPA fallback, registered last)

Routes stay thin: parse the request, call a service, pick the status code.
"""
