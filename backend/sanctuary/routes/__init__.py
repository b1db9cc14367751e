"""
Sanctuary Backend — API Routes Package
========================================

Route Inventory:
    - events.py:   /api/events           (CRUD, upcoming list, expiry purge)
    - sermons.py:  /api/sermons          (CRUD, multipart audio upload)
    - users.py:    /api/users            (signup, login, password flows)
    - media.py:    GET /mp3/{filename}   (sermon audio)
    - health.py:   GET /health           (database probe)

Routes stay thin: they read the request, call a service, and return its
response model. Business rules live in sanctuary.services.
"""
