"""
Sanctuary Backend — Middleware Package
========================================

What:  Cross-cutting concerns applied around the route handlers.

Middleware Chain (outermost first):
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Rate Limit: only the credential endpoints; rejects before any work
    2. Request ID: correlation ID for logs and error bodies
    3. Logging: method, path, status and duration per request
"""
