"""
SmartQuery Backend: Middleware Package
======================================

Cross-cutting concerns applied to every request.

Middleware Chain:
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Rate Limit first: reject abusive clients before any work is done
    2. Request ID: correlation id for logs, error bodies and X-Request-ID
    3. Logging: method, path, status, duration (never bodies or auth headers)
"""
