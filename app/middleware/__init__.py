# Middleware package init
"""
Postify Backend — Middleware Package
======================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters!):
    Request → [Request ID] → [Logging] → [Body Limit] → [GZip] → [CORS] → Route Handler

    1. Request ID first so every later log line and error body carries it
    2. Logging records the final status, including 413s from the body limit
    3. Body Limit rejects oversized uploads before the route parses JSON
"""
