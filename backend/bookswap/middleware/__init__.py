# Middleware package init
"""
BookSwap Backend — Middleware Package
======================================

What:  Cross-cutting concerns applied to every request, plus the bearer
       token dependency (auth.py) that routes opt into.

Middleware Chain (order matters!):
    Request → [CORS] → [Request ID] → [Logging] → [Rate Limit] → Route Handler

    1. CORS outermost: even a 429 carries the headers the browser needs
       to read it
    2. Request ID: correlation id for logs and error bodies, including 429s
    3. Logging: one access line with status and duration, rejected
       requests included
    4. Rate Limit: reject abusive clients before any route work

Authentication is NOT in the chain: public, optional and admin-only
endpoints coexist, so each route declares `Depends(current_user(...))`.
"""
