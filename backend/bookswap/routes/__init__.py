# Routes package init
"""
BookSwap Backend — API Routes Package
======================================

What:  HTTP route handlers that accept requests and return responses.

Route Inventory:
    - users.py:         /users         accounts, credentials, profiles
    - publications.py:  /publications  listings, recommendations, interactions
    - reviews.py:       /reviews       reviews and average ratings
    - health.py:        /health        service health check

Design Principle:
    Routes are THIN. They resolve the caller (`current_user`), call one
    service method, and shape the response. Business rules and ownership
    checks live in the services.
"""
