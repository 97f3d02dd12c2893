# Routes package init
"""
Postify Backend — API Routes Package
======================================

Route Inventory:
    - posts.py:   /api/posts and its like/comment sub-routes
    - health.py:  GET /api/health

Routes stay thin: extract request data, call PostService, return the
response model. Business rules live in app/services.
"""
