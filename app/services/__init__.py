# Services package init
"""
Postify Backend — Services Layer
==================================

What:  Business logic between routes (HTTP) and the database.

Service Inventory:
    - PostService: posts, likes and comments (validation, ownership,
      pagination, like toggling)
"""
