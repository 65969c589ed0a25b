"""
Shared API
==========

Middleware, exception handlers and dependency providers shared by all routers.
"""
