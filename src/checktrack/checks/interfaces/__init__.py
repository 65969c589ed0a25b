"""
Check Interfaces Layer
======================
"""

from checktrack.checks.interfaces.controllers import history_router, router as checks_router

__all__ = ["checks_router", "history_router"]
