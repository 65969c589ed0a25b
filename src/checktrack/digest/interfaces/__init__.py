"""
Digest Interfaces Layer
=======================
"""

from checktrack.digest.interfaces.controllers import router as digest_router

__all__ = ["digest_router"]
