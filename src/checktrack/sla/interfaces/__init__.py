"""
SLA Interfaces Layer
====================
"""

from checktrack.sla.interfaces.controllers import router as sla_router

__all__ = ["sla_router"]
