"""
Escalation Interfaces Layer
===========================
"""

from checktrack.escalation.interfaces.controllers import router as escalation_router

__all__ = ["escalation_router"]
