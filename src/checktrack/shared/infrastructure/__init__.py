"""
Infrastructure Layer
=====================

Low-level technical concerns shared by every bounded context:
- Structured logging
- Per-check locks
- Background cycle scheduling
"""
