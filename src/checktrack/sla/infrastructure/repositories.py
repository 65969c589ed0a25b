"""
SLA Infrastructure Repositories
===============================

Notification log implementations using SQLAlchemy and an in-memory set.
"""

from datetime import datetime
from typing import Dict, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from checktrack.config import CheckStatus, SLAState
from checktrack.sla.application import ISLANotificationLogRepository
from checktrack.sla.infrastructure.models import SLANotificationLogModel


class SQLAlchemySLANotificationLogRepository(ISLANotificationLogRepository):
    """SQLAlchemy implementation of the SLA notification log."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def was_sent(self, check_id: str, status: CheckStatus, level: SLAState) -> bool:
        stmt = select(SLANotificationLogModel.id).where(
            SLANotificationLogModel.check_id == check_id,
            SLANotificationLogModel.status == CheckStatus(status).value,
            SLANotificationLogModel.level == SLAState(level).value,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def mark_sent(self, check_id: str, status: CheckStatus, level: SLAState, sent_at: datetime) -> None:
        if await self.was_sent(check_id, status, level):
            return
        self._session.add(SLANotificationLogModel(
            check_id=check_id,
            status=CheckStatus(status).value,
            level=SLAState(level).value,
            sent_at=sent_at,
        ))
        await self._session.flush()


class InMemorySLANotificationLogRepository(ISLANotificationLogRepository):
    """Dictionary-backed notification log."""

    def __init__(self):
        self._sent: Dict[Tuple[str, CheckStatus, SLAState], datetime] = {}

    async def was_sent(self, check_id: str, status: CheckStatus, level: SLAState) -> bool:
        return (check_id, CheckStatus(status), SLAState(level)) in self._sent

    async def mark_sent(self, check_id: str, status: CheckStatus, level: SLAState, sent_at: datetime) -> None:
        self._sent.setdefault((check_id, CheckStatus(status), SLAState(level)), sent_at)

    def __len__(self) -> int:
        return len(self._sent)
