"""
Escalation Infrastructure Repositories
======================================
"""

from copy import deepcopy
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from checktrack.config import CheckStatus
from checktrack.core.exceptions import RepositoryException
from checktrack.escalation.application import IEscalationEventRepository
from checktrack.escalation.domain import EscalationEvent
from checktrack.escalation.infrastructure.models import EscalationEventModel


def event_to_entity(model: EscalationEventModel) -> EscalationEvent:
    return EscalationEvent(
        id=model.id,
        rule_id=model.rule_id,
        rule_name=model.rule_name,
        check_id=model.check_id,
        candidate_name=model.candidate_name,
        status=CheckStatus(model.status),
        days_pending=model.days_pending,
        escalated_to=list(model.escalated_to or []),
        escalated_at=model.escalated_at,
        acknowledged=model.acknowledged,
        acknowledged_by=model.acknowledged_by,
        acknowledged_at=model.acknowledged_at,
        resolved=model.resolved,
        resolved_by=model.resolved_by,
        resolved_at=model.resolved_at,
        notes=model.notes,
    )


class SQLAlchemyEscalationEventRepository(IEscalationEventRepository):
    """SQLAlchemy implementation of the escalation event log."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def add(self, event: EscalationEvent) -> EscalationEvent:
        self._session.add(EscalationEventModel(
            id=event.id,
            rule_id=event.rule_id,
            rule_name=event.rule_name,
            check_id=event.check_id,
            candidate_name=event.candidate_name,
            status=event.status.value,
            days_pending=event.days_pending,
            escalated_to=list(event.escalated_to),
            escalated_at=event.escalated_at,
            acknowledged=event.acknowledged,
            resolved=event.resolved,
        ))
        # Committed while the check lock is held so a concurrent cycle sees it.
        await self._session.commit()
        return event

    async def update(self, event: EscalationEvent) -> EscalationEvent:
        model = await self._session.get(EscalationEventModel, event.id)
        if model is None:
            raise RepositoryException(f"Escalation event {event.id} not found")

        model.acknowledged = event.acknowledged
        model.acknowledged_by = event.acknowledged_by
        model.acknowledged_at = event.acknowledged_at
        model.resolved = event.resolved
        model.resolved_by = event.resolved_by
        model.resolved_at = event.resolved_at
        model.notes = event.notes

        await self._session.flush()
        return event

    async def get_by_id(self, event_id: str) -> Optional[EscalationEvent]:
        model = await self._session.get(EscalationEventModel, event_id)
        return event_to_entity(model) if model else None

    async def list_by_check(self, check_id: str) -> List[EscalationEvent]:
        stmt = (
            select(EscalationEventModel)
            .where(EscalationEventModel.check_id == check_id)
            .order_by(EscalationEventModel.escalated_at.desc())
        )
        result = await self._session.execute(stmt)
        return [event_to_entity(model) for model in result.scalars().all()]

    async def list(self, active_only: bool = False, limit: int = 500) -> List[EscalationEvent]:
        stmt = select(EscalationEventModel)
        if active_only:
            stmt = stmt.where(EscalationEventModel.resolved.is_(False))
        stmt = stmt.order_by(EscalationEventModel.escalated_at.desc()).limit(limit)

        result = await self._session.execute(stmt)
        return [event_to_entity(model) for model in result.scalars().all()]

    async def get_counts(self, since: datetime) -> dict:
        model = EscalationEventModel
        totals = await self._session.execute(
            select(
                func.count(),
                func.count().filter(model.escalated_at >= since),
                func.count().filter(model.resolved.is_(False)),
                func.count().filter(model.acknowledged.is_(True), model.resolved.is_(False)),
            ).select_from(model)
        )
        total, recent, active, acknowledged_open = totals.one()

        resolved = await self._session.execute(
            select(model.escalated_at, model.resolved_at)
            .where(model.resolved.is_(True), model.resolved_at.is_not(None))
        )
        return {
            "total": total,
            "since": recent,
            "active": active,
            "acknowledged_not_resolved": acknowledged_open,
            "resolution_hours": [
                (resolved_at - escalated_at).total_seconds() / 3600
                for escalated_at, resolved_at in resolved.all()
            ],
        }


class InMemoryEscalationEventRepository(IEscalationEventRepository):
    """Dictionary-backed escalation event log."""

    def __init__(self):
        self._events: Dict[str, EscalationEvent] = {}

    async def add(self, event: EscalationEvent) -> EscalationEvent:
        self._events[event.id] = deepcopy(event)
        return event

    async def update(self, event: EscalationEvent) -> EscalationEvent:
        if event.id not in self._events:
            raise RepositoryException(f"Escalation event {event.id} not found")
        self._events[event.id] = deepcopy(event)
        return event

    async def get_by_id(self, event_id: str) -> Optional[EscalationEvent]:
        event = self._events.get(event_id)
        return deepcopy(event) if event else None

    async def list_by_check(self, check_id: str) -> List[EscalationEvent]:
        events = [e for e in self._events.values() if e.check_id == check_id]
        return [deepcopy(e) for e in sorted(events, key=lambda e: e.escalated_at, reverse=True)]

    async def list(self, active_only: bool = False, limit: int = 500) -> List[EscalationEvent]:
        events = [e for e in self._events.values() if e.is_active or not active_only]
        events.sort(key=lambda e: e.escalated_at, reverse=True)
        return [deepcopy(e) for e in events[:limit]]

    async def get_counts(self, since: datetime) -> dict:
        events = list(self._events.values())
        return {
            "total": len(events),
            "since": sum(1 for e in events if e.escalated_at >= since),
            "active": sum(1 for e in events if e.is_active),
            "acknowledged_not_resolved": sum(1 for e in events if e.acknowledged and not e.resolved),
            "resolution_hours": [e.resolution_hours for e in events if e.resolution_hours is not None],
        }
