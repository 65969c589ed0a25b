"""
Check Infrastructure Repositories
=================================

Concrete implementations of the check and status history repository
interfaces: SQLAlchemy for the service, in-memory for embedding and tests.
"""

from collections import Counter
from copy import deepcopy
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from sqlalchemy import Select, and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from checktrack.checks.application import (
    ICheckRepository, IStatusHistoryRepository, StatusHistoryQuery,
)
from checktrack.checks.domain import (
    BackgroundCheck, CheckResult, CheckTypeRequirement, StatusChangeRecord,
)
from checktrack.checks.infrastructure.models import CheckModel, StatusChangeModel
from checktrack.config import CheckStatus


# ========== Mapping helpers ==========

def _serialize_results(results: List[CheckResult]) -> list:
    return [
        {
            "check_type": result.check_type,
            "status": result.status.value,
            "completed_date": result.completed_date.isoformat() if result.completed_date else None,
        }
        for result in results
    ]


def _deserialize_results(payload: list) -> List[CheckResult]:
    return [
        CheckResult(
            check_type=item["check_type"],
            status=item["status"],
            completed_date=datetime.fromisoformat(item["completed_date"]) if item.get("completed_date") else None,
        )
        for item in payload or []
    ]


def check_to_entity(model: CheckModel) -> BackgroundCheck:
    """Convert ORM row to domain entity."""
    return BackgroundCheck(
        id=model.id,
        candidate_id=model.candidate_id,
        candidate_name=model.candidate_name,
        status=model.status,
        initiated_by=model.initiated_by,
        initiated_by_name=model.initiated_by_name,
        initiated_date=model.initiated_date,
        check_types=[
            CheckTypeRequirement(type=item["type"], required=item.get("required", True))
            for item in model.check_types or []
        ],
        results=_deserialize_results(model.results),
        consent_given=model.consent_given,
        consent_date=model.consent_date,
        completed_date=model.completed_date,
        overall_verdict=model.overall_verdict,
        reviewed_by=model.reviewed_by,
        review_notes=model.review_notes,
        status_entered_at=model.status_entered_at,
        updated_at=model.updated_at,
    )


def _apply_check(model: CheckModel, check: BackgroundCheck) -> None:
    model.candidate_id = check.candidate_id
    model.candidate_name = check.candidate_name
    model.status = check.status.value
    model.status_entered_at = check.status_entered_at
    model.initiated_by = check.initiated_by
    model.initiated_by_name = check.initiated_by_name
    model.initiated_date = check.initiated_date
    model.check_types = [{"type": t.type, "required": t.required} for t in check.check_types]
    model.results = _serialize_results(check.results)
    model.consent_given = check.consent_given
    model.consent_date = check.consent_date
    model.completed_date = check.completed_date
    model.overall_verdict = check.overall_verdict.value if check.overall_verdict else None
    model.reviewed_by = check.reviewed_by
    model.review_notes = check.review_notes
    if check.updated_at:
        model.updated_at = check.updated_at


def record_to_entity(model: StatusChangeModel) -> StatusChangeRecord:
    return StatusChangeRecord(
        id=model.id,
        check_id=model.check_id,
        candidate_id=model.candidate_id,
        candidate_name=model.candidate_name,
        previous_status=CheckStatus(model.previous_status),
        new_status=CheckStatus(model.new_status),
        changed_by=model.changed_by,
        changed_by_name=model.changed_by_name,
        reason=model.reason,
        notes=model.notes,
        timestamp=model.timestamp,
        automated=model.automated,
        metadata=dict(model.record_metadata or {}),
    )


# ========== SQLAlchemy ==========

class SQLAlchemyCheckRepository(ICheckRepository):
    """
    SQLAlchemy implementation of check repository.

    Handles persistence of BackgroundCheck entities using async SQLAlchemy.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, check_id: str) -> Optional[BackgroundCheck]:
        model = await self._session.get(CheckModel, check_id)
        return check_to_entity(model) if model else None

    async def exists(self, check_id: str) -> bool:
        stmt = select(CheckModel.id).where(CheckModel.id == check_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def save(self, check: BackgroundCheck) -> BackgroundCheck:
        model = await self._session.get(CheckModel, check.id)
        if model is None:
            model = CheckModel(id=check.id)
            self._session.add(model)

        _apply_check(model, check)
        await self._session.flush()
        return check

    async def list(
        self,
        statuses: Optional[Sequence[CheckStatus]] = None,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> List[BackgroundCheck]:
        stmt = select(CheckModel).order_by(CheckModel.initiated_date)
        if statuses:
            stmt = stmt.where(CheckModel.status.in_([CheckStatus(s).value for s in statuses]))
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await self._session.execute(stmt)
        return [check_to_entity(model) for model in result.scalars().all()]


class SQLAlchemyStatusHistoryRepository(IStatusHistoryRepository):
    """Append-only status history backed by the 'status_history' table."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def append(self, record: StatusChangeRecord) -> StatusChangeRecord:
        model = StatusChangeModel(
            id=record.id,
            check_id=record.check_id,
            candidate_id=record.candidate_id,
            candidate_name=record.candidate_name,
            previous_status=record.previous_status.value,
            new_status=record.new_status.value,
            changed_by=record.changed_by,
            changed_by_name=record.changed_by_name,
            reason=record.reason,
            notes=record.notes,
            timestamp=record.timestamp,
            automated=record.automated,
            record_metadata=dict(record.metadata),
        )
        self._session.add(model)
        await self._session.flush()
        return record

    async def list_by_check(self, check_id: str) -> List[StatusChangeRecord]:
        return await self._fetch(self._filtered(StatusHistoryQuery(check_id=check_id)))

    async def list_by_candidate(self, candidate_id: str) -> List[StatusChangeRecord]:
        return await self._fetch(self._filtered(StatusHistoryQuery(candidate_id=candidate_id)))

    async def list_between(self, start: datetime, end: datetime) -> List[StatusChangeRecord]:
        return await self._fetch(self._filtered(StatusHistoryQuery(date_from=start, date_to=end)))

    async def query(self, query: StatusHistoryQuery) -> List[StatusChangeRecord]:
        return await self._fetch(self._filtered(query).limit(query.limit))

    async def get_counts(self, since: datetime) -> dict:
        totals = await self._session.execute(
            select(
                func.count(),
                func.count().filter(StatusChangeModel.timestamp >= since),
                func.count().filter(StatusChangeModel.automated.is_(True)),
            ).select_from(StatusChangeModel)
        )
        total, recent, automated = totals.one()

        by_status = await self._session.execute(
            select(StatusChangeModel.new_status, func.count())
            .group_by(StatusChangeModel.new_status)
        )
        return {
            "total": total,
            "since": recent,
            "automated": automated,
            "by_status": {status: count for status, count in by_status.all()},
        }

    @staticmethod
    def _filtered(query: StatusHistoryQuery) -> Select:
        """Filter conditions and newest-first ordering, without a limit."""
        conditions = []

        if query.check_id:
            conditions.append(StatusChangeModel.check_id == query.check_id)
        if query.candidate_id:
            conditions.append(StatusChangeModel.candidate_id == query.candidate_id)
        if query.status:
            conditions.append(or_(
                StatusChangeModel.new_status == query.status,
                StatusChangeModel.previous_status == query.status,
            ))
        if query.changed_by:
            conditions.append(StatusChangeModel.changed_by == query.changed_by)
        if query.date_from:
            conditions.append(StatusChangeModel.timestamp >= query.date_from)
        if query.date_to:
            conditions.append(StatusChangeModel.timestamp <= query.date_to)
        if query.automated is not None:
            conditions.append(StatusChangeModel.automated == query.automated)

        stmt = select(StatusChangeModel)
        if conditions:
            stmt = stmt.where(and_(*conditions))
        return stmt.order_by(StatusChangeModel.timestamp.desc())

    async def _fetch(self, stmt: Select) -> List[StatusChangeRecord]:
        result = await self._session.execute(stmt)
        return [record_to_entity(model) for model in result.scalars().all()]


# ========== In-memory ==========

class InMemoryCheckRepository(ICheckRepository):
    """Dictionary-backed check store. Returns copies so callers cannot mutate stored state."""

    def __init__(self, checks: Optional[Sequence[BackgroundCheck]] = None):
        self._checks: Dict[str, BackgroundCheck] = {}
        for check in checks or []:
            self._checks[check.id] = deepcopy(check)

    async def get_by_id(self, check_id: str) -> Optional[BackgroundCheck]:
        check = self._checks.get(check_id)
        return deepcopy(check) if check else None

    async def exists(self, check_id: str) -> bool:
        return check_id in self._checks

    async def save(self, check: BackgroundCheck) -> BackgroundCheck:
        self._checks[check.id] = deepcopy(check)
        return check

    async def list(
        self,
        statuses: Optional[Sequence[CheckStatus]] = None,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> List[BackgroundCheck]:
        checks = sorted(self._checks.values(), key=lambda c: c.initiated_date)
        if statuses:
            wanted = {CheckStatus(s) for s in statuses}
            checks = [c for c in checks if c.status in wanted]
        checks = checks[offset:]
        if limit is not None:
            checks = checks[:limit]
        return [deepcopy(c) for c in checks]


class InMemoryStatusHistoryRepository(IStatusHistoryRepository):
    """List-backed append-only history."""

    def __init__(self):
        self._records: List[StatusChangeRecord] = []

    @property
    def records(self) -> List[StatusChangeRecord]:
        return list(self._records)

    async def append(self, record: StatusChangeRecord) -> StatusChangeRecord:
        self._records.append(record)
        return record

    async def list_by_check(self, check_id: str) -> List[StatusChangeRecord]:
        return self._matching(StatusHistoryQuery(check_id=check_id))

    async def list_by_candidate(self, candidate_id: str) -> List[StatusChangeRecord]:
        return self._matching(StatusHistoryQuery(candidate_id=candidate_id))

    async def list_between(self, start: datetime, end: datetime) -> List[StatusChangeRecord]:
        return self._matching(StatusHistoryQuery(date_from=start, date_to=end))

    async def query(self, query: StatusHistoryQuery) -> List[StatusChangeRecord]:
        return self._matching(query)[:query.limit]

    async def get_counts(self, since: datetime) -> dict:
        return {
            "total": len(self._records),
            "since": sum(1 for record in self._records if record.timestamp >= since),
            "automated": sum(1 for record in self._records if record.automated),
            "by_status": dict(Counter(record.new_status.value for record in self._records)),
        }

    def _matching(self, query: StatusHistoryQuery) -> List[StatusChangeRecord]:
        matches = [record for record in self._records if query.matches(record)]
        matches.sort(key=lambda record: record.timestamp, reverse=True)
        return matches
