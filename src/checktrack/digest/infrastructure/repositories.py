"""
Digest Infrastructure Repositories
==================================
"""

from copy import deepcopy
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from checktrack.config import DigestFrequency
from checktrack.digest.application import IDigestPreferencesRepository
from checktrack.digest.domain import DigestPreferences
from checktrack.digest.infrastructure.models import DigestPreferencesModel


def preferences_to_entity(model: DigestPreferencesModel) -> DigestPreferences:
    return DigestPreferences(
        user_id=model.user_id,
        frequency=DigestFrequency(model.frequency),
        include_status_changes=model.include_status_changes,
        include_pending_actions=model.include_pending_actions,
        include_overdue_items=model.include_overdue_items,
        email_address=model.email_address,
        last_sent_at=model.last_sent_at,
    )


class SQLAlchemyDigestPreferencesRepository(IDigestPreferencesRepository):
    """SQLAlchemy implementation of digest preferences storage."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get(self, user_id: str) -> Optional[DigestPreferences]:
        model = await self._session.get(DigestPreferencesModel, user_id)
        return preferences_to_entity(model) if model else None

    async def save(self, preferences: DigestPreferences) -> DigestPreferences:
        model = await self._session.get(DigestPreferencesModel, preferences.user_id)
        if model is None:
            model = DigestPreferencesModel(user_id=preferences.user_id)
            self._session.add(model)

        model.frequency = preferences.frequency.value
        model.include_status_changes = preferences.include_status_changes
        model.include_pending_actions = preferences.include_pending_actions
        model.include_overdue_items = preferences.include_overdue_items
        model.email_address = preferences.email_address
        model.last_sent_at = preferences.last_sent_at

        await self._session.flush()
        return preferences

    async def list_enabled(self) -> List[DigestPreferences]:
        stmt = select(DigestPreferencesModel).where(
            DigestPreferencesModel.frequency != DigestFrequency.DISABLED.value
        )
        result = await self._session.execute(stmt)
        return [preferences_to_entity(model) for model in result.scalars().all()]


class InMemoryDigestPreferencesRepository(IDigestPreferencesRepository):
    """Dictionary-backed digest preferences."""

    def __init__(self):
        self._preferences: Dict[str, DigestPreferences] = {}

    async def get(self, user_id: str) -> Optional[DigestPreferences]:
        preferences = self._preferences.get(user_id)
        return deepcopy(preferences) if preferences else None

    async def save(self, preferences: DigestPreferences) -> DigestPreferences:
        self._preferences[preferences.user_id] = deepcopy(preferences)
        return preferences

    async def list_enabled(self) -> List[DigestPreferences]:
        return [
            deepcopy(p) for p in self._preferences.values()
            if p.frequency != DigestFrequency.DISABLED
        ]
