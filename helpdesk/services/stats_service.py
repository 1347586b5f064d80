"""Aggregate statistics over support sessions."""

from helpdesk.models.enums import SessionStatus
from helpdesk.repositories.session_repo import SessionRepository
from helpdesk.schemas.stats_schema import SessionStatsResponse

OPEN_STATUSES = (SessionStatus.WAITING, SessionStatus.ACTIVE, SessionStatus.RESOLVED)


class StatsService:
    """Computes session counts, ratings and resolution times."""

    def __init__(self, session_repo: SessionRepository) -> None:
        self._session_repo = session_repo

    async def session_stats(self, tenant_id: int | None = None) -> SessionStatsResponse:
        by_status = await self._session_repo.count_by_status(tenant_id)
        total = sum(by_status.values())

        timings = await self._session_repo.find_closed_timings(tenant_id)
        average_resolution: float | None = None
        if timings:
            durations = [
                (t.closed_at - t.created_at).total_seconds() for t in timings
            ]
            average_resolution = sum(durations) / len(durations)

        message_count = await self._session_repo.count_messages(tenant_id)

        return SessionStatsResponse(
            total_sessions=total,
            by_status={s.value: by_status.get(s.value, 0) for s in SessionStatus},
            open_sessions=sum(by_status.get(s.value, 0) for s in OPEN_STATUSES),
            average_rating=await self._session_repo.average_rating(tenant_id),
            average_resolution_seconds=average_resolution,
            messages_per_session=message_count / total if total else 0.0,
        )
