import time

from sqlalchemy import select, func

from app.models.visitHistory import VisitHistory


def record_visit(session, tenant_id, competition_id, player_id):
    now = int(time.time())
    session.add(VisitHistory(
        player_id=player_id,
        tenant_id=tenant_id,
        competition_id=competition_id,
        created_at=now,
        updated_at=now,
    ))
    session.commit()


def first_visits(session, tenant_id, competition_id):
    """{player_id: earliest visit timestamp} for one competition."""
    rows = session.execute(
        select(VisitHistory.player_id, func.min(VisitHistory.created_at))
        .where(VisitHistory.tenant_id == tenant_id, VisitHistory.competition_id == competition_id)
        .group_by(VisitHistory.player_id)
    ).all()
    return {player_id: min_created_at for player_id, min_created_at in rows}
