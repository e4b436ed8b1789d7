import time

from sqlalchemy import select, update, func

from app.errors import NotFoundError
from app.models.competition import Competition
from app.services.id_service import dispense_id


def retrieve_competition(shard, competition_id):
    return shard.get(Competition, competition_id)


def get_competition_or_404(shard, tenant_id, competition_id):
    comp = retrieve_competition(shard, competition_id)
    if not comp or comp.tenant_id != tenant_id:
        raise NotFoundError("competition not found")
    return comp


def add_competition(directory, shard, tenant_id, title):
    now = int(time.time())
    comp = Competition(
        id=dispense_id(directory),
        tenant_id=tenant_id,
        title=title,
        finished_at=None,
        score_generation=0,
        created_at=now,
        updated_at=now,
    )
    shard.add(comp)
    shard.commit()
    return comp


def finish_competition(shard, tenant_id, competition_id):
    """Close the competition. A finished competition keeps its first finished_at."""
    get_competition_or_404(shard, tenant_id, competition_id)
    now = int(time.time())
    shard.execute(
        update(Competition)
        .where(Competition.id == competition_id, Competition.finished_at.is_(None))
        .values(finished_at=now, updated_at=now)
    )
    shard.commit()
    comp = retrieve_competition(shard, competition_id)
    shard.refresh(comp)
    return comp


def list_competitions(shard, tenant_id, newest_first=True):
    # Dispensed ids are unpadded hex, so a shorter id is an older one
    keys = (Competition.created_at, func.length(Competition.id), Competition.id)
    order = [k.desc() if newest_first else k.asc() for k in keys]
    return shard.execute(
        select(Competition)
        .where(Competition.tenant_id == tenant_id)
        .order_by(*order)
    ).scalars().all()
