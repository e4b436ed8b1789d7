"""
Billing reports.

Per competition, every player who has a score row is billed 100 yen, and
every player who only viewed the leaderboard before the competition finished
is billed 10 yen. Nothing is billed until the competition is finished.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, asdict

from sqlalchemy import select

from app.extension.extensions import db
from app.extension.shard import shard_session
from app.models.playerScore import PlayerScore
from app.services.competition_service import get_competition_or_404, list_competitions
from app.services.tenant_lock import tenant_lock
from app.services.tenant_service import list_tenants_desc
from app.services.visit_service import first_visits

logger = logging.getLogger(__name__)

PLAYER_YEN = 100
VISITOR_YEN = 10

BILLING_TENANT_PAGE_SIZE = 10

ROLE_PLAYER = "player"
ROLE_VISITOR = "visitor"


@dataclass
class BillingReport:
    competition_id: str
    competition_title: str
    player_count: int       # players with a score row
    visitor_count: int      # players who only viewed the leaderboard
    billing_player_yen: int
    billing_visitor_yen: int
    billing_yen: int

    def to_dict(self):
        return asdict(self)


def _scored_players(shard, tenant_id, competition_id):
    return shard.execute(
        select(PlayerScore.player_id).distinct()
        .where(PlayerScore.tenant_id == tenant_id, PlayerScore.competition_id == competition_id)
    ).scalars().all()


def billing_report_by_competition(directory, shard, tenant_id, competition_id):
    comp = get_competition_or_404(shard, tenant_id, competition_id)

    # Visit history is append-only, so it is read without the tenant lock
    billing_map = {}
    for player_id, first_visit_at in first_visits(directory, tenant_id, comp.id).items():
        # A first visit after the finish does not count
        if comp.finished_at is not None and comp.finished_at < first_visit_at:
            continue
        billing_map[player_id] = ROLE_VISITOR

    with tenant_lock(tenant_id):
        for player_id in _scored_players(shard, tenant_id, comp.id):
            billing_map[player_id] = ROLE_PLAYER

    player_count = 0
    visitor_count = 0
    if comp.finished_at is not None:
        for role in billing_map.values():
            if role == ROLE_PLAYER:
                player_count += 1
            elif role == ROLE_VISITOR:
                visitor_count += 1

    return BillingReport(
        competition_id=comp.id,
        competition_title=comp.title,
        player_count=player_count,
        visitor_count=visitor_count,
        billing_player_yen=PLAYER_YEN * player_count,
        billing_visitor_yen=VISITOR_YEN * visitor_count,
        billing_yen=PLAYER_YEN * player_count + VISITOR_YEN * visitor_count,
    )


def tenant_billing_reports(directory, shard, tenant_id):
    """One report per competition of the tenant, newest competition first."""
    return [
        billing_report_by_competition(directory, shard, tenant_id, comp.id)
        for comp in list_competitions(shard, tenant_id, newest_first=True)
    ]


def tenant_billing_yen(directory, shard, tenant_id):
    return sum(r.billing_yen for r in tenant_billing_reports(directory, shard, tenant_id))


def select_billing_tenants(tenants, before=None, limit=BILLING_TENANT_PAGE_SIZE):
    """Up to ``limit`` tenants with id < before, in descending id order."""
    ordered = sorted(tenants, key=lambda t: t.id, reverse=True)
    if before is not None:
        ordered = [t for t in ordered if t.id < before]
    return ordered[:limit]


def _tenant_billing_job(app, tenant_id):
    with app.app_context():
        try:
            with shard_session(tenant_id, app) as shard:
                return tenant_billing_yen(db.session, shard, tenant_id)
        finally:
            db.session.remove()


def tenants_billing(app, directory, before=None, limit=None, max_workers=None):
    """
    Billing totals of up to ``limit`` tenants below the ``before`` cursor.

    Tenants are independent (own shard, own lock), so their totals are
    computed concurrently; every job is joined before returning and the
    result is ordered by tenant id descending.
    """
    limit = limit or app.config.get("BILLING_TENANT_PAGE_SIZE", BILLING_TENANT_PAGE_SIZE)
    max_workers = max_workers or app.config.get("BILLING_FANOUT_WORKERS", limit)

    selected = select_billing_tenants(list_tenants_desc(directory), before, limit)
    if not selected:
        return []

    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="tenant-billing") as pool:
        futures = [(t, pool.submit(_tenant_billing_job, app, t.id)) for t in selected]
        results = [
            {
                "id": t.id,
                "name": t.name,
                "display_name": t.display_name,
                "billing": future.result(),
            }
            for t, future in futures
        ]

    results.sort(key=lambda r: r["id"], reverse=True)
    for r in results:
        r["id"] = str(r["id"])
    logger.info("Billing computed for %d tenants before=%s", len(results), before)
    return results
