"""
Leaderboards and per-player score lists.

A player's current score in a competition is the one on their row with the
highest row_num (the last occurrence in the uploaded file). Leaderboards order
current scores descending; equal scores keep upload order (lower row_num
first).
"""
import logging
from dataclasses import dataclass, asdict

from sqlalchemy import select

from app.models.competition import Competition
from app.models.player import Player
from app.models.playerScore import PlayerScore
from app.services.competition_service import get_competition_or_404, list_competitions
from app.services.result_cache import ranking_key, player_score_key
from app.services.tenant_lock import tenant_lock

logger = logging.getLogger(__name__)

RANKING_PAGE_SIZE = 100


@dataclass
class CompetitionRank:
    score: int
    player_id: str
    player_display_name: str
    row_num: int


def compute_ranks(shard, tenant_id, competition_id):
    """
    Full ordered leaderboard of one competition, one entry per player.
    Must run inside the tenant lock.
    """
    rows = shard.execute(
        select(PlayerScore.player_id, PlayerScore.score, PlayerScore.row_num, Player.display_name)
        .join(Player, Player.id == PlayerScore.player_id)
        .where(PlayerScore.tenant_id == tenant_id, PlayerScore.competition_id == competition_id)
        .order_by(PlayerScore.row_num.desc())
    ).all()

    ranks = []
    seen = set()
    for player_id, score, row_num, display_name in rows:
        # Rows arrive by descending row_num, so the first one per player is current
        if player_id in seen:
            continue
        seen.add(player_id)
        ranks.append(CompetitionRank(
            score=score,
            player_id=player_id,
            player_display_name=display_name,
            row_num=row_num,
        ))

    ranks.sort(key=lambda r: (-r.score, r.row_num))
    return ranks


def paginate_ranks(ranks, rank_after=0, page_size=RANKING_PAGE_SIZE):
    page = ranks[rank_after:rank_after + page_size]
    return [
        {
            "rank": rank_after + i + 1,
            "score": r["score"],
            "player_id": r["player_id"],
            "player_display_name": r["player_display_name"],
        }
        for i, r in enumerate(page)
    ]


def ranking_generation(shard, competition_id):
    return shard.execute(
        select(Competition.score_generation).where(Competition.id == competition_id)
    ).scalar_one()


def _ranks_as_dicts(shard, tenant_id, competition_id):
    return [asdict(r) for r in compute_ranks(shard, tenant_id, competition_id)]


def get_ranking(shard, tenant_id, competition_id, rank_after=0, cache=None, page_size=RANKING_PAGE_SIZE):
    """
    Page of the competition's leaderboard plus the competition's metadata.

    With a cache, an entry stored for the competition's current score
    generation is served verbatim; anything else is recomputed and stored.
    """
    comp = get_competition_or_404(shard, tenant_id, competition_id)

    with tenant_lock(tenant_id):
        if cache is None:
            ranks = _ranks_as_dicts(shard, tenant_id, competition_id)
        else:
            ranks = cache.fetch(
                ranking_key(tenant_id, competition_id),
                ranking_generation(shard, competition_id),
                lambda: _ranks_as_dicts(shard, tenant_id, competition_id),
            )

    return {
        "competition": comp.to_dict(),
        "ranks": paginate_ranks(ranks, rank_after, page_size),
    }


def refresh_ranking(shard, tenant_id, competition_id, cache):
    """Recompute and overwrite the cached leaderboard. Used by recompute triggers."""
    with tenant_lock(tenant_id):
        generation = ranking_generation(shard, competition_id)
        ranks = _ranks_as_dicts(shard, tenant_id, competition_id)
        cache.set(ranking_key(tenant_id, competition_id), generation, ranks)
    logger.info("Ranking refreshed tenant=%s competition=%s generation=%s", tenant_id, competition_id, generation)
    return ranks


def compute_player_scores(shard, tenant_id, player_id):
    """
    The player's current score in every competition of the tenant, oldest
    competition first; competitions without a score are left out.
    Must run inside the tenant lock.
    """
    scores = []
    for comp in list_competitions(shard, tenant_id, newest_first=False):
        score = shard.execute(
            select(PlayerScore.score)
            .where(
                PlayerScore.tenant_id == tenant_id,
                PlayerScore.competition_id == comp.id,
                PlayerScore.player_id == player_id,
            )
            .order_by(PlayerScore.row_num.desc())
            .limit(1)
        ).scalar_one_or_none()
        if score is not None:
            scores.append({"competition_title": comp.title, "score": score})
    return scores


def player_scores_generation(shard, tenant_id):
    """Generation tag for per-player lists: every competition's score generation."""
    rows = shard.execute(
        select(Competition.id, Competition.score_generation)
        .where(Competition.tenant_id == tenant_id)
    ).all()
    return {comp_id: generation for comp_id, generation in rows}


def get_player_scores(shard, tenant_id, player_id, cache=None):
    with tenant_lock(tenant_id):
        if cache is None:
            return compute_player_scores(shard, tenant_id, player_id)
        return cache.fetch(
            player_score_key(tenant_id, player_id),
            player_scores_generation(shard, tenant_id),
            lambda: compute_player_scores(shard, tenant_id, player_id),
        )


def refresh_player_scores(shard, tenant_id, player_id, cache):
    with tenant_lock(tenant_id):
        generation = player_scores_generation(shard, tenant_id)
        scores = compute_player_scores(shard, tenant_id, player_id)
        cache.set(player_score_key(tenant_id, player_id), generation, scores)
    return scores
