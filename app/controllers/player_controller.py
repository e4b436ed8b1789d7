from flask import Blueprint, request, jsonify

from app.errors import ValidationError, NotFoundError
from app.extension.extensions import db
from app.extension.shard import shard_session
from app.middleware.viewer import role_required, ROLE_PLAYER
from app.services.competition_service import get_competition_or_404, list_competitions
from app.services.player_service import authorize_player, retrieve_player
from app.services.ranking_service import get_ranking, get_player_scores
from app.services.result_cache import get_result_cache
from app.services.visit_service import record_visit

bp_player = Blueprint('player', __name__, url_prefix='/api/player')


def _parse_rank_after(raw):
    if raw is None or raw == "":
        return 0
    try:
        value = int(raw, 10)
    except ValueError:
        raise ValidationError(f"invalid rank_after: {raw}")
    if value < 0:
        raise ValidationError(f"invalid rank_after: {raw}")
    return value


@bp_player.get('/player/<player_id>')
@role_required(ROLE_PLAYER)
def get_player(player_id, viewer):
    with shard_session(viewer.tenant_id) as shard:
        authorize_player(shard, viewer.player_id)
        player = retrieve_player(shard, player_id)
        if not player:
            raise NotFoundError("player not found")
        scores = get_player_scores(shard, viewer.tenant_id, player.id, cache=get_result_cache())
        return jsonify({
            "status": True,
            "data": {"player": player.to_dict(), "scores": scores},
        }), 200


@bp_player.get('/competition/<competition_id>/ranking')
@role_required(ROLE_PLAYER)
def get_competition_ranking(competition_id, viewer):
    rank_after = _parse_rank_after(request.args.get("rank_after"))
    with shard_session(viewer.tenant_id) as shard:
        authorize_player(shard, viewer.player_id)
        get_competition_or_404(shard, viewer.tenant_id, competition_id)

        record_visit(db.session, viewer.tenant_id, competition_id, viewer.player_id)

        ranking = get_ranking(shard, viewer.tenant_id, competition_id, rank_after, cache=get_result_cache())
    return jsonify({"status": True, "data": ranking}), 200


@bp_player.get('/competitions')
@role_required(ROLE_PLAYER)
def get_competitions(viewer):
    with shard_session(viewer.tenant_id) as shard:
        authorize_player(shard, viewer.player_id)
        comps = list_competitions(shard, viewer.tenant_id)
        return jsonify({"status": True, "data": {"competitions": [c.to_dict() for c in comps]}}), 200
