from flask import Blueprint, request, jsonify, current_app

from app.errors import ValidationError
from app.extension.extensions import db
from app.extension.shard import shard_session
from app.middleware.viewer import role_required, ROLE_ORGANIZER
from app.services.billing_service import tenant_billing_reports
from app.services.competition_service import add_competition, finish_competition, list_competitions
from app.services.player_service import add_players, list_players, disqualify_player
from app.services.recompute_service import publish_score_imported
from app.services.score_import_service import import_scores

bp_organizer = Blueprint('organizer', __name__, url_prefix='/api/organizer')


# -- players ------------------------------------------------------------------

@bp_organizer.get('/players')
@role_required(ROLE_ORGANIZER)
def get_players(viewer):
    with shard_session(viewer.tenant_id) as shard:
        players = list_players(shard, viewer.tenant_id)
        return jsonify({"status": True, "data": {"players": [p.to_dict() for p in players]}}), 200


@bp_organizer.post('/players/add')
@role_required(ROLE_ORGANIZER)
def post_players(viewer):
    display_names = request.form.getlist("display_name[]") or request.form.getlist("display_name")
    if not display_names:
        display_names = (request.get_json(silent=True) or {}).get("display_name") or []
    with shard_session(viewer.tenant_id) as shard:
        players = add_players(db.session, shard, viewer.tenant_id, display_names)
        return jsonify({"status": True, "data": {"players": [p.to_dict() for p in players]}}), 200


@bp_organizer.post('/player/<player_id>/disqualified')
@role_required(ROLE_ORGANIZER)
def post_disqualified(player_id, viewer):
    with shard_session(viewer.tenant_id) as shard:
        player = disqualify_player(shard, viewer.tenant_id, player_id)
        return jsonify({"status": True, "data": {"player": player.to_dict()}}), 200


# -- competitions -------------------------------------------------------------

@bp_organizer.post('/competitions/add')
@role_required(ROLE_ORGANIZER)
def post_competition(viewer):
    data = request.form or request.get_json(silent=True) or {}
    title = data.get("title")
    if not title:
        raise ValidationError("title is required")
    with shard_session(viewer.tenant_id) as shard:
        comp = add_competition(db.session, shard, viewer.tenant_id, title)
        return jsonify({"status": True, "data": {"competition": comp.to_dict()}}), 200


@bp_organizer.post('/competition/<competition_id>/finish')
@role_required(ROLE_ORGANIZER)
def post_finish(competition_id, viewer):
    with shard_session(viewer.tenant_id) as shard:
        finish_competition(shard, viewer.tenant_id, competition_id)
    return jsonify({"status": True}), 200


@bp_organizer.post('/competition/<competition_id>/score')
@role_required(ROLE_ORGANIZER)
def post_scores(competition_id, viewer):
    upload = request.files.get("scores")
    if upload is None:
        raise ValidationError("scores file is required")
    with shard_session(viewer.tenant_id) as shard:
        rows = import_scores(
            db.session, shard, viewer.tenant_id, competition_id, upload.stream,
            publish=publish_score_imported,
        )
    current_app.logger.info("scores uploaded tenant=%s competition=%s rows=%d", viewer.tenant_id, competition_id, rows)
    return jsonify({"status": True, "data": {"rows": rows}}), 200


@bp_organizer.get('/competitions')
@role_required(ROLE_ORGANIZER)
def get_competitions(viewer):
    with shard_session(viewer.tenant_id) as shard:
        comps = list_competitions(shard, viewer.tenant_id)
        return jsonify({"status": True, "data": {"competitions": [c.to_dict() for c in comps]}}), 200


# -- billing ------------------------------------------------------------------

@bp_organizer.get('/billing')
@role_required(ROLE_ORGANIZER)
def get_billing(viewer):
    with shard_session(viewer.tenant_id) as shard:
        reports = tenant_billing_reports(db.session, shard, viewer.tenant_id)
    return jsonify({"status": True, "data": {"reports": [r.to_dict() for r in reports]}}), 200
