from flask import Blueprint, jsonify

from app.errors import UnauthorizedError
from app.extension.shard import shard_session
from app.middleware.viewer import parse_viewer, ROLE_PLAYER, ROLE_NONE
from app.services.player_service import retrieve_player

bp_me = Blueprint('me', __name__, url_prefix='/api')


def _anonymous(tenant=None):
    return {"tenant": tenant, "me": None, "role": ROLE_NONE, "logged_in": False}


@bp_me.get('/me')
def get_me():
    try:
        v = parse_viewer()
    except UnauthorizedError:
        return jsonify({"status": True, "data": _anonymous()}), 200

    tenant = {"name": v.tenant_name, "display_name": v.tenant_display_name}
    if v.role != ROLE_PLAYER:
        return jsonify({
            "status": True,
            "data": {"tenant": tenant, "me": None, "role": v.role, "logged_in": True},
        }), 200

    with shard_session(v.tenant_id) as shard:
        player = retrieve_player(shard, v.player_id)
        if not player:
            return jsonify({"status": True, "data": _anonymous(tenant)}), 200
        return jsonify({
            "status": True,
            "data": {"tenant": tenant, "me": player.to_dict(), "role": v.role, "logged_in": True},
        }), 200
