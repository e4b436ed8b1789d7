import logging
from typing import Dict, Any

from flask import current_app
from flask_socketio import SocketIO, join_room, emit
from flask_jwt_extended import decode_token
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from app.extension.extensions import db
from app.services.tenant_service import retrieve_tenant_by_name, ADMIN_TENANT_NAME

# -----------------------------------------------------------------------------
# Dashboard Socket.IO server (leaderboard screens connect here)
# -----------------------------------------------------------------------------
socketio = SocketIO(cors_allowed_origins="*")


def tenant_room(tenant_id) -> str:
    return f"tenant_{int(tenant_id)}"


def _log_info(msg: str, *args):
    try:
        current_app.logger.info(msg, *args)
    except RuntimeError:
        logging.getLogger(__name__).info(msg, *args)


def _log_err(msg: str, *args):
    try:
        current_app.logger.error(msg, *args)
    except RuntimeError:
        logging.getLogger(__name__).error(msg, *args)


# -----------------------------------------------------------------------------
# Downstream emit (to dashboard clients)
# -----------------------------------------------------------------------------
def emit_to_tenant(tenant_id, event: str, data: Dict[str, Any]):
    room = tenant_room(tenant_id)
    try:
        _log_info("Emitting %s to %s", event, room)
        socketio.emit(event, data, room=room)
    except Exception:
        _log_err("Downstream emit failed event=%s tenant=%s", event, tenant_id)


def _may_join(tenant_id, token) -> bool:
    """A viewer token of the tenant itself, or of the admin host, is required."""
    if not token:
        return False
    try:
        claims = decode_token(token)
    except (JWTExtendedException, PyJWTError) as e:
        _log_info("join_tenant rejected: %s", e)
        return False
    tenant_name = claims.get("tenant")
    if tenant_name == ADMIN_TENANT_NAME:
        return claims.get("role") == "admin"
    tenant = retrieve_tenant_by_name(db.session, tenant_name) if tenant_name else None
    return tenant is not None and tenant.id == tenant_id


# -----------------------------------------------------------------------------
# Dashboard (local) socket events
# -----------------------------------------------------------------------------
def register_dashboard_events():
    @socketio.on("connect")
    def _on_connect():
        _log_info("Dashboard client connected")

    @socketio.on("disconnect")
    def _on_disconnect(reason=None):
        _log_info("Dashboard client disconnected")

    @socketio.on("join_tenant")
    def _on_join_tenant(data: Dict[str, Any]):
        try:
            tenant_id = int((data or {}).get("tenant_id"))
        except (TypeError, ValueError):
            emit("error", {"message": "tenant_id required"})
            return
        if not _may_join(tenant_id, (data or {}).get("token")):
            emit("error", {"message": "not allowed to join this tenant"})
            return
        room = tenant_room(tenant_id)
        join_room(room)
        _log_info("Dashboard client joined %s", room)
        emit("joined", {"room": room})
