from dataclasses import dataclass
from functools import wraps
from typing import Optional

from flask import g
from flask_jwt_extended import verify_jwt_in_request, get_jwt
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from app.errors import UnauthorizedError, ForbiddenError, NotFoundError
from app.extension.extensions import db
from app.services.tenant_service import retrieve_tenant_by_name, ADMIN_TENANT_NAME

ROLE_ADMIN = "admin"
ROLE_ORGANIZER = "organizer"
ROLE_PLAYER = "player"
ROLE_NONE = "none"

ROLES = (ROLE_ADMIN, ROLE_ORGANIZER, ROLE_PLAYER)


@dataclass
class Viewer:
    role: str
    player_id: str
    tenant_name: str
    tenant_id: Optional[int]
    tenant_display_name: Optional[str] = None


def parse_viewer():
    """
    Viewer from the bearer JWT. Claims: ``sub`` (player id), ``role`` and
    ``tenant`` (tenant name, ``admin`` for platform administrators).
    """
    try:
        verify_jwt_in_request()
    except (JWTExtendedException, PyJWTError) as e:
        raise UnauthorizedError(f"invalid token: {e}")

    claims = get_jwt()
    role = claims.get("role")
    if role not in ROLES:
        raise UnauthorizedError(f"invalid token: invalid role: {role}")
    tenant_name = claims.get("tenant")
    if not tenant_name:
        raise UnauthorizedError("invalid token: tenant is not found in token")

    if tenant_name == ADMIN_TENANT_NAME:
        if role != ROLE_ADMIN:
            raise UnauthorizedError("tenant not found")
        return Viewer(role=role, player_id=claims.get("sub"), tenant_name=tenant_name,
                      tenant_id=None, tenant_display_name=ADMIN_TENANT_NAME)

    tenant = retrieve_tenant_by_name(db.session, tenant_name)
    if not tenant:
        raise UnauthorizedError("tenant not found")
    return Viewer(role=role, player_id=claims.get("sub"), tenant_name=tenant.name,
                  tenant_id=tenant.id, tenant_display_name=tenant.display_name)


def role_required(role):
    """
    Decorator: parse the viewer, check the role, and pass it on as ``viewer``.

    Usage:
        @bp.get('/billing')
        @role_required(ROLE_ORGANIZER)
        def billing(viewer):
            ...
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            viewer = parse_viewer()
            if role == ROLE_ADMIN and viewer.tenant_name != ADMIN_TENANT_NAME:
                raise NotFoundError(f"{viewer.tenant_name} has not this API")
            if viewer.role != role:
                raise ForbiddenError(f"role {role} required")
            g.viewer = viewer
            return f(*args, viewer=viewer, **kwargs)
        return decorated_function
    return decorator
