from flask import Blueprint, request, jsonify, current_app

from app.errors import ValidationError
from app.extension.extensions import db
from app.middleware.viewer import role_required, ROLE_ADMIN
from app.services.billing_service import tenants_billing
from app.services.tenant_service import add_tenant

bp_admin = Blueprint('admin', __name__, url_prefix='/api/admin')


def _parse_before(raw):
    if raw is None or raw == "":
        return None
    try:
        return int(raw, 10)
    except ValueError:
        raise ValidationError(f"invalid before: {raw}")


@bp_admin.post('/tenants/add')
@role_required(ROLE_ADMIN)
def post_tenant(viewer):
    data = request.form or request.get_json(silent=True) or {}
    name = data.get("name")
    display_name = data.get("display_name") or name
    tenant = add_tenant(db.session, name, display_name)
    current_app.logger.info("admin added tenant id=%s name=%s", tenant.id, tenant.name)
    return jsonify({
        "status": True,
        "data": {"tenant": {**tenant.to_dict(), "billing": 0}},
    }), 200


@bp_admin.get('/tenants/billing')
@role_required(ROLE_ADMIN)
def get_tenants_billing(viewer):
    before = _parse_before(request.args.get("before"))
    tenants = tenants_billing(current_app._get_current_object(), db.session, before=before)
    return jsonify({"status": True, "data": {"tenants": tenants}}), 200
