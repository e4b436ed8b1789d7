import logging
import re
import time

from flask import current_app
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from app.errors import ValidationError, ConflictError, NotFoundError
from app.extension.shard import create_shard
from app.models.tenant import Tenant

logger = logging.getLogger(__name__)

TENANT_NAME_RE = re.compile(r"^[a-z][a-z0-9-]{0,61}[a-z0-9]$")

# Reserved for the platform administrators' host
ADMIN_TENANT_NAME = "admin"


def validate_tenant_name(name):
    if not name or not TENANT_NAME_RE.match(name):
        raise ValidationError(f"invalid tenant name: {name}")


def add_tenant(session, name, display_name):
    validate_tenant_name(name)
    if name == ADMIN_TENANT_NAME:
        raise ConflictError("duplicate tenant")

    now = int(time.time())
    tenant = Tenant(name=name, display_name=display_name, created_at=now, updated_at=now)
    session.add(tenant)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError("duplicate tenant")

    create_shard(tenant.id, current_app._get_current_object())
    logger.info("Tenant created id=%s name=%s", tenant.id, name)
    return tenant


def retrieve_tenant(session, tenant_id):
    tenant = session.get(Tenant, int(tenant_id))
    if not tenant:
        raise NotFoundError("tenant not found")
    return tenant


def retrieve_tenant_by_name(session, name):
    return session.execute(select(Tenant).where(Tenant.name == name)).scalar_one_or_none()


def list_tenants_desc(session):
    return session.execute(select(Tenant).order_by(Tenant.id.desc())).scalars().all()
