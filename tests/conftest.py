import pytest

from app import create_app
from app import models  # noqa: F401  registers every table
from app.config import TestConfig
from app.extension.extensions import db
from app.extension.shard import shard_session, dispose_shard_engines
from app.services.competition_service import add_competition
from app.services.player_service import add_players
from app.services.tenant_service import add_tenant


@pytest.fixture
def app(tmp_path):
    class _Config(TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'directory.db'}"
        TENANT_DB_DIR = str(tmp_path / "tenant_db")

    application = create_app(_Config)
    with application.app_context():
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()
    dispose_shard_engines()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def tenant(app):
    return add_tenant(db.session, "acme", "Acme Inc.")


@pytest.fixture
def shard(tenant):
    with shard_session(tenant.id) as s:
        yield s


@pytest.fixture
def make_players(shard, tenant):
    def _make(*names):
        return add_players(db.session, shard, tenant.id, list(names))
    return _make


@pytest.fixture
def make_competition(shard, tenant):
    def _make(title="Spring Cup"):
        return add_competition(db.session, shard, tenant.id, title)
    return _make

