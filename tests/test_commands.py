from app.extension.extensions import db
from app.models.tenant import Tenant
from app.services.score_import_service import import_scores
from tests.helpers import score_csv


def test_create_tenant(app):
    result = app.test_cli_runner().invoke(args=["create-tenant", "initech", "--display-name", "Initech"])

    assert result.exit_code == 0
    assert "initech" in result.output
    assert db.session.query(Tenant).filter_by(name="initech").one().display_name == "Initech"


def test_billing_report_without_tenants(app):
    result = app.test_cli_runner().invoke(args=["billing-report"])
    assert result.exit_code == 0
    assert "No tenants found." in result.output


def test_billing_report_lists_tenants(app, tenant):
    result = app.test_cli_runner().invoke(args=["billing-report"])
    assert result.exit_code == 0
    assert "acme" in result.output


def test_recompute_ranking(app, tenant, shard, make_players, make_competition):
    p1, p2 = make_players("alice", "bob")
    comp = make_competition()
    import_scores(db.session, shard, tenant.id, comp.id, score_csv([(p1.id, 1), (p2.id, 2)]))

    result = app.test_cli_runner().invoke(args=["recompute-ranking", str(tenant.id), comp.id])

    assert result.exit_code == 0
    assert "Cached 2 rank(s)" in result.output
