import click
from flask.cli import with_appcontext
from flask import current_app

from app.extension.extensions import db


@click.command('init-directory')
@with_appcontext
def init_directory_command():
    """
    Create the directory store tables (tenant, id_generator, visit_history)

    Usage: flask init-directory
    """
    from app.models import tenant, idGenerator, visitHistory  # noqa: F401

    db.create_all()
    click.echo("✅ Directory store ready")


@click.command('create-tenant')
@click.argument('name')
@click.option('--display-name', default=None, help='Display name (defaults to NAME)')
@with_appcontext
def create_tenant_command(name, display_name):
    """
    Register a tenant and provision its shard

    Usage: flask create-tenant acme --display-name "Acme Inc."
    """
    from app.services.tenant_service import add_tenant

    tenant = add_tenant(db.session, name, display_name or name)
    click.echo(f"✅ Tenant {tenant.id} ({tenant.name}) created")


@click.command('recompute-ranking')
@click.argument('tenant_id', type=int)
@click.argument('competition_id')
@with_appcontext
def recompute_ranking_command(tenant_id, competition_id):
    """
    Rewrite the cached leaderboard of one competition

    Usage: flask recompute-ranking 1 1a2b
    """
    from app.services.recompute_service import recompute_ranking

    ranks = recompute_ranking(tenant_id, competition_id)
    if ranks is None:
        click.echo("Result cache is disabled; nothing to do")
        return
    click.echo(f"✅ Cached {len(ranks)} rank(s) for competition {competition_id}")


@click.command('recompute-player-scores')
@click.argument('tenant_id', type=int)
@click.argument('player_id')
@with_appcontext
def recompute_player_scores_command(tenant_id, player_id):
    """
    Rewrite the cached score list of one player

    Usage: flask recompute-player-scores 1 3f
    """
    from app.services.recompute_service import recompute_player_scores

    scores = recompute_player_scores(tenant_id, player_id)
    if scores is None:
        click.echo("Result cache is disabled; nothing to do")
        return
    click.echo(f"✅ Cached {len(scores)} score(s) for player {player_id}")


@click.command('billing-report')
@click.option('--before', type=int, default=None, help='Only tenants with a smaller id')
@with_appcontext
def billing_report_command(before):
    """
    Print billing per tenant, newest tenants first (10 at most)

    Usage:
        flask billing-report
        flask billing-report --before=42
    """
    from app.services.billing_service import tenants_billing

    tenants = tenants_billing(current_app._get_current_object(), db.session, before=before)
    if not tenants:
        click.echo("No tenants found.")
        return

    click.echo(f"\n{'ID':<8} {'Name':<24} {'Billing (yen)':>14}")
    click.echo("-" * 48)
    for t in tenants:
        click.echo(f"{t['id']:<8} {t['name']:<24} {t['billing']:>14}")
    click.echo(f"\nTotal: ¥{sum(t['billing'] for t in tenants)}\n")


def register_commands(app):
    app.cli.add_command(init_directory_command)
    app.cli.add_command(create_tenant_command)
    app.cli.add_command(recompute_ranking_command)
    app.cli.add_command(recompute_player_scores_command)
    app.cli.add_command(billing_report_command)
