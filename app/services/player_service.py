import time

from sqlalchemy import select, update, func

from app.errors import NotFoundError, ForbiddenError, UnauthorizedError
from app.models.player import Player
from app.services.id_service import dispense_id


def retrieve_player(shard, player_id):
    return shard.get(Player, player_id)


def authorize_player(shard, player_id):
    """The viewing player must exist in the shard and not be disqualified."""
    player = retrieve_player(shard, player_id)
    if not player:
        raise UnauthorizedError("player not found")
    if player.is_disqualified:
        raise ForbiddenError("player is disqualified")
    return player


def list_players(shard, tenant_id):
    return shard.execute(
        select(Player)
        .where(Player.tenant_id == tenant_id)
        .order_by(Player.created_at.desc(), func.length(Player.id).desc(), Player.id.desc())
    ).scalars().all()


def add_players(directory, shard, tenant_id, display_names):
    players = []
    for display_name in display_names:
        now = int(time.time())
        player = Player(
            id=dispense_id(directory),
            tenant_id=tenant_id,
            display_name=display_name,
            is_disqualified=False,
            created_at=now,
            updated_at=now,
        )
        shard.add(player)
        players.append(player)
    shard.commit()
    return players


def disqualify_player(shard, tenant_id, player_id):
    now = int(time.time())
    shard.execute(
        update(Player)
        .where(Player.id == player_id, Player.tenant_id == tenant_id)
        .values(is_disqualified=True, updated_at=now)
    )
    shard.commit()
    player = retrieve_player(shard, player_id)
    if not player:
        raise NotFoundError("player not found")
    shard.refresh(player)
    return player
